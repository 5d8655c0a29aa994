"""Command line entry: ``serve`` the MCP server or ``run`` one agent task."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import AgentBrowserConfig, LoopConfig
from .context import Context
from .launcher import BrowserLauncher
from .loop import AgentLoop, AgentLoopError, create_delegate
from .server.registry import create_default_registry

logger = logging.getLogger("mcp.agent_browser.cli")


async def run_task(task: str, *, one_shot: bool = False) -> str | None:
    config = AgentBrowserConfig.from_env()
    loop_config = LoopConfig.from_env()
    context = Context(config, BrowserLauncher(config))
    registry = create_default_registry(context)
    delegate = create_delegate(loop_config.provider, model=loop_config.model, max_tokens=loop_config.max_tokens)
    agent = AgentLoop(delegate, registry, max_turns=loop_config.max_turns)
    logger.info("run provider=%s one_shot=%s", loop_config.provider, one_shot)
    try:
        return await agent.run_task(task, one_shot=one_shot)
    finally:
        await context.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="agent-browser", description="Browser tools for language-model agents")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("serve", help="Run the MCP server on stdio (default)")
    run = sub.add_parser("run", help="Run a single task with the agent loop")
    run.add_argument("task", help="Task description given to the model")
    run.add_argument("--one-shot", action="store_true", help="Stop after one round of tool calls")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command in (None, "serve"):
        from .main import main as serve_main

        serve_main()
        return 0

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    try:
        result = asyncio.run(run_task(args.task, one_shot=args.one_shot))
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130
    except AgentLoopError as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return 1

    if result:
        print(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
