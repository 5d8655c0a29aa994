"""
MCP server exposing the agent browser tools over stdio.

This module provides the protocol handling; tool dispatch lives in
server/registry.py.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from typing import Any

from .config import AgentBrowserConfig
from .context import Context
from .launcher import BrowserLauncher
from .server.contract import initialize_result, select_protocol, tools_list
from .server.redaction import redact_jsonrpc_for_log
from .server.registry import create_default_registry

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(message)s",
)
logger = logging.getLogger("mcp.agent_browser")

__all__ = ["McpServer", "main"]


def _write_message(payload: dict[str, Any]) -> None:
    """Write JSON-RPC message to stdout."""
    data = json.dumps(payload, ensure_ascii=False)
    if os.environ.get("MCP_TRACE"):
        logger.info("send %s", redact_jsonrpc_for_log(payload))
    sys.stdout.buffer.write((data + "\n").encode())
    sys.stdout.buffer.flush()


def _read_line() -> bytes | None:
    line = sys.stdin.buffer.readline()
    if not line:
        return None
    return line.strip()


class McpServer:
    """MCP Server with registry-based tool dispatch."""

    def __init__(self, config: AgentBrowserConfig | None = None) -> None:
        self.config = config or AgentBrowserConfig.from_env()
        self.launcher = BrowserLauncher(self.config)
        self.context = Context(self.config, self.launcher)
        self.registry = create_default_registry(self.context)

    def handle_initialize(self, request_id: Any, params: dict[str, Any] | None = None) -> None:
        """Handle initialize request."""
        requested = (params or {}).get("protocolVersion") if isinstance(params, dict) else None
        protocol = select_protocol(requested)
        _write_message({"jsonrpc": "2.0", "id": request_id, "result": initialize_result(protocol)})

    def handle_list_tools(self, request_id: Any) -> None:
        """Handle tools/list request."""
        _write_message({"jsonrpc": "2.0", "id": request_id, "result": {"tools": tools_list()}})

    async def handle_call_tool(self, request_id: Any, name: str, arguments: dict[str, Any]) -> None:
        result = await self.registry.call_tool(name, arguments)
        _write_message(
            {
                "jsonrpc": "2.0",
                "id": request_id,
                "result": {"content": result.to_content_list(), "isError": result.is_error},
            }
        )

    async def dispatch(self, message: dict[str, Any]) -> None:
        """Dispatch incoming JSON-RPC message to appropriate handler."""
        if not message:
            return

        method = message.get("method")
        request_id = message.get("id")
        params = message.get("params") or {}

        if method == "initialize":
            self.handle_initialize(request_id, params)
        elif method is not None and method.startswith("notifications/"):
            return
        elif method == "tools/list":
            self.handle_list_tools(request_id)
        elif method == "tools/call":
            name = params.get("name")
            arguments = params.get("arguments") or {}
            await self.handle_call_tool(request_id, name or "", arguments)
        elif method == "ping":
            _write_message({"jsonrpc": "2.0", "id": request_id, "result": {}})
        else:
            _write_message(
                {
                    "jsonrpc": "2.0",
                    "id": request_id,
                    "error": {"code": -32601, "message": f"Method {method} not found"},
                }
            )

    async def serve(self) -> None:
        try:
            while True:
                line = await asyncio.to_thread(_read_line)
                if line is None:
                    break
                if not line:
                    continue
                try:
                    message = json.loads(line.decode())
                except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                    _write_message({"jsonrpc": "2.0", "id": None, "error": {"code": -32700, "message": str(exc)}})
                    continue
                if not isinstance(message, dict):
                    _write_message({"jsonrpc": "2.0", "id": None, "error": {"code": -32600, "message": "Invalid Request"}})
                    continue
                if os.environ.get("MCP_TRACE"):
                    logger.info("recv %s", redact_jsonrpc_for_log(message))
                await self.dispatch(message)
        finally:
            await self.context.close()


def main() -> None:
    """Main entry point for MCP server."""
    asyncio.run(McpServer().serve())


if __name__ == "__main__":
    main()
