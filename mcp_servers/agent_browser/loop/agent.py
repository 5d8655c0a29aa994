"""
Agent loop: call the model, run the tool calls it proposes, feed the results
back, until the model calls ``done`` (or one round in one-shot mode).
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .conversation import AssistantMessage, Conversation, ToolCall, ToolResultMessage, tool_descriptors
from .delegate import LLMDelegate
from .errors import AgentCancelledError, AgentLoopError, ProviderCallError, StalledAgentError, TurnLimitError

if TYPE_CHECKING:
    from ..server.registry import ToolRegistry

logger = logging.getLogger("mcp.agent_browser.loop")

DEFAULT_MAX_TURNS = 50


def _last_assistant_text(conversation: Conversation) -> str:
    for message in reversed(conversation.messages):
        if isinstance(message, AssistantMessage):
            return message.content
    return ""


class AgentLoop:
    """Drives one delegate against one tool registry.

    ``cancel()`` is honored between turns only; a turn's tool results are
    appended to the conversation all at once or not at all.
    """

    def __init__(self, delegate: LLMDelegate, registry: ToolRegistry, *, max_turns: int = DEFAULT_MAX_TURNS) -> None:
        self.delegate = delegate
        self.registry = registry
        self.max_turns = max_turns
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    async def _execute(self, call: ToolCall) -> ToolResultMessage:
        try:
            result = await self.registry.call_tool(call.name, call.arguments)
        except Exception as exc:
            logger.exception("tool_call_failed tool=%s", call.name)
            return ToolResultMessage(tool_call_id=call.id, content=f"Error: {exc}", is_error=True)
        return ToolResultMessage(tool_call_id=call.id, content=result.text_content(), is_error=result.is_error)

    async def run_task(self, task: str, *, one_shot: bool = False, max_turns: int | None = None) -> str | None:
        tools = tool_descriptors(self.registry.definitions())
        conversation = self.delegate.create_conversation(task, tools, one_shot)
        limit = self.max_turns if max_turns is None else max_turns
        collected = 0
        self._cancelled = False

        for turn in range(1, limit + 1):
            if self._cancelled:
                raise AgentCancelledError(turn)
            pending = conversation.pending_tool_call_ids()
            if pending:
                raise AgentLoopError(f"Tool calls without results before turn {turn}: {', '.join(pending)}")

            try:
                calls = await self.delegate.make_api_call(conversation)
            except Exception as exc:
                logger.info("provider_error turn=%d err=%s", turn, exc)
                raise ProviderCallError(turn, collected, exc) from exc
            logger.info("turn=%d tool_calls=%s", turn, [c.name for c in calls])

            if not calls:
                text = _last_assistant_text(conversation)
                if one_shot:
                    return text
                raise StalledAgentError(turn, text)

            for call in calls:
                done = self.delegate.check_done_tool_call(call)
                if done is not None:
                    logger.info("done turn=%d", turn)
                    return done

            # Sibling calls run concurrently; gather keeps results in call order.
            results = await asyncio.gather(*(self._execute(call) for call in calls))
            self.delegate.add_tool_results(conversation, list(results))
            collected += len(results)

            if one_shot:
                return "\n".join(r.content for r in results)

        raise TurnLimitError(limit)


__all__ = ["DEFAULT_MAX_TURNS", "AgentLoop"]
