"""
OpenAI Chat Completions delegate.

Chat Completions takes one ``role: tool`` message per result, so no batching
is needed: the log maps onto the wire format message for message.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from . import delegate as shared
from .conversation import (
    AssistantMessage,
    Conversation,
    Message,
    ToolCall,
    ToolDescriptor,
    ToolResultMessage,
    UserMessage,
)

if TYPE_CHECKING:
    from openai import AsyncOpenAI

logger = logging.getLogger("mcp.agent_browser.loop.openai")

DEFAULT_MODEL = "gpt-4.1"
DEFAULT_MAX_TOKENS = 10_000


def to_openai_messages(messages: list[Message]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for message in messages:
        if isinstance(message, UserMessage):
            out.append({"role": "user", "content": message.content})
        elif isinstance(message, AssistantMessage):
            entry: dict[str, Any] = {"role": "assistant", "content": message.content or None}
            if message.tool_calls:
                entry["tool_calls"] = [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                    }
                    for call in message.tool_calls
                ]
            out.append(entry)
        elif isinstance(message, ToolResultMessage):
            out.append({"role": "tool", "tool_call_id": message.tool_call_id, "content": message.content})
    return out


def to_openai_tools(tools: tuple[ToolDescriptor, ...] | list[ToolDescriptor]) -> list[dict[str, Any]]:
    out = []
    for tool in tools:
        parameters = {k: v for k, v in tool.input_schema.items() if k != "$schema"}
        out.append(
            {
                "type": "function",
                "function": {"name": tool.name, "description": tool.description, "parameters": parameters},
            }
        )
    return out


def _parse_arguments(raw: str | None, name: str) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("openai_bad_arguments tool=%s raw=%s", name, raw[:200])
        return {}
    return parsed if isinstance(parsed, dict) else {}


class OpenAIDelegate:
    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        *,
        model: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self._client = client
        self.model = model or DEFAULT_MODEL
        self.max_tokens = max_tokens

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI()
        return self._client

    def create_conversation(self, task: str, tools: list[ToolDescriptor], one_shot: bool) -> Conversation:
        return shared.create_conversation(task, tools, one_shot)

    async def make_api_call(self, conversation: Conversation) -> list[ToolCall]:
        response = await self.client.chat.completions.create(
            model=self.model,
            max_completion_tokens=self.max_tokens,
            messages=to_openai_messages(conversation.messages),
            tools=to_openai_tools(conversation.tools),
        )
        message = response.choices[0].message
        calls = [
            ToolCall(id=tc.id, name=tc.function.name, arguments=_parse_arguments(tc.function.arguments, tc.function.name))
            for tc in message.tool_calls or []
        ]
        conversation.append(AssistantMessage(content=message.content or "", tool_calls=tuple(calls) or None))
        logger.info("openai_turn finish_reason=%s tool_calls=%d", response.choices[0].finish_reason, len(calls))
        return calls

    def add_tool_results(self, conversation: Conversation, results: list[ToolResultMessage]) -> None:
        shared.add_tool_results(conversation, results)

    def check_done_tool_call(self, call: ToolCall) -> str | None:
        return shared.check_done_tool_call(call)


__all__ = ["DEFAULT_MODEL", "OpenAIDelegate", "to_openai_messages", "to_openai_tools"]
