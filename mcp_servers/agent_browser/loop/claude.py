"""
Anthropic Messages API delegate.

Claude wants every tool result answering one assistant turn inside a single
``user`` message. The conversation log stores one result per message, so
``to_claude_messages`` regroups them: results are buffered and flushed as one
batch as soon as they cover every tool call of the most recent preceding
assistant tool-calling turn. Anything still buffered is flushed before the next
non-result message and at the end of the log.
"""

from __future__ import annotations

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
    from anthropic import AsyncAnthropic

logger = logging.getLogger("mcp.agent_browser.loop.claude")

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 10_000


def to_claude_messages(messages: list[Message]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    pending: list[dict[str, Any]] = []
    expected: set[str] = set()

    def flush() -> None:
        nonlocal pending
        if pending:
            out.append({"role": "user", "content": pending})
            pending = []

    for message in messages:
        if isinstance(message, ToolResultMessage):
            pending.append(
                {
                    "type": "tool_result",
                    "tool_use_id": message.tool_call_id,
                    "content": message.content,
                    "is_error": message.is_error,
                }
            )
            if expected and expected <= {block["tool_use_id"] for block in pending}:
                flush()
                expected = set()
            continue

        flush()
        if isinstance(message, UserMessage):
            out.append({"role": "user", "content": message.content})
        elif isinstance(message, AssistantMessage):
            if not message.content and not message.tool_calls:
                continue
            content: list[dict[str, Any]] = []
            if message.content:
                content.append({"type": "text", "text": message.content})
            for call in message.tool_calls or ():
                content.append({"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments})
            out.append({"role": "assistant", "content": content})
            if message.tool_calls:
                expected = {call.id for call in message.tool_calls}

    flush()
    return out


def _block_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(b.get("text", "") for b in content if isinstance(b, dict) and b.get("type") == "text")
    return ""


def from_claude_messages(messages: list[dict[str, Any]]) -> list[Message]:
    """Inverse of ``to_claude_messages``: unbatch tool results back into the flat log."""
    out: list[Message] = []
    for message in messages:
        role = message.get("role")
        content = message.get("content")
        if role == "user":
            if isinstance(content, str):
                out.append(UserMessage(content=content))
                continue
            for block in content or []:
                if block.get("type") == "tool_result":
                    out.append(
                        ToolResultMessage(
                            tool_call_id=str(block["tool_use_id"]),
                            content=_block_text(block.get("content")),
                            is_error=bool(block.get("is_error", False)),
                        )
                    )
                elif block.get("type") == "text":
                    out.append(UserMessage(content=str(block.get("text", ""))))
        elif role == "assistant":
            if isinstance(content, str):
                out.append(AssistantMessage(content=content))
                continue
            text = "".join(b.get("text", "") for b in content or [] if b.get("type") == "text")
            calls = tuple(
                ToolCall(id=str(b["id"]), name=str(b["name"]), arguments=dict(b.get("input") or {}))
                for b in content or []
                if b.get("type") == "tool_use"
            )
            out.append(AssistantMessage(content=text, tool_calls=calls or None))
    return out


def to_claude_tools(tools: tuple[ToolDescriptor, ...] | list[ToolDescriptor]) -> list[dict[str, Any]]:
    return [
        {
            "name": t.name,
            "description": t.description,
            "input_schema": {k: v for k, v in t.input_schema.items() if k != "$schema"},
        }
        for t in tools
    ]


class ClaudeDelegate:
    def __init__(
        self,
        client: AsyncAnthropic | None = None,
        *,
        model: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self._client = client
        self.model = model or DEFAULT_MODEL
        self.max_tokens = max_tokens

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            from anthropic import AsyncAnthropic

            self._client = AsyncAnthropic()
        return self._client

    def create_conversation(self, task: str, tools: list[ToolDescriptor], one_shot: bool) -> Conversation:
        return shared.create_conversation(task, tools, one_shot)

    async def make_api_call(self, conversation: Conversation) -> list[ToolCall]:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=to_claude_messages(conversation.messages),
            tools=to_claude_tools(conversation.tools),
        )

        calls: list[ToolCall] = []
        texts: list[str] = []
        for block in response.content:
            if block.type == "tool_use":
                calls.append(ToolCall(id=block.id, name=block.name, arguments=dict(block.input or {})))
            elif block.type == "text":
                texts.append(block.text)

        conversation.append(AssistantMessage(content="".join(texts), tool_calls=tuple(calls) or None))
        logger.info("claude_turn stop_reason=%s tool_calls=%d", getattr(response, "stop_reason", None), len(calls))
        return calls

    def add_tool_results(self, conversation: Conversation, results: list[ToolResultMessage]) -> None:
        shared.add_tool_results(conversation, results)

    def check_done_tool_call(self, call: ToolCall) -> str | None:
        return shared.check_done_tool_call(call)


__all__ = [
    "DEFAULT_MODEL",
    "ClaudeDelegate",
    "from_claude_messages",
    "to_claude_messages",
    "to_claude_tools",
]
