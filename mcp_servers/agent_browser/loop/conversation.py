"""
Provider-independent conversation log.

Messages are immutable and the log only grows; provider delegates derive their
wire format (including tool-result batching) from it on every call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass(frozen=True)
class UserMessage:
    content: str


@dataclass(frozen=True)
class AssistantMessage:
    content: str
    tool_calls: tuple[ToolCall, ...] | None = None


@dataclass(frozen=True)
class ToolResultMessage:
    tool_call_id: str
    content: str
    is_error: bool = False


Message = Union[UserMessage, AssistantMessage, ToolResultMessage]


@dataclass
class Conversation:
    messages: list[Message] = field(default_factory=list)
    tools: tuple[ToolDescriptor, ...] = ()

    def append(self, message: Message) -> None:
        self.messages.append(message)

    def extend(self, messages: list[Message]) -> None:
        self.messages.extend(messages)

    def pending_tool_call_ids(self) -> list[str]:
        """IDs of the latest tool-calling turn that have no result yet."""
        answered: set[str] = set()
        for message in reversed(self.messages):
            if isinstance(message, ToolResultMessage):
                answered.add(message.tool_call_id)
            elif isinstance(message, AssistantMessage) and message.tool_calls:
                return [call.id for call in message.tool_calls if call.id not in answered]
        return []


def tool_descriptors(definitions: list[dict[str, Any]]) -> list[ToolDescriptor]:
    """MCP tool definitions (``tools/list`` shape) as descriptors."""
    return [
        ToolDescriptor(
            name=str(d["name"]),
            description=str(d.get("description") or ""),
            input_schema=dict(d.get("inputSchema") or {"type": "object", "properties": {}}),
        )
        for d in definitions
    ]


__all__ = [
    "AssistantMessage",
    "Conversation",
    "Message",
    "ToolCall",
    "ToolDescriptor",
    "ToolResultMessage",
    "UserMessage",
    "tool_descriptors",
]
