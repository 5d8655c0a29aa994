"""
Provider delegate interface and the provider-independent pieces every
delegate shares: seeding a conversation, appending results, spotting ``done``.
"""

from __future__ import annotations

from typing import Protocol

from .conversation import Conversation, ToolCall, ToolDescriptor, ToolResultMessage, UserMessage

DONE_TOOL = ToolDescriptor(
    name="done",
    description="Call this tool when the task is complete.",
    input_schema={
        "type": "object",
        "properties": {
            "result": {"type": "string", "description": "Final answer or summary of what was done"},
        },
    },
)


class LLMDelegate(Protocol):
    def create_conversation(self, task: str, tools: list[ToolDescriptor], one_shot: bool) -> Conversation: ...

    async def make_api_call(self, conversation: Conversation) -> list[ToolCall]: ...

    def add_tool_results(self, conversation: Conversation, results: list[ToolResultMessage]) -> None: ...

    def check_done_tool_call(self, call: ToolCall) -> str | None: ...


def create_conversation(task: str, tools: list[ToolDescriptor], one_shot: bool) -> Conversation:
    """Seed a conversation with the task; the ``done`` tool is offered unless one-shot."""
    descriptors = list(tools)
    if not one_shot:
        descriptors.append(DONE_TOOL)
    return Conversation(messages=[UserMessage(content=task)], tools=tuple(descriptors))


def add_tool_results(conversation: Conversation, results: list[ToolResultMessage]) -> None:
    conversation.extend(list(results))


def check_done_tool_call(call: ToolCall) -> str | None:
    if call.name != DONE_TOOL.name:
        return None
    result = call.arguments.get("result", "")
    return "" if result is None else str(result)


__all__ = [
    "DONE_TOOL",
    "LLMDelegate",
    "add_tool_results",
    "check_done_tool_call",
    "create_conversation",
]
