"""Agent loop: drive the browser tools from a language model.

Provider delegates import their SDKs lazily, so importing this package does not
require ``anthropic`` or ``openai`` to be configured.
"""

from __future__ import annotations

from .agent import AgentLoop
from .claude import ClaudeDelegate
from .conversation import (
    AssistantMessage,
    Conversation,
    ToolCall,
    ToolDescriptor,
    ToolResultMessage,
    UserMessage,
)
from .delegate import DONE_TOOL, LLMDelegate
from .errors import AgentCancelledError, AgentLoopError, ProviderCallError, StalledAgentError, TurnLimitError
from .openai_delegate import OpenAIDelegate

__all__ = [
    "DONE_TOOL",
    "AgentCancelledError",
    "AgentLoop",
    "AgentLoopError",
    "AssistantMessage",
    "ClaudeDelegate",
    "Conversation",
    "LLMDelegate",
    "OpenAIDelegate",
    "ProviderCallError",
    "StalledAgentError",
    "ToolCall",
    "ToolDescriptor",
    "ToolResultMessage",
    "TurnLimitError",
    "UserMessage",
    "create_delegate",
]


def create_delegate(provider: str, *, model: str | None = None, max_tokens: int = 10_000) -> LLMDelegate:
    if provider == "openai":
        return OpenAIDelegate(model=model, max_tokens=max_tokens)
    return ClaudeDelegate(model=model, max_tokens=max_tokens)
