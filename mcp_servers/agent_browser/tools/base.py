"""
Base utilities for browser tools.

Provides:
- SmartToolError: Structured errors for AI agents
- Tool: A named tool handler plus the modal state it is allowed to clear
- URL validation for navigation
"""

from __future__ import annotations

import urllib.parse
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..config import AgentBrowserConfig
    from ..context import Context
    from ..response import Response

ToolHandler = Callable[["Context", dict[str, Any], "Response"], Awaitable[None]]


@dataclass
class SmartToolError(Exception):
    """Structured error with context for AI agents."""

    tool: str
    action: str
    reason: str
    suggestion: str
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.tool}] {self.action} failed: {self.reason}. Suggestion: {self.suggestion}"


@dataclass(frozen=True)
class Tool:
    name: str
    handle: ToolHandler
    # Modal state kind ("dialog" / "fileChooser") this tool resolves, if any.
    clears_modal_state: str | None = None
    needs_tab: bool = True


def ensure_allowed_navigation(url: str, config: AgentBrowserConfig, *, tool: str = "browser_navigate") -> None:
    """Relaxed check for browser navigation - allows about:, data:, file: schemes."""
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme in ("about", "data", "blob"):
        return
    if parsed.scheme == "file":
        if config.allow_hosts:
            raise SmartToolError(
                tool=tool,
                action="navigate",
                reason="file:// navigation is not allowed while MCP_ALLOW_HOSTS is set",
                suggestion="Unset MCP_ALLOW_HOSTS to open local files",
            )
        return
    if parsed.scheme not in ("http", "https"):
        raise SmartToolError(
            tool=tool,
            action="navigate",
            reason=f"Unsupported scheme: {parsed.scheme or '(none)'}",
            suggestion="Use a full URL such as https://example.com",
        )
    if not config.is_host_allowed(parsed.hostname or ""):
        raise SmartToolError(
            tool=tool,
            action="navigate",
            reason=f"Host {parsed.hostname} is not in allowlist",
            suggestion="Add the host to MCP_ALLOW_HOSTS",
        )


__all__ = ["SmartToolError", "Tool", "ToolHandler", "ensure_allowed_navigation"]
