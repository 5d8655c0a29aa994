"""
Tool registry with dispatch table.

``call_tool`` is the tool boundary: whatever happens inside a handler comes
back as a serialized ``ToolResult``; tool failures are recorded on the response
and never raised to the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..http_client import HttpClientError
from ..response import Response, render_modal_states
from ..tools.base import SmartToolError, Tool
from .definitions import TOOL_DEFINITIONS_BY_NAME, validate_arguments
from .redaction import redact_tool_arguments
from .types import ToolResult

if TYPE_CHECKING:
    from ..context import Context
    from ..tab import Tab

logger = logging.getLogger("mcp.agent_browser.registry")


class ToolRegistry:
    """Registry for tools bound to one browser context."""

    def __init__(self, context: Context) -> None:
        self.context = context
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def register_many(self, tools: list[Tool]) -> None:
        for tool in tools:
            self.register(tool)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def definitions(self) -> list[dict[str, Any]]:
        """Schemas of the registered tools, in registration order."""
        return [TOOL_DEFINITIONS_BY_NAME[name] for name in self._tools if name in TOOL_DEFINITIONS_BY_NAME]

    def _modal_guard(self, tool: Tool, tab: Tab) -> str | None:
        states = tab.modal_states()
        kinds = {s.kind for s in states}
        if tool.clears_modal_state and tool.clears_modal_state not in kinds:
            return "\n".join(
                [
                    f'Error: The tool "{tool.name}" can only be used when there is related modal state present.',
                    *render_modal_states(states),
                ]
            )
        if not tool.clears_modal_state and states:
            return "\n".join(
                [f'Error: Tool "{tool.name}" does not handle the modal state.', *render_modal_states(states)]
            )
        return None

    async def _run(self, tool: Tool, tab: Tab | None, arguments: dict[str, Any], response: Response) -> None:
        if tab is not None:
            blocked = self._modal_guard(tool, tab)
            if blocked is not None:
                response.add_error(blocked)
                return
        try:
            await tool.handle(self.context, arguments, response)
            await response.finish()
        except SmartToolError as e:
            logger.info("tool_error tool=%s action=%s reason=%s", e.tool, e.action, e.reason)
            response.add_error(f"Error: {e.reason}\nSuggestion: {e.suggestion}")
        except HttpClientError as e:
            logger.info("http_error %s", str(e))
            response.add_error(f"Error: {e}")
        except Exception as exc:
            logger.exception("tool_call_failed")
            response.add_error(f"Error: {exc}")

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        """Run one tool and serialize its response."""
        arguments = arguments if isinstance(arguments, dict) else {}
        logger.info("tool=%s args=%s", name, redact_tool_arguments(name, arguments))
        response = Response(self.context, name, arguments)

        tool = self._tools.get(name)
        if tool is None:
            response.add_error(f"Error: Unknown tool: {name}")
            return response.serialize()

        schema = TOOL_DEFINITIONS_BY_NAME.get(name, {}).get("inputSchema") or {}
        invalid = validate_arguments(schema, arguments)
        if invalid is not None:
            response.add_error(f"Error: {invalid}")
            return response.serialize()

        if not tool.needs_tab:
            await self._run(tool, None, arguments, response)
            return response.serialize()

        try:
            tab = await self.context.ensure_tab()
        except SmartToolError as e:
            logger.info("tool_error tool=%s action=%s reason=%s", e.tool, e.action, e.reason)
            response.add_error(f"Error: {e.reason}\nSuggestion: {e.suggestion}")
            return response.serialize()
        except HttpClientError as e:
            logger.info("http_error %s", str(e))
            response.add_error(f"Error: {e}")
            return response.serialize()

        # One tool at a time per tab.
        async with tab.lock:
            await self._run(tool, tab, arguments, response)
        return response.serialize()


def create_default_registry(context: Context) -> ToolRegistry:
    from ..tools import all_tools

    registry = ToolRegistry(context)
    registry.register_many(all_tools())
    return registry


__all__ = ["ToolRegistry", "create_default_registry"]
