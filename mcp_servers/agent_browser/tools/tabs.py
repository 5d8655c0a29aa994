"""
Tab management: list, open, select and close tabs.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from .base import SmartToolError, Tool, ensure_allowed_navigation

if TYPE_CHECKING:
    from ..context import Context
    from ..response import Response


def _index(params: dict[str, Any], action: str) -> int | None:
    index = params.get("index")
    if index is None:
        return None
    if not isinstance(index, int) or isinstance(index, bool):
        raise SmartToolError(
            tool="browser_tabs",
            action=action,
            reason=f"Invalid tab index: {index!r}",
            suggestion="Pass the numeric index shown in the Open tabs list",
        )
    return index


async def tabs(context: Context, params: dict[str, Any], response: Response) -> None:
    action = str(params.get("action") or "list")

    if action == "list":
        await context.ensure_tab()
        response.set_include_tabs()
        return

    if action == "new":
        url = params.get("url")
        if url:
            ensure_allowed_navigation(str(url), context.config, tool="browser_tabs")
        tab = await context.new_tab("about:blank")
        response.add_code("page = await context.new_page()")
        if url:
            await tab.navigate(str(url))
            response.add_code(f"await page.goto({json.dumps(url)})")
        response.set_include_snapshot()
        return

    if action == "select":
        index = _index(params, action)
        if index is None:
            raise SmartToolError(
                tool="browser_tabs",
                action=action,
                reason="Tab index is required",
                suggestion='Pass {"action": "select", "index": N}',
            )
        await context.select_tab(index)
        response.add_code(f"page = context.pages[{index}]")
        response.set_include_snapshot()
        return

    if action == "close":
        index = _index(params, action)
        url = await context.close_tab(index)
        response.add_code(f"# Closed tab {url}")
        response.add_code("await page.close()")
        response.set_include_tabs()
        if context.current_tab() is not None:
            response.set_include_snapshot()
        return

    raise SmartToolError(
        tool="browser_tabs",
        action=action,
        reason=f"Unknown action: {action}",
        suggestion='Use one of "list", "new", "select", "close"',
    )


TOOLS = [Tool(name="browser_tabs", handle=tabs, needs_tab=False)]
