"""
Navigation tools: open a URL, go back, go forward.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from .base import SmartToolError, Tool, ensure_allowed_navigation

if TYPE_CHECKING:
    from ..context import Context
    from ..response import Response


async def navigate(context: Context, params: dict[str, Any], response: Response) -> None:
    url = str(params.get("url") or "").strip()
    if not url:
        raise SmartToolError(
            tool="browser_navigate",
            action="navigate",
            reason="Missing url",
            suggestion='Pass a full URL, e.g. {"url": "https://example.com"}',
        )
    ensure_allowed_navigation(url, context.config)
    tab = context.current_tab_or_die()
    await tab.navigate(url)

    response.add_code(f"await page.goto({json.dumps(url)})")
    response.set_include_snapshot()


async def navigate_back(context: Context, params: dict[str, Any], response: Response) -> None:
    tab = context.current_tab_or_die()
    if not await tab.go_back():
        raise SmartToolError(
            tool="browser_navigate_back",
            action="back",
            reason="No previous page in history",
            suggestion="Use browser_navigate to open a page instead",
        )
    response.add_code("await page.go_back()")
    response.set_include_snapshot()


async def navigate_forward(context: Context, params: dict[str, Any], response: Response) -> None:
    tab = context.current_tab_or_die()
    if not await tab.go_forward():
        raise SmartToolError(
            tool="browser_navigate_forward",
            action="forward",
            reason="No next page in history",
            suggestion="Use browser_navigate to open a page instead",
        )
    response.add_code("await page.go_forward()")
    response.set_include_snapshot()


TOOLS = [
    Tool(name="browser_navigate", handle=navigate),
    Tool(name="browser_navigate_back", handle=navigate_back),
    Tool(name="browser_navigate_forward", handle=navigate_forward),
]
