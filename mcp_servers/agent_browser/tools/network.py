"""Network request listing (requests seen since the current page loaded)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .base import Tool
from .pagination import paginate_lines

if TYPE_CHECKING:
    from ..context import Context
    from ..response import Response


async def network_requests(context: Context, params: dict[str, Any], response: Response) -> None:
    tab = context.current_tab_or_die()
    requests = await tab.requests()
    paginate_lines(
        response,
        params,
        [r.render() for r in requests],
        label="Network requests",
        noun="network requests",
    )


TOOLS = [Tool(name="browser_network_requests", handle=network_requests)]
