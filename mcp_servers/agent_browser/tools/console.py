"""Console message listing."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .base import Tool
from .pagination import paginate_lines

if TYPE_CHECKING:
    from ..context import Context
    from ..response import Response


async def console_messages(context: Context, params: dict[str, Any], response: Response) -> None:
    tab = context.current_tab_or_die()
    messages = await tab.console_messages()
    paginate_lines(
        response,
        params,
        [str(m) for m in messages],
        label="Console messages",
        noun="console messages",
        more="messages",
    )


TOOLS = [Tool(name="browser_console_messages", handle=console_messages)]
