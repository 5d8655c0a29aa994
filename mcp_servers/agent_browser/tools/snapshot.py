"""Accessibility snapshot of the current page, with optional filters."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..snapshot import SnapshotFilter
from .base import Tool

if TYPE_CHECKING:
    from ..context import Context
    from ..response import Response


async def snapshot(context: Context, params: dict[str, Any], response: Response) -> None:
    context.current_tab_or_die()
    response.set_include_snapshot(SnapshotFilter.from_params(params))


TOOLS = [Tool(name="browser_snapshot", handle=snapshot)]
