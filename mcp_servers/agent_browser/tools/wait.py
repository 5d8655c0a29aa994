"""Wait for time to pass or for text to appear / disappear."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any

from .base import SmartToolError, Tool

if TYPE_CHECKING:
    from ..context import Context
    from ..response import Response

MAX_WAIT_SECONDS = 30.0
TEXT_TIMEOUT = 5.0


async def wait_for(context: Context, params: dict[str, Any], response: Response) -> None:
    seconds = params.get("time")
    text = params.get("text")
    text_gone = params.get("textGone")
    if seconds is None and not text and not text_gone:
        raise SmartToolError(
            tool="browser_wait_for",
            action="wait",
            reason="Either time, text or textGone must be provided",
            suggestion='e.g. {"text": "Welcome"} or {"time": 2}',
        )

    if seconds is not None:
        delay = min(MAX_WAIT_SECONDS, max(0.0, float(seconds)))
        response.add_code(f"await asyncio.sleep({delay})")
        await asyncio.sleep(delay)

    tab = context.current_tab_or_die()
    if text_gone:
        response.add_code(f"await page.get_by_text({json.dumps(text_gone)}).first.wait_for(state=\"hidden\")")
        if not await tab.wait_for_text(str(text_gone), gone=True, timeout=TEXT_TIMEOUT):
            raise SmartToolError(
                tool="browser_wait_for",
                action="wait",
                reason=f'Text "{text_gone}" is still visible after {TEXT_TIMEOUT:g}s',
                suggestion="Wait again or check the page snapshot",
            )
    if text:
        response.add_code(f"await page.get_by_text({json.dumps(text)}).first.wait_for(state=\"visible\")")
        if not await tab.wait_for_text(str(text), gone=False, timeout=TEXT_TIMEOUT):
            raise SmartToolError(
                tool="browser_wait_for",
                action="wait",
                reason=f'Text "{text}" did not appear within {TEXT_TIMEOUT:g}s',
                suggestion="Wait again or check the page snapshot",
            )

    response.add_result(f"Waited for {text_gone or text or f'{seconds}s'}")
    response.set_include_snapshot()


TOOLS = [Tool(name="browser_wait_for", handle=wait_for)]
