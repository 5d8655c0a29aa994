"""
JavaScript evaluation on the page or on one element.

Large results never reach the transcript whole: the token budget is checked
first, then the caller's ``maxLength``.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from ..budget import TOKEN_LIMIT, estimate_tokens
from .base import Tool

if TYPE_CHECKING:
    from ..context import Context
    from ..response import Response

DEFAULT_MAX_LENGTH = 10_000
PREVIEW_CHARS = 1000


def _js_type(value: Any) -> str:
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def format_result(value: Any, *, max_length: int = DEFAULT_MAX_LENGTH, return_summary: bool = False) -> str:
    """Render an evaluation result under the token budget and ``max_length``."""
    rendered = "undefined" if value is None else json.dumps(value, indent=2, ensure_ascii=False)
    tokens = estimate_tokens(rendered)

    if tokens > TOKEN_LIMIT:
        if return_summary:
            summary = {
                "type": _js_type(value),
                "length": len(rendered),
                "estimatedTokens": tokens,
                "preview": rendered[:PREVIEW_CHARS],
                "truncated": True,
                "suggestion": "Use maxLength parameter or modify JavaScript to return smaller dataset",
            }
            return json.dumps(summary, indent=2, ensure_ascii=False)
        return (
            f"⚠️ JavaScript execution result too large (~{tokens:,} tokens), exceeds limit ({TOKEN_LIMIT:,} tokens).\n\n"
            "Recommended solutions:\n\n"
            f'1. Limit length: {{"maxLength": {max_length // 2}}}\n'
            '2. Return summary: {"returnSummary": true}\n'
            "3. Modify JavaScript code to return smaller dataset\n\n"
            f"Result preview (first {PREVIEW_CHARS} characters):\n{rendered[:PREVIEW_CHARS]}..."
        )

    if len(rendered) > max_length:
        truncated = rendered[:max_length]
        if return_summary:
            summary = {
                "type": _js_type(value),
                "length": len(rendered),
                "preview": truncated,
                "truncated": True,
                "suggestion": "Use maxLength parameter or set returnSummary: false for full result",
            }
            return json.dumps(summary, indent=2, ensure_ascii=False)
        return f"⚠️ Result truncated to {max_length} characters (original: {len(rendered)} characters).\n\n{truncated}..."

    return rendered


async def evaluate(context: Context, params: dict[str, Any], response: Response) -> None:
    response.set_include_snapshot()
    tab = context.current_tab_or_die()
    function = str(params.get("function") or "")

    backend_id = None
    ref = params.get("ref")
    if ref and params.get("element"):
        backend_id = tab.resolve_ref(str(ref), tool="browser_evaluate", element=str(params["element"]))
        response.add_code(f"await page.locator({json.dumps('aria-ref=' + str(ref))}).evaluate({json.dumps(function)})")
    else:
        response.add_code(f"await page.evaluate({json.dumps(function)})")

    value = await tab.evaluate(function, backend_id)
    max_length = params.get("maxLength")
    response.add_result(
        format_result(
            value,
            max_length=int(max_length) if isinstance(max_length, int) and max_length > 0 else DEFAULT_MAX_LENGTH,
            return_summary=bool(params.get("returnSummary", False)),
        )
    )


TOOLS = [Tool(name="browser_evaluate", handle=evaluate)]
