"""
Input tools acting on snapshot refs.

Provides:
- browser_click: Click (or double click) an element
- browser_type: Type text into an editable element
- browser_press_key: Press a key or key combination
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from .base import SmartToolError, Tool

if TYPE_CHECKING:
    from ..context import Context
    from ..response import Response


def _locator(ref: str) -> str:
    return f"page.locator({json.dumps('aria-ref=' + ref)})"


def _ref(params: dict[str, Any], tool: str) -> str:
    ref = params.get("ref")
    if not isinstance(ref, str) or not ref:
        raise SmartToolError(
            tool=tool,
            action="resolve_ref",
            reason="Missing ref",
            suggestion="Pass the ref of the element from the page snapshot",
        )
    return ref


async def click(context: Context, params: dict[str, Any], response: Response) -> None:
    tab = context.current_tab_or_die()
    ref = _ref(params, "browser_click")
    backend_id = tab.resolve_ref(ref, tool="browser_click", element=str(params.get("element") or ""))
    double = bool(params.get("doubleClick", False))
    button = str(params.get("button") or "left")
    modifiers = [str(m) for m in params.get("modifiers") or []]

    options: dict[str, Any] = {}
    if button != "left":
        options["button"] = button
    if modifiers:
        options["modifiers"] = modifiers
    method = "dblclick" if double else "click"
    args = ", ".join(f"{k}={json.dumps(v)}" for k, v in options.items())
    response.add_code(f"await {_locator(ref)}.{method}({args})")

    await tab.click_ref(backend_id, button=button, double_click=double, modifiers=modifiers)
    response.set_include_snapshot()


async def type_text(context: Context, params: dict[str, Any], response: Response) -> None:
    tab = context.current_tab_or_die()
    ref = _ref(params, "browser_type")
    backend_id = tab.resolve_ref(ref, tool="browser_type", element=str(params.get("element") or ""))
    text = str(params.get("text") or "")
    slowly = bool(params.get("slowly", False))
    submit = bool(params.get("submit", False))

    if slowly:
        response.add_code(f"await {_locator(ref)}.press_sequentially({json.dumps(text)})")
    else:
        response.add_code(f"await {_locator(ref)}.fill({json.dumps(text)})")
    if submit:
        response.add_code(f'await {_locator(ref)}.press("Enter")')

    await tab.type_ref(backend_id, text, slowly=slowly, submit=submit)
    response.set_include_snapshot()


async def press_key(context: Context, params: dict[str, Any], response: Response) -> None:
    tab = context.current_tab_or_die()
    key = str(params.get("key") or "")
    if not key:
        raise SmartToolError(
            tool="browser_press_key",
            action="press",
            reason="Missing key",
            suggestion='Pass a key name such as "Enter", "ArrowLeft" or "a"',
        )
    response.add_code(f"# Press {key}")
    response.add_code(f"await page.keyboard.press({json.dumps(key)})")
    await tab.press_key(key)
    response.set_include_snapshot()


TOOLS = [
    Tool(name="browser_click", handle=click),
    Tool(name="browser_type", handle=type_text),
    Tool(name="browser_press_key", handle=press_key),
]
