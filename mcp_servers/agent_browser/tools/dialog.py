"""
Dialog handling for JavaScript alerts, confirms and prompts.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from .base import SmartToolError, Tool

if TYPE_CHECKING:
    from ..context import Context
    from ..response import Response


async def handle_dialog(context: Context, params: dict[str, Any], response: Response) -> None:
    """Accept or dismiss the open dialog (prompt text goes to prompt() dialogs)."""
    tab = context.current_tab_or_die()
    dialog = next((m for m in tab.modal_states() if m.kind == "dialog"), None)
    if dialog is None:
        raise SmartToolError(
            tool="browser_handle_dialog",
            action="handle",
            reason="No dialog visible",
            suggestion="Dialogs are reported in the Modal state section of a tool response",
        )

    accept = bool(params.get("accept", True))
    prompt_text = params.get("promptText")
    prompt_text = str(prompt_text) if prompt_text is not None else None

    await tab.handle_dialog(accept, prompt_text)

    if accept:
        arg = json.dumps(prompt_text) if prompt_text is not None else ""
        response.add_code(f"# Accept {dialog.description}")
        response.add_code(f'page.once("dialog", lambda dialog: dialog.accept({arg}))')
    else:
        response.add_code(f"# Dismiss {dialog.description}")
        response.add_code('page.once("dialog", lambda dialog: dialog.dismiss())')
    response.set_include_snapshot()


TOOLS = [Tool(name="browser_handle_dialog", handle=handle_dialog, clears_modal_state="dialog")]
