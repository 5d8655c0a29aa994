"""
File upload into the open file chooser.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .base import SmartToolError, Tool

if TYPE_CHECKING:
    from ..context import Context
    from ..response import Response


async def file_upload(context: Context, params: dict[str, Any], response: Response) -> None:
    """Set files on the chooser; an empty ``paths`` list cancels it."""
    tab = context.current_tab_or_die()
    raw = params.get("paths")
    paths = [str(Path(p).expanduser().resolve()) for p in raw] if isinstance(raw, list) else []

    missing = [p for p in paths if not Path(p).is_file()]
    if missing:
        raise SmartToolError(
            tool="browser_file_upload",
            action="upload",
            reason=f"File not found: {missing[0]}",
            suggestion="Pass absolute paths of existing files",
            details={"missing": missing},
        )

    if not paths:
        tab.cancel_file_chooser()
        response.add_code("# Cancel the file chooser")
        response.set_include_snapshot()
        return

    await tab.set_file_input(paths)
    response.add_code("# Select files for upload")
    response.add_code(f"await file_chooser.set_files({json.dumps(paths)})")
    response.set_include_snapshot()


TOOLS = [Tool(name="browser_file_upload", handle=file_upload, clears_modal_state="fileChooser")]
