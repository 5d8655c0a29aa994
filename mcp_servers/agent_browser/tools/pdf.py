"""Save the current page as PDF via Page.printToPDF."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .base import SmartToolError, Tool

if TYPE_CHECKING:
    from ..context import Context
    from ..response import Response

# Paper sizes in inches (width, height).
PAPER_FORMATS: dict[str, tuple[float, float]] = {
    "Letter": (8.5, 11),
    "Legal": (8.5, 14),
    "Tabloid": (11, 17),
    "Ledger": (17, 11),
    "A0": (33.1, 46.8),
    "A1": (23.4, 33.1),
    "A2": (16.54, 23.4),
    "A3": (11.7, 16.54),
    "A4": (8.27, 11.7),
    "A5": (5.83, 8.27),
    "A6": (4.13, 5.83),
}

_UNITS_PER_INCH = {"px": 96.0, "in": 1.0, "cm": 2.54, "mm": 25.4}
_LENGTH_RE = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*(px|in|cm|mm)?\s*$", re.IGNORECASE)


def to_inches(value: str | float | int, *, tool: str = "browser_pdf_save") -> float:
    """Convert ``"1cm"`` / ``"20px"`` / ``"0.5in"`` / bare pixels to inches."""
    if isinstance(value, (int, float)):
        return float(value) / _UNITS_PER_INCH["px"]
    match = _LENGTH_RE.match(str(value))
    if match is None:
        raise SmartToolError(
            tool=tool,
            action="validate",
            reason=f"Unsupported length: {value!r}",
            suggestion='Use a number with a unit: px, in, cm or mm (e.g. "1cm")',
        )
    amount = float(match.group(1))
    unit = (match.group(2) or "px").lower()
    return amount / _UNITS_PER_INCH[unit]


def build_print_options(params: dict[str, Any]) -> dict[str, Any]:
    """Translate tool arguments into Page.printToPDF parameters."""
    options: dict[str, Any] = {}
    fmt = params.get("format")
    if fmt:
        if fmt not in PAPER_FORMATS:
            raise SmartToolError(
                tool="browser_pdf_save",
                action="validate",
                reason=f"Unknown paper format: {fmt}",
                suggestion=f"Use one of {', '.join(PAPER_FORMATS)}",
            )
        options["paperWidth"], options["paperHeight"] = PAPER_FORMATS[fmt]
    elif params.get("width") or params.get("height"):
        if params.get("width"):
            options["paperWidth"] = to_inches(params["width"])
        if params.get("height"):
            options["paperHeight"] = to_inches(params["height"])
    else:
        options["paperWidth"], options["paperHeight"] = PAPER_FORMATS["A4"]

    if params.get("landscape") is not None:
        options["landscape"] = bool(params["landscape"])
    if params.get("printBackground") is not None:
        options["printBackground"] = bool(params["printBackground"])
    if params.get("scale") is not None:
        scale = float(params["scale"])
        if not 0.1 <= scale <= 2:
            raise SmartToolError(
                tool="browser_pdf_save",
                action="validate",
                reason=f"Scale {scale} out of range",
                suggestion="Scale amount must be between 0.1 and 2",
            )
        options["scale"] = scale
    margin = params.get("margin")
    if isinstance(margin, dict):
        for side in ("top", "bottom", "left", "right"):
            if margin.get(side):
                options[f"margin{side.capitalize()}"] = to_inches(margin[side])
    else:
        for side in ("Top", "Bottom", "Left", "Right"):
            options[f"margin{side}"] = 0
    if params.get("preferCSSPageSize") is not None:
        options["preferCSSPageSize"] = bool(params["preferCSSPageSize"])
    if params.get("outline") is not None:
        options["generateDocumentOutline"] = bool(params["outline"])
    if params.get("tagged") is not None:
        options["generateTaggedPDF"] = bool(params["tagged"])
    return options


def _code_options(params: dict[str, Any], path: str) -> str:
    shown: dict[str, Any] = {"path": path}
    if params.get("format"):
        shown["format"] = params["format"]
    elif params.get("width") or params.get("height"):
        for key in ("width", "height"):
            if params.get(key):
                shown[key] = params[key]
    else:
        shown["format"] = "A4"
    for key, py_key in (
        ("landscape", "landscape"),
        ("printBackground", "print_background"),
        ("scale", "scale"),
        ("margin", "margin"),
        ("preferCSSPageSize", "prefer_css_page_size"),
        ("outline", "outline"),
        ("tagged", "tagged"),
    ):
        if params.get(key) is not None:
            shown[py_key] = params[key]
    return ", ".join(f"{k}={json.dumps(v)}" for k, v in shown.items())


async def pdf_save(context: Context, params: dict[str, Any], response: Response) -> None:
    tab = context.current_tab_or_die()
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    file_name = context.output_file(str(params.get("filename") or f"page-{stamp}.pdf"))
    options = build_print_options(params)

    media = params.get("emulateMedia") or "print"
    if media != "print":
        response.add_code(f"await page.emulate_media(media={json.dumps(media)})")
        await tab.emulate_media(str(media))

    response.add_code(f"await page.pdf({_code_options(params, file_name)})")
    data = await tab.print_pdf(options)
    Path(file_name).write_bytes(data)

    if params.get("format"):
        fmt = str(params["format"])
    elif params.get("width") or params.get("height"):
        fmt = "custom size"
    else:
        fmt = "A4"
    orientation = "landscape" if params.get("landscape") else "portrait"
    response.add_result(f"Saved full page as PDF ({fmt}, {orientation}) to {file_name}")


TOOLS = [Tool(name="browser_pdf_save", handle=pdf_save)]
