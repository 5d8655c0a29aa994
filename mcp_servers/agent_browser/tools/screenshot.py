"""Screenshots of the viewport, the full page or one element."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .base import SmartToolError, Tool

if TYPE_CHECKING:
    from ..context import Context
    from ..response import Response

JPEG_QUALITY = 50


def to_jpeg(png_data: bytes, quality: int = JPEG_QUALITY) -> bytes:
    """Re-encode a PNG capture as JPEG (screenshots are mostly read by a model)."""
    from PIL import Image

    img = Image.open(BytesIO(png_data))
    if img.mode not in ("RGB", "L"):
        img = img.convert("RGB")
    out = BytesIO()
    img.save(out, format="JPEG", quality=quality)
    return out.getvalue()


async def take_screenshot(context: Context, params: dict[str, Any], response: Response) -> None:
    tab = context.current_tab_or_die()
    raw = bool(params.get("raw", False))
    full_page = bool(params.get("fullPage", False))
    ref = params.get("ref")
    element = params.get("element")
    if bool(ref) != bool(element):
        raise SmartToolError(
            tool="browser_take_screenshot",
            action="validate",
            reason="Both element and ref must be provided, or neither",
            suggestion="Pass element and ref together to capture one element",
        )
    if ref and full_page:
        raise SmartToolError(
            tool="browser_take_screenshot",
            action="validate",
            reason="fullPage cannot be used with element screenshots",
            suggestion="Drop fullPage or drop element/ref",
        )

    file_type = "png" if raw else "jpeg"
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    file_name = context.output_file(str(params.get("filename") or f"page-{stamp}.{file_type}"))

    backend_id = tab.resolve_ref(str(ref), tool="browser_take_screenshot", element=str(element)) if ref else None
    png = await tab.screenshot(full_page=full_page, backend_id=backend_id)
    data = png if raw else to_jpeg(png)
    Path(file_name).write_bytes(data)

    options: dict[str, Any] = {"type": file_type, "path": file_name}
    if not raw:
        options["quality"] = JPEG_QUALITY
    if full_page:
        options["full_page"] = True
    args = ", ".join(f"{k}={json.dumps(v)}" for k, v in options.items())
    target = f'page.locator({json.dumps("aria-ref=" + str(ref))})' if ref else "page"
    response.add_code(f"# Screenshot {element or ('full page' if full_page else 'viewport')} and save it as {file_name}")
    response.add_code(f"await {target}.screenshot({args})")

    response.add_result(f"Took the {element or ('full page' if full_page else 'viewport')} screenshot and saved it as {file_name}")
    response.add_image("image/png" if raw else "image/jpeg", data)


TOOLS = [Tool(name="browser_take_screenshot", handle=take_screenshot)]
