"""
Response builder for one tool invocation.

A tool handler appends result lines, generated code and images; ``finish()``
captures the page state when the handler asked for it; ``serialize()`` renders
everything into MCP content blocks while keeping the text under the token budget.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from .budget import (
    EMERGENCY_TRUNCATION_CHARS,
    SNAPSHOT_TRUNCATION_CHARS,
    TOKEN_LIMIT,
    BudgetCheck,
    check_token_limit,
    estimate_tokens,
)
from .server.types import ToolContent, ToolResult
from .snapshot import SnapshotFilter
from .tab import TabSnapshot

if TYPE_CHECKING:
    from .context import Context
    from .tab import Tab
    from .telemetry import ModalState

logger = logging.getLogger("mcp.agent_browser.response")

MAX_ADVISED_PAGES = 5
DEFAULT_PAGE_LIMIT = 100
CONSOLE_LINE_CHARS = 100


@dataclass(frozen=True)
class ImageAttachment:
    content_type: str
    data: bytes


class Response:
    def __init__(self, context: Context, tool_name: str, tool_args: dict[str, Any]) -> None:
        self._context = context
        self.tool_name = tool_name
        self.tool_args = dict(tool_args or {})
        self._result: list[str] = []
        self._code: list[str] = []
        self._images: list[ImageAttachment] = []
        self._include_snapshot = False
        self._snapshot_filter: SnapshotFilter | None = None
        self._include_tabs = False
        self._tab_snapshot: TabSnapshot | None = None
        self._is_error = False

    # -- handling phase --------------------------------------------------

    def add_result(self, result: str) -> None:
        self._result.append(result)

    def add_error(self, error: str) -> None:
        self._result.append(error)
        self._is_error = True

    def is_error(self) -> bool:
        return self._is_error

    def result(self) -> str:
        return "\n".join(self._result)

    def add_code(self, code: str) -> None:
        self._code.append(code)

    def code(self) -> str:
        return "\n".join(self._code)

    def add_image(self, content_type: str, data: bytes) -> None:
        self._images.append(ImageAttachment(content_type=content_type, data=data))

    def images(self) -> list[ImageAttachment]:
        return list(self._images)

    def set_include_snapshot(self, flt: SnapshotFilter | None = None) -> None:
        self._include_snapshot = True
        if flt is not None:
            self._snapshot_filter = flt

    def set_include_tabs(self) -> None:
        self._include_tabs = True

    def check_token_limit(self, content: str) -> BudgetCheck:
        return check_token_limit(content)

    def add_pagination_warning(
        self,
        total_pages: int,
        extra_params: dict[str, Any] | None = None,
        *,
        limit: int = DEFAULT_PAGE_LIMIT,
    ) -> None:
        """Advise concrete ``{limit, offset}`` argument sets instead of the oversized listing."""
        base = {**self.tool_args, **(extra_params or {})}
        base.pop("limit", None)
        base.pop("offset", None)

        lines = [f"⚠️ Output too large, fetch it in {total_pages} pages:", ""]
        for page in range(1, min(total_pages, MAX_ADVISED_PAGES) + 1):
            params = {**base, "limit": limit, "offset": (page - 1) * limit}
            lines.append(f"Page {page}/{total_pages}: use parameters {json.dumps(params, ensure_ascii=False)}")
        if total_pages > MAX_ADVISED_PAGES:
            lines.append(f"... ({total_pages - MAX_ADVISED_PAGES} more pages)")
        lines.append("")
        lines.append("Or use a smaller limit to reduce the amount of data per page.")
        self.add_result("\n".join(lines))

    # -- finalization ----------------------------------------------------

    async def finish(self) -> None:
        tab = self._context.current_tab()
        if self._include_snapshot and tab is not None and self._tab_snapshot is None:
            snapshot = await tab.capture_snapshot(self._snapshot_filter)
            if snapshot.aria_snapshot:
                check = check_token_limit(snapshot.aria_snapshot)
                if check.needs_pagination:
                    logger.debug(
                        "snapshot_truncated tool=%s tokens=%d",
                        self.tool_name,
                        check.estimated_tokens,
                    )
                    snapshot = truncate_snapshot(snapshot, check)
            self._tab_snapshot = snapshot
        for each in self._context.tabs():
            await each.update_title()

    def tab_snapshot(self) -> TabSnapshot | None:
        return self._tab_snapshot

    # -- serialization ---------------------------------------------------

    def serialize(self) -> ToolResult:
        response: list[str] = []

        if self._result:
            response.append("### Result")
            response.append("\n".join(self._result))
            response.append("")

        if self._code:
            response.append("### Ran Playwright code\n```python\n" + "\n".join(self._code) + "\n```")
            response.append("")

        if self._include_snapshot or self._include_tabs:
            response.extend(render_tabs_markdown(self._context.tabs(), self._context.current_tab(), self._include_tabs))

        snapshot = self._tab_snapshot
        if snapshot is not None and snapshot.modal_states:
            response.extend(render_modal_states(snapshot.modal_states))
            response.append("")
        elif snapshot is not None:
            response.append(render_tab_snapshot(snapshot))
            response.append("")

        full = "\n".join(response)
        check = check_token_limit(full)
        logger.debug(
            "response tool=%s chars=%d tokens=%d needs_pagination=%s",
            self.tool_name,
            len(full),
            check.estimated_tokens,
            check.needs_pagination,
        )

        text = full
        if check.needs_pagination:
            text = emergency_truncate(full)
            logger.debug("response_truncated tool=%s from=%d to=%d", self.tool_name, len(full), len(text))

        content = [ToolContent(type="text", text=text)]
        if self._context.config.image_responses != "omit":
            for image in self._images:
                content.append(
                    ToolContent(
                        type="image",
                        data=base64.b64encode(image.data).decode("ascii"),
                        mime_type=image.content_type,
                    )
                )
        return ToolResult(content=content, is_error=self._is_error)


def snapshot_truncation_warning(estimated_tokens: int) -> str:
    return (
        "\n\n"
        f"⚠️ SNAPSHOT TRUNCATED: Page snapshot was too large ({estimated_tokens:,} tokens, limit: {TOKEN_LIMIT:,}).\n"
        "\n"
        "To get a complete snapshot, use browser_snapshot with filtering parameters:\n"
        '- {"maxElements": 200} - Limit number of elements\n'
        '- {"elementTypes": ["button", "textbox", "link", "heading"]} - Filter by element types\n'
        '- {"skipLargeTexts": true} - Skip elements with large text content\n'
        "- Combine parameters for best results\n"
        "\n"
        "--- TRUNCATED SNAPSHOT ABOVE ---"
    )


def truncate_snapshot(snapshot: TabSnapshot, check: BudgetCheck | None = None) -> TabSnapshot:
    """Cut the aria text to the snapshot budget and append remediation advice."""
    tokens = check.estimated_tokens if check is not None else estimate_tokens(snapshot.aria_snapshot)
    aria = snapshot.aria_snapshot[:SNAPSHOT_TRUNCATION_CHARS] + snapshot_truncation_warning(tokens)
    return replace(snapshot, aria_snapshot=aria)


RESPONSE_TRUNCATED_NOTICE = (
    f"\n\n⚠️ RESPONSE TRUNCATED: Output exceeded {TOKEN_LIMIT:,} tokens and was automatically truncated. "
    "Use browser_snapshot with filtering parameters for complete results."
)


def emergency_truncate(text: str) -> str:
    # Prefer a line boundary when one sits in the last 10% of the window.
    cut = text[:EMERGENCY_TRUNCATION_CHARS]
    newline = cut.rfind("\n")
    if newline >= int(EMERGENCY_TRUNCATION_CHARS * 0.9):
        cut = cut[:newline]
    return cut + RESPONSE_TRUNCATED_NOTICE


def trim(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def render_tab_snapshot(snapshot: TabSnapshot) -> str:
    lines: list[str] = []

    if snapshot.console_messages:
        lines.append("### New console messages")
        for message in snapshot.console_messages:
            lines.append(f"- {trim(str(message), CONSOLE_LINE_CHARS)}")
        lines.append("")

    if snapshot.downloads:
        lines.append("### Downloads")
        for entry in snapshot.downloads:
            if entry.finished:
                lines.append(f"- Downloaded file {entry.suggested_filename} to {entry.output_file}")
            else:
                lines.append(f"- Downloading file {entry.suggested_filename} ...")
        lines.append("")

    lines.append("### Page state")
    lines.append(f"- Page URL: {snapshot.url}")
    lines.append(f"- Page Title: {snapshot.title}")
    lines.append("- Page Snapshot:")
    lines.append("```yaml")
    lines.append(snapshot.aria_snapshot)
    lines.append("```")
    return "\n".join(lines)


def render_tabs_markdown(tabs: list[Tab], current: Tab | None, force: bool = False) -> list[str]:
    if len(tabs) == 1 and not force:
        return []
    if not tabs:
        return [
            "### Open tabs",
            'No open tabs. Use the "browser_navigate" tool to navigate to a page first.',
            "",
        ]
    lines = ["### Open tabs"]
    for index, tab in enumerate(tabs):
        marker = " (current)" if tab is current else ""
        lines.append(f"- {index}:{marker} [{tab.last_title()}] ({tab.url()})")
    lines.append("")
    return lines


def render_modal_states(states: list[ModalState]) -> list[str]:
    lines = ["### Modal state"]
    if not states:
        lines.append("- There is no modal state present")
    for state in states:
        lines.append(f'- [{state.description}]: can be handled by the "{state.clears_with_tool}" tool')
    return lines


__all__ = [
    "RESPONSE_TRUNCATED_NOTICE",
    "ImageAttachment",
    "Response",
    "emergency_truncate",
    "render_modal_states",
    "render_tab_snapshot",
    "render_tabs_markdown",
    "truncate_snapshot",
]
