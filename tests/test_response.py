"""
Response builder: section order, snapshot truncation, emergency truncation,
image attachments and the sticky error flag.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

from mcp_servers.agent_browser.response import RESPONSE_TRUNCATED_NOTICE, Response
from mcp_servers.agent_browser.tab import TabSnapshot
from mcp_servers.agent_browser.telemetry import ConsoleMessage, ModalState


class _Tab:
    def __init__(self, snapshot: TabSnapshot | None = None, *, title: str = "Example", url: str = "https://example.com/"):
        self.snapshot = snapshot or TabSnapshot(url=url, title=title, aria_snapshot='- button "Go" [ref=e1]')
        self.captured = 0
        self.titles_updated = 0
        self._title = title
        self._url = url

    async def capture_snapshot(self, flt=None) -> TabSnapshot:  # noqa: ARG002
        self.captured += 1
        return self.snapshot

    async def update_title(self) -> None:
        self.titles_updated += 1

    def last_title(self) -> str:
        return self._title

    def url(self) -> str:
        return self._url


class _Context:
    def __init__(self, tabs: list[_Tab] | None = None, *, image_responses: str = "allow") -> None:
        self.config = SimpleNamespace(image_responses=image_responses)
        self._tabs = tabs or []

    def tabs(self) -> list[_Tab]:
        return list(self._tabs)

    def current_tab(self) -> _Tab | None:
        return self._tabs[0] if self._tabs else None


def test_serialize_orders_result_code_then_page_state() -> None:
    tab = _Tab()
    response = Response(_Context([tab]), "browser_navigate", {"url": "https://example.com/"})
    response.add_result("Navigated")
    response.add_code('await page.goto("https://example.com/")')
    response.set_include_snapshot()
    asyncio.run(response.finish())

    text = response.serialize().text_content()
    result_at = text.index("### Result")
    code_at = text.index("### Ran Playwright code")
    state_at = text.index("### Page state")
    assert result_at < code_at < state_at
    assert "```python\nawait page.goto" in text
    assert "- Page URL: https://example.com/" in text
    assert "- Page Title: Example" in text
    assert '```yaml\n- button "Go" [ref=e1]\n```' in text
    # A single tab is not listed unless asked for.
    assert "### Open tabs" not in text


def test_serialize_without_result_or_code_omits_sections() -> None:
    response = Response(_Context([_Tab()]), "browser_snapshot", {})
    text = response.serialize().text_content()
    assert "### Result" not in text
    assert "### Ran Playwright code" not in text


def test_finish_captures_snapshot_only_once() -> None:
    tab = _Tab()
    response = Response(_Context([tab]), "browser_snapshot", {})
    response.set_include_snapshot()

    async def _run() -> None:
        await response.finish()
        await response.finish()

    asyncio.run(_run())
    assert tab.captured == 1
    assert tab.titles_updated == 2


def test_finish_without_snapshot_request_still_refreshes_titles() -> None:
    first, second = _Tab(), _Tab(title="Other")
    response = Response(_Context([first, second]), "browser_click", {})
    asyncio.run(response.finish())
    assert first.captured == 0
    assert response.tab_snapshot() is None
    assert first.titles_updated == 1
    assert second.titles_updated == 1


def test_oversized_snapshot_is_truncated_with_advice() -> None:
    aria = "x" * 100_000
    tab = _Tab(TabSnapshot(url="https://big.example/", title="Big", aria_snapshot=aria))
    response = Response(_Context([tab]), "browser_snapshot", {})
    response.set_include_snapshot()
    asyncio.run(response.finish())

    captured = response.tab_snapshot()
    assert captured is not None
    assert captured.aria_snapshot.startswith("x" * 70_400)
    assert "x" * 70_401 not in captured.aria_snapshot
    assert "SNAPSHOT TRUNCATED" in captured.aria_snapshot
    assert "25,000 tokens" in captured.aria_snapshot
    assert '{"maxElements": 200}' in captured.aria_snapshot

    text = response.serialize().text_content()
    assert "SNAPSHOT TRUNCATED" in text
    assert "RESPONSE TRUNCATED" not in text


def test_modal_state_replaces_page_state() -> None:
    dialog = ModalState(
        kind="dialog",
        description='"confirm" dialog with message "Sure?"',
        clears_with_tool="browser_handle_dialog",
        dialog_type="confirm",
    )
    snapshot = TabSnapshot(url="https://example.com/", title="Example", aria_snapshot="", modal_states=[dialog])
    response = Response(_Context([_Tab(snapshot)]), "browser_click", {})
    response.set_include_snapshot()
    asyncio.run(response.finish())

    text = response.serialize().text_content()
    assert "### Modal state" in text
    assert '- ["confirm" dialog with message "Sure?"]: can be handled by the "browser_handle_dialog" tool' in text
    assert "### Page state" not in text


def test_console_messages_are_listed_and_trimmed() -> None:
    messages = [ConsoleMessage(type="log", text="hello"), ConsoleMessage(type="error", text="e" * 300)]
    snapshot = TabSnapshot(url="https://example.com/", title="Example", aria_snapshot="", console_messages=messages)
    response = Response(_Context([_Tab(snapshot)]), "browser_click", {})
    response.set_include_snapshot()
    asyncio.run(response.finish())

    text = response.serialize().text_content()
    assert "### New console messages" in text
    assert "- [LOG] hello" in text
    assert "- [ERROR] " + "e" * 92 + "..." in text


def test_emergency_truncation_keeps_images() -> None:
    response = Response(_Context([_Tab()]), "browser_evaluate", {})
    response.add_result("y" * 100_000)
    response.add_image("image/png", b"png")

    result = response.serialize()
    assert [c["type"] for c in result.to_content_list()] == ["text", "image"]
    assert result.to_content_list()[1]["data"] == "cG5n"
    text = result.text_content()
    assert text.endswith(RESPONSE_TRUNCATED_NOTICE)
    assert len(text) == 79_200 + len(RESPONSE_TRUNCATED_NOTICE)


def test_emergency_truncation_preserves_error_flag() -> None:
    failed = Response(_Context([_Tab()]), "browser_evaluate", {})
    failed.add_error("x" * 100_000)
    result = failed.serialize()
    assert result.text_content().endswith(RESPONSE_TRUNCATED_NOTICE)
    assert result.is_error is True

    ok = Response(_Context([_Tab()]), "browser_evaluate", {})
    ok.add_result("x" * 100_000)
    result = ok.serialize()
    assert result.text_content().endswith(RESPONSE_TRUNCATED_NOTICE)
    assert result.is_error is False


def test_emergency_truncation_snaps_to_line_boundary() -> None:
    response = Response(_Context([_Tab()]), "browser_console_messages", {})
    for _ in range(100):
        response.add_result("z" * 999)

    text = response.serialize().text_content()
    body = text[: -len(RESPONSE_TRUNCATED_NOTICE)]
    assert text.endswith(RESPONSE_TRUNCATED_NOTICE)
    assert len(body) < 79_200
    assert body.split("\n")[-1] == "z" * 999


def test_images_are_attached_unless_omitted() -> None:
    allowed = Response(_Context([_Tab()]), "browser_take_screenshot", {})
    allowed.add_result("Took a screenshot")
    allowed.add_image("image/png", b"abc")
    content = allowed.serialize().to_content_list()
    assert content[1] == {"type": "image", "data": "YWJj", "mimeType": "image/png"}

    omitted = Response(_Context([_Tab()], image_responses="omit"), "browser_take_screenshot", {})
    omitted.add_image("image/png", b"abc")
    assert [c["type"] for c in omitted.serialize().to_content_list()] == ["text"]


def test_error_flag_is_sticky() -> None:
    response = Response(_Context(), "browser_click", {})
    response.add_error("Error: boom")
    response.add_result("more text")
    assert response.is_error() is True
    result = response.serialize()
    assert result.is_error is True
    assert "Error: boom\nmore text" in result.text_content()


def test_tabs_are_listed_when_more_than_one() -> None:
    first = _Tab(title="One", url="https://one.example/")
    second = _Tab(title="Two", url="https://two.example/")
    response = Response(_Context([first, second]), "browser_snapshot", {})
    response.set_include_snapshot()
    asyncio.run(response.finish())

    text = response.serialize().text_content()
    assert "### Open tabs" in text
    assert "- 0: (current) [One] (https://one.example/)" in text
    assert "- 1: [Two] (https://two.example/)" in text


def test_forced_tab_listing_without_tabs() -> None:
    response = Response(_Context(), "browser_tabs", {"action": "list"})
    response.set_include_tabs()
    text = response.serialize().text_content()
    assert 'No open tabs. Use the "browser_navigate" tool to navigate to a page first.' in text


def test_pagination_warning_caps_advice_at_five_pages() -> None:
    response = Response(_Context(), "browser_network_requests", {"limit": 10, "offset": 20, "foo": 1})
    response.add_pagination_warning(7)
    text = response.result()
    assert text.startswith("⚠️ Output too large, fetch it in 7 pages:")
    assert 'Page 1/7: use parameters {"foo": 1, "limit": 100, "offset": 0}' in text
    assert 'Page 5/7: use parameters {"foo": 1, "limit": 100, "offset": 400}' in text
    assert "Page 6/7" not in text
    assert "... (2 more pages)" in text
    assert text.endswith("Or use a smaller limit to reduce the amount of data per page.")
