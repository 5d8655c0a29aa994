"""
Tool handlers through the default registry, against an in-memory tab.
"""

from __future__ import annotations

import asyncio

from mcp_servers.agent_browser.config import AgentBrowserConfig
from mcp_servers.agent_browser.server.registry import create_default_registry
from mcp_servers.agent_browser.tab import TabSnapshot
from mcp_servers.agent_browser.telemetry import ConsoleMessage, ModalState, NetworkRequest
from mcp_servers.agent_browser.tools.base import SmartToolError


class _FakeTab:
    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.states: list[ModalState] = []
        self.page_url = "about:blank"
        self.navigated: list[str] = []
        self.dialogs: list[tuple[bool, str | None]] = []
        self.history = False
        self.messages: list[ConsoleMessage] = []
        self.network: list[NetworkRequest] = []
        self.eval_value = None

    def modal_states(self) -> list[ModalState]:
        return list(self.states)

    async def navigate(self, url: str) -> None:
        self.navigated.append(url)
        self.page_url = url

    async def go_back(self) -> bool:
        return self.history

    async def capture_snapshot(self, flt=None) -> TabSnapshot:  # noqa: ARG002
        return TabSnapshot(
            url=self.page_url,
            title="Example Domain",
            aria_snapshot='- heading "Example Domain" [level=1] [ref=e1]',
            modal_states=list(self.states),
        )

    async def update_title(self) -> None:
        return None

    def last_title(self) -> str:
        return "Example Domain"

    def url(self) -> str:
        return self.page_url

    async def console_messages(self) -> list[ConsoleMessage]:
        return list(self.messages)

    async def requests(self) -> list[NetworkRequest]:
        return list(self.network)

    async def handle_dialog(self, accept: bool, prompt_text: str | None = None) -> None:
        self.dialogs.append((accept, prompt_text))
        self.states = [s for s in self.states if s.kind != "dialog"]

    def resolve_ref(self, ref: str, *, tool: str, element: str = "") -> int:
        if ref != "e1":
            raise SmartToolError(
                tool=tool,
                action="resolve",
                reason=f"Ref {ref} not found in the current page snapshot",
                suggestion="Capture a new snapshot",
            )
        return 101

    async def evaluate(self, function: str, backend_id: int | None = None):  # noqa: ARG002
        return self.eval_value


class _FakeContext:
    def __init__(self, config: AgentBrowserConfig) -> None:
        self.config = config
        self.tab = _FakeTab()

    async def ensure_tab(self) -> _FakeTab:
        return self.tab

    def tabs(self) -> list[_FakeTab]:
        return [self.tab]

    def current_tab(self) -> _FakeTab:
        return self.tab

    def current_tab_or_die(self) -> _FakeTab:
        return self.tab


def _setup(tmp_path, **config_overrides):
    values = {"binary_path": "/bin/true", "profile_path": str(tmp_path / "p"), "output_dir": str(tmp_path / "o")}
    values.update(config_overrides)
    context = _FakeContext(AgentBrowserConfig(**values))
    return context, create_default_registry(context)


def test_navigate_reports_code_and_page_state(tmp_path) -> None:
    context, registry = _setup(tmp_path)
    result = asyncio.run(registry.call_tool("browser_navigate", {"url": "https://example.com/"}))

    text = result.text_content()
    assert result.is_error is False
    assert context.tab.navigated == ["https://example.com/"]
    assert 'await page.goto("https://example.com/")' in text
    assert "- Page URL: https://example.com/" in text
    assert '- heading "Example Domain" [level=1] [ref=e1]' in text


def test_navigate_respects_allowlist(tmp_path) -> None:
    context, registry = _setup(tmp_path, allow_hosts=["example.com"])
    result = asyncio.run(registry.call_tool("browser_navigate", {"url": "https://evil.test/"}))
    assert result.is_error is True
    assert "Host evil.test is not in allowlist" in result.text_content()
    assert context.tab.navigated == []


def test_navigate_back_without_history(tmp_path) -> None:
    _, registry = _setup(tmp_path)
    result = asyncio.run(registry.call_tool("browser_navigate_back", {}))
    assert result.is_error is True
    assert "No previous page in history" in result.text_content()


def test_console_messages_tool(tmp_path) -> None:
    context, registry = _setup(tmp_path)
    context.tab.messages = [ConsoleMessage(type="log", text=f"message {i}") for i in range(3)]

    text = asyncio.run(registry.call_tool("browser_console_messages", {"limit": 2})).text_content()
    assert "Console messages 1-2 of 3:" in text
    assert "[LOG] message 1" in text
    assert "[LOG] message 2" not in text
    assert 'Next page: {"limit": 2, "offset": 2}' in text


def test_network_requests_tool(tmp_path) -> None:
    context, registry = _setup(tmp_path)
    context.tab.network = [NetworkRequest(request_id="1", method="GET", url="https://example.com/", status=200, status_text="OK")]
    text = asyncio.run(registry.call_tool("browser_network_requests", {})).text_content()
    assert "[GET] https://example.com/ => [200] OK" in text


def test_handle_dialog_dismisses(tmp_path) -> None:
    context, registry = _setup(tmp_path)
    context.tab.states = [
        ModalState(
            kind="dialog",
            description='"confirm" dialog with message "Leave?"',
            clears_with_tool="browser_handle_dialog",
            dialog_type="confirm",
        )
    ]
    result = asyncio.run(registry.call_tool("browser_handle_dialog", {"accept": False}))

    text = result.text_content()
    assert result.is_error is False
    assert context.tab.dialogs == [(False, None)]
    assert 'page.once("dialog", lambda dialog: dialog.dismiss())' in text
    assert "### Modal state" not in text


def test_evaluate_on_element_and_unknown_ref(tmp_path) -> None:
    context, registry = _setup(tmp_path)
    context.tab.eval_value = {"title": "Example Domain"}

    ok = asyncio.run(
        registry.call_tool("browser_evaluate", {"function": "(el) => el.textContent", "element": "Heading", "ref": "e1"})
    )
    assert '"title": "Example Domain"' in ok.text_content()
    assert 'page.locator("aria-ref=e1").evaluate' in ok.text_content()

    missing = asyncio.run(
        registry.call_tool("browser_evaluate", {"function": "(el) => el.id", "element": "Gone", "ref": "e7"})
    )
    assert missing.is_error is True
    assert "Ref e7 not found" in missing.text_content()
