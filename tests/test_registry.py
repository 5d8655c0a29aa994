"""
Tool boundary: validation, modal guard, error conversion and per-tab serialization.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

from mcp_servers.agent_browser.http_client import HttpClientError
from mcp_servers.agent_browser.server.definitions import TOOL_DEFINITIONS
from mcp_servers.agent_browser.server.registry import ToolRegistry, create_default_registry
from mcp_servers.agent_browser.telemetry import ModalState
from mcp_servers.agent_browser.tools.base import SmartToolError, Tool

_DIALOG = ModalState(
    kind="dialog",
    description='"alert" dialog with message "Hi"',
    clears_with_tool="browser_handle_dialog",
    dialog_type="alert",
)


class _Tab:
    def __init__(self, modal_states: list[ModalState] | None = None) -> None:
        self.lock = asyncio.Lock()
        self.states = list(modal_states or [])
        self.titles_updated = 0

    def modal_states(self) -> list[ModalState]:
        return list(self.states)

    async def update_title(self) -> None:
        self.titles_updated += 1

    def last_title(self) -> str:
        return "Example"

    def url(self) -> str:
        return "https://example.com/"


class _Context:
    def __init__(self, tab: _Tab | None = None, *, fail: Exception | None = None) -> None:
        self.config = SimpleNamespace(image_responses="allow")
        self.tab = tab or _Tab()
        self.fail = fail
        self.ensure_calls = 0

    async def ensure_tab(self) -> _Tab:
        self.ensure_calls += 1
        if self.fail is not None:
            raise self.fail
        return self.tab

    def tabs(self) -> list[_Tab]:
        return [self.tab]

    def current_tab(self) -> _Tab:
        return self.tab


def _registry(context: _Context, *tools: Tool) -> ToolRegistry:
    registry = ToolRegistry(context)
    registry.register_many(list(tools))
    return registry


def test_unknown_tool_is_an_error_result() -> None:
    result = asyncio.run(_registry(_Context()).call_tool("browser_fly", {}))
    assert result.is_error is True
    assert result.text_content() == "### Result\nError: Unknown tool: browser_fly\n"


def test_schema_violation_never_reaches_handler() -> None:
    called = []

    async def handler(context, params, response) -> None:  # noqa: ARG001
        called.append(params)

    context = _Context()
    registry = _registry(context, Tool(name="browser_console_messages", handle=handler))

    bad_type = asyncio.run(registry.call_tool("browser_console_messages", {"limit": "ten"}))
    assert bad_type.is_error is True
    assert "Argument limit must be of type integer" in bad_type.text_content()

    unknown_key = asyncio.run(registry.call_tool("browser_console_messages", {"page": 2}))
    assert "Unknown argument: page" in unknown_key.text_content()

    assert called == []
    assert context.ensure_calls == 0


def test_handler_result_is_serialized_and_finished() -> None:
    async def handler(context, params, response) -> None:  # noqa: ARG001
        response.add_result("ok")

    context = _Context()
    result = asyncio.run(_registry(context, Tool(name="browser_snapshot", handle=handler)).call_tool("browser_snapshot"))
    assert result.is_error is False
    assert "### Result\nok" in result.text_content()
    assert context.tab.titles_updated == 1


def test_smart_tool_error_becomes_error_text() -> None:
    async def handler(context, params, response) -> None:  # noqa: ARG001
        raise SmartToolError(
            tool="browser_click",
            action="resolve",
            reason="Ref e9 not found in the current page snapshot",
            suggestion="Capture a new snapshot",
        )

    context = _Context()
    registry = _registry(context, Tool(name="browser_click", handle=handler))
    result = asyncio.run(registry.call_tool("browser_click", {"element": "Save", "ref": "e9"}))
    assert result.is_error is True
    assert "Error: Ref e9 not found in the current page snapshot\nSuggestion: Capture a new snapshot" in result.text_content()
    # finish() is skipped on failure.
    assert context.tab.titles_updated == 0


def test_unexpected_exception_is_contained() -> None:
    async def handler(context, params, response) -> None:  # noqa: ARG001
        raise RuntimeError("boom")

    result = asyncio.run(_registry(_Context(), Tool(name="browser_snapshot", handle=handler)).call_tool("browser_snapshot"))
    assert result.is_error is True
    assert "Error: boom" in result.text_content()


def test_browser_unavailable_is_an_error_result() -> None:
    async def handler(context, params, response) -> None:  # noqa: ARG001
        raise AssertionError("should not run")

    context = _Context(fail=HttpClientError("CDP not reachable on port 9222"))
    result = asyncio.run(_registry(context, Tool(name="browser_snapshot", handle=handler)).call_tool("browser_snapshot"))
    assert result.is_error is True
    assert "Error: CDP not reachable on port 9222" in result.text_content()


def test_modal_state_blocks_unrelated_tools() -> None:
    called = []

    async def handler(context, params, response) -> None:  # noqa: ARG001
        called.append(True)

    context = _Context(_Tab([_DIALOG]))
    registry = _registry(context, Tool(name="browser_snapshot", handle=handler))
    result = asyncio.run(registry.call_tool("browser_snapshot"))

    text = result.text_content()
    assert result.is_error is True
    assert 'Error: Tool "browser_snapshot" does not handle the modal state.' in text
    assert '- ["alert" dialog with message "Hi"]: can be handled by the "browser_handle_dialog" tool' in text
    assert called == []


def test_modal_tool_requires_matching_state() -> None:
    called = []

    async def handler(context, params, response) -> None:  # noqa: ARG001
        called.append(params)

    tool = Tool(name="browser_handle_dialog", handle=handler, clears_modal_state="dialog")

    idle = asyncio.run(_registry(_Context(), tool).call_tool("browser_handle_dialog", {"accept": True}))
    assert idle.is_error is True
    assert 'can only be used when there is related modal state present' in idle.text_content()
    assert "- There is no modal state present" in idle.text_content()
    assert called == []

    active = asyncio.run(_registry(_Context(_Tab([_DIALOG])), tool).call_tool("browser_handle_dialog", {"accept": True}))
    assert active.is_error is False
    assert called == [{"accept": True}]


def test_tab_free_tools_skip_ensure_tab() -> None:
    async def handler(context, params, response) -> None:  # noqa: ARG001
        response.add_result("tabs listed")

    context = _Context()
    registry = _registry(context, Tool(name="browser_tabs", handle=handler, needs_tab=False))
    result = asyncio.run(registry.call_tool("browser_tabs", {"action": "list"}))
    assert "tabs listed" in result.text_content()
    assert context.ensure_calls == 0


def test_calls_on_one_tab_do_not_interleave() -> None:
    events: list[str] = []

    async def handler(context, params, response) -> None:  # noqa: ARG001
        events.append(f"start:{params['key']}")
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        events.append(f"end:{params['key']}")

    registry = _registry(_Context(), Tool(name="browser_press_key", handle=handler))

    async def _run() -> None:
        await asyncio.gather(
            registry.call_tool("browser_press_key", {"key": "a"}),
            registry.call_tool("browser_press_key", {"key": "b"}),
        )

    asyncio.run(_run())
    assert events == ["start:a", "end:a", "start:b", "end:b"]


def test_default_registry_exposes_every_defined_tool() -> None:
    registry = create_default_registry(_Context())
    names = [d["name"] for d in TOOL_DEFINITIONS]
    assert len(registry) == len(names) == 16
    assert sorted(registry.tool_names) == sorted(names)
    assert sorted(d["name"] for d in registry.definitions()) == sorted(names)
    assert registry.get("browser_handle_dialog").clears_modal_state == "dialog"
    assert registry.get("browser_file_upload").clears_modal_state == "fileChooser"
    assert registry.get("browser_tabs").needs_tab is False
