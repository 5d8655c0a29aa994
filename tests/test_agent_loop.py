"""
Agent loop driving a scripted delegate against a stub registry.
"""

from __future__ import annotations

import asyncio

import pytest

from mcp_servers.agent_browser.loop import delegate as shared
from mcp_servers.agent_browser.loop.agent import AgentLoop
from mcp_servers.agent_browser.loop.conversation import AssistantMessage, ToolCall, ToolResultMessage, UserMessage
from mcp_servers.agent_browser.loop.errors import (
    AgentCancelledError,
    ProviderCallError,
    StalledAgentError,
    TurnLimitError,
)
from mcp_servers.agent_browser.server.types import ToolResult


class _ScriptedDelegate:
    """Replays one scripted model turn per call: ``(text, calls)`` or an exception."""

    def __init__(self, turns: list, *, on_call=None) -> None:
        self.turns = list(turns)
        self.on_call = on_call
        self.conversation = None
        self.api_calls = 0

    def create_conversation(self, task, tools, one_shot):
        self.conversation = shared.create_conversation(task, tools, one_shot)
        return self.conversation

    async def make_api_call(self, conversation):
        self.api_calls += 1
        if self.on_call is not None:
            self.on_call(self.api_calls)
        turn = self.turns.pop(0) if self.turns else ("", [ToolCall(f"loop{self.api_calls}", "browser_snapshot")])
        if isinstance(turn, Exception):
            raise turn
        text, calls = turn
        conversation.append(AssistantMessage(text, tuple(calls) or None))
        return list(calls)

    def add_tool_results(self, conversation, results):
        shared.add_tool_results(conversation, results)

    def check_done_tool_call(self, call):
        return shared.check_done_tool_call(call)


class _Registry:
    def __init__(self, delays: dict[str, float] | None = None, failing: set[str] | None = None) -> None:
        self.delays = delays or {}
        self.failing = failing or set()
        self.calls: list[tuple[str, dict]] = []

    def definitions(self) -> list[dict]:
        return [
            {"name": "browser_navigate", "description": "Navigate", "inputSchema": {"type": "object", "properties": {}}},
            {"name": "browser_snapshot", "description": "Snapshot", "inputSchema": {"type": "object", "properties": {}}},
        ]

    async def call_tool(self, name: str, arguments: dict | None = None) -> ToolResult:
        self.calls.append((name, dict(arguments or {})))
        await asyncio.sleep(self.delays.get(name, 0))
        if name in self.failing:
            raise RuntimeError(f"{name} exploded")
        if name == "browser_click":
            return ToolResult.error("### Result\nError: Ref e9 not found")
        return ToolResult.text(f"ran {name}")


def _call(call_id: str, name: str = "browser_snapshot", **arguments) -> ToolCall:
    return ToolCall(call_id, name, arguments)


def test_run_until_done() -> None:
    delegate = _ScriptedDelegate(
        [
            ("", [_call("t1", "browser_navigate", url="https://example.com/")]),
            ("finished", [_call("t2", "done", result="Title is Example Domain")]),
        ]
    )
    registry = _Registry()
    result = asyncio.run(AgentLoop(delegate, registry).run_task("read the title"))

    assert result == "Title is Example Domain"
    assert registry.calls == [("browser_navigate", {"url": "https://example.com/"})]
    kinds = [type(m) for m in delegate.conversation.messages]
    assert kinds == [UserMessage, AssistantMessage, ToolResultMessage, AssistantMessage]
    assert [t.name for t in delegate.conversation.tools] == ["browser_navigate", "browser_snapshot", "done"]


def test_done_wins_over_sibling_calls() -> None:
    delegate = _ScriptedDelegate([("", [_call("t1"), _call("t2", "done")])])
    registry = _Registry()
    assert asyncio.run(AgentLoop(delegate, registry).run_task("task")) == ""
    assert registry.calls == []


def test_no_tool_calls_stalls() -> None:
    delegate = _ScriptedDelegate([("I think we are done here", [])])
    with pytest.raises(StalledAgentError) as excinfo:
        asyncio.run(AgentLoop(delegate, _Registry()).run_task("task"))
    assert excinfo.value.turn == 1
    assert excinfo.value.text == "I think we are done here"


def test_one_shot_without_calls_returns_text() -> None:
    delegate = _ScriptedDelegate([("Nothing to do", [])])
    assert asyncio.run(AgentLoop(delegate, _Registry()).run_task("task", one_shot=True)) == "Nothing to do"
    assert "done" not in [t.name for t in delegate.conversation.tools]


def test_one_shot_returns_results_after_one_round() -> None:
    delegate = _ScriptedDelegate([("", [_call("t1", "browser_navigate"), _call("t2")])])
    result = asyncio.run(AgentLoop(delegate, _Registry()).run_task("task", one_shot=True))
    assert result == "ran browser_navigate\nran browser_snapshot"
    assert delegate.api_calls == 1


def test_results_keep_call_order_and_carry_errors() -> None:
    delegate = _ScriptedDelegate(
        [
            ("", [_call("slow", "browser_navigate"), _call("bad", "browser_click"), _call("boom", "browser_press_key")]),
            ("", [_call("end", "done", result="ok")]),
        ]
    )
    registry = _Registry(delays={"browser_navigate": 0.02}, failing={"browser_press_key"})
    assert asyncio.run(AgentLoop(delegate, registry).run_task("task")) == "ok"

    results = [m for m in delegate.conversation.messages if isinstance(m, ToolResultMessage)]
    assert [r.tool_call_id for r in results] == ["slow", "bad", "boom"]
    assert results[0].is_error is False
    assert results[1].is_error is True
    assert "Ref e9 not found" in results[1].content
    assert results[2] == ToolResultMessage("boom", "Error: browser_press_key exploded", True)


def test_provider_failure_reports_turn_and_collected_results() -> None:
    cause = ConnectionError("overloaded")
    delegate = _ScriptedDelegate([("", [_call("t1"), _call("t2")]), cause])
    with pytest.raises(ProviderCallError) as excinfo:
        asyncio.run(AgentLoop(delegate, _Registry()).run_task("task"))
    assert excinfo.value.turn == 2
    assert excinfo.value.collected_results == 2
    assert excinfo.value.cause is cause
    assert excinfo.value.__cause__ is cause


def test_cancel_is_honored_between_turns() -> None:
    loop_holder: list[AgentLoop] = []

    def cancel_on_first(call_number: int) -> None:
        if call_number == 1:
            loop_holder[0].cancel()

    delegate = _ScriptedDelegate([("", [_call("t1"), _call("t2")])], on_call=cancel_on_first)
    agent = AgentLoop(delegate, _Registry())
    loop_holder.append(agent)

    with pytest.raises(AgentCancelledError) as excinfo:
        asyncio.run(agent.run_task("task"))
    assert excinfo.value.turn == 2
    # The batch started before the cancel is complete.
    assert delegate.conversation.pending_tool_call_ids() == []
    assert delegate.api_calls == 1


def test_turn_limit() -> None:
    delegate = _ScriptedDelegate([])
    with pytest.raises(TurnLimitError) as excinfo:
        asyncio.run(AgentLoop(delegate, _Registry(), max_turns=10).run_task("task", max_turns=3))
    assert excinfo.value.max_turns == 3
    assert delegate.api_calls == 3


def test_explicit_zero_turn_limit_is_honored() -> None:
    delegate = _ScriptedDelegate([])
    with pytest.raises(TurnLimitError) as excinfo:
        asyncio.run(AgentLoop(delegate, _Registry(), max_turns=10).run_task("task", max_turns=0))
    assert excinfo.value.max_turns == 0
    assert delegate.api_calls == 0
