from __future__ import annotations

import asyncio

import pytest

from mcp_servers.agent_browser import main as mcp_server
from mcp_servers.agent_browser.cli import build_parser
from mcp_servers.agent_browser.config import AgentBrowserConfig


@pytest.fixture
def sent(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    messages: list[dict] = []
    monkeypatch.setattr(mcp_server, "_write_message", messages.append)
    return messages


def _server(tmp_path) -> mcp_server.McpServer:
    config = AgentBrowserConfig(binary_path="/bin/true", profile_path=str(tmp_path / "p"), output_dir=str(tmp_path / "o"))
    return mcp_server.McpServer(config)


def test_initialize_negotiates_protocol(tmp_path, sent: list[dict]) -> None:
    server = _server(tmp_path)
    asyncio.run(server.dispatch({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {"protocolVersion": "2025-03-26"}}))
    assert sent[0]["id"] == 1
    assert sent[0]["result"]["protocolVersion"] == "2025-03-26"
    assert sent[0]["result"]["serverInfo"]["name"] == "agent-browser"


def test_tools_list_and_ping(tmp_path, sent: list[dict]) -> None:
    server = _server(tmp_path)
    asyncio.run(server.dispatch({"jsonrpc": "2.0", "id": 2, "method": "tools/list"}))
    asyncio.run(server.dispatch({"jsonrpc": "2.0", "id": 3, "method": "ping"}))
    asyncio.run(server.dispatch({"jsonrpc": "2.0", "method": "notifications/initialized"}))

    assert len(sent) == 2
    assert len(sent[0]["result"]["tools"]) == 16
    assert sent[1] == {"jsonrpc": "2.0", "id": 3, "result": {}}


def test_unknown_method(tmp_path, sent: list[dict]) -> None:
    asyncio.run(_server(tmp_path).dispatch({"jsonrpc": "2.0", "id": 4, "method": "resources/list"}))
    assert sent[0]["error"]["code"] == -32601


def test_tools_call_unknown_tool_is_error_result(tmp_path, sent: list[dict]) -> None:
    server = _server(tmp_path)
    asyncio.run(
        server.dispatch({"jsonrpc": "2.0", "id": 5, "method": "tools/call", "params": {"name": "nope", "arguments": {}}})
    )
    result = sent[0]["result"]
    assert result["isError"] is True
    assert result["content"][0]["type"] == "text"
    assert "Unknown tool: nope" in result["content"][0]["text"]


def test_cli_parser() -> None:
    parser = build_parser()
    assert parser.parse_args([]).command is None
    assert parser.parse_args(["serve"]).command == "serve"
    args = parser.parse_args(["run", "find the title", "--one-shot"])
    assert args.command == "run"
    assert args.task == "find the title"
    assert args.one_shot is True
