from __future__ import annotations

from pathlib import Path

from mcp_servers.agent_browser.telemetry import ModalState, TabTelemetry


def test_console_events_are_buffered_and_drained() -> None:
    telemetry = TabTelemetry(downloads_dir="/tmp/downloads")
    telemetry.ingest(
        {
            "method": "Runtime.consoleAPICalled",
            "params": {"type": "log", "args": [{"type": "string", "value": "hello"}, {"type": "number", "value": 42}]},
        }
    )
    telemetry.ingest(
        {
            "method": "Runtime.exceptionThrown",
            "params": {"exceptionDetails": {"text": "Uncaught", "exception": {"description": "TypeError: x"}}},
        }
    )

    assert [str(m) for m in telemetry.console_messages()] == ["[LOG] hello 42", "[ERROR] TypeError: x"]
    assert len(telemetry.take_recent_console_messages()) == 2
    assert telemetry.take_recent_console_messages() == []
    assert len(telemetry.console_messages()) == 2


def test_requests_track_response_status() -> None:
    telemetry = TabTelemetry(downloads_dir="/tmp/downloads")
    telemetry.ingest(
        {
            "method": "Network.requestWillBeSent",
            "params": {"requestId": "r1", "type": "Fetch", "request": {"method": "post", "url": "https://api.example/x"}},
        }
    )
    telemetry.ingest(
        {"method": "Network.responseReceived", "params": {"requestId": "r1", "response": {"status": 201, "statusText": "Created"}}}
    )
    telemetry.ingest({"method": "Network.responseReceived", "params": {"requestId": "unknown", "response": {"status": 500}}})

    [request] = telemetry.requests()
    assert request.render() == "[POST] https://api.example/x => [201] Created"


def test_main_frame_navigation_resets_page_buffers() -> None:
    telemetry = TabTelemetry(downloads_dir="/tmp/downloads")
    telemetry.ingest({"method": "Log.entryAdded", "params": {"entry": {"level": "warning", "text": "old"}}})
    telemetry.ingest({"method": "Network.requestWillBeSent", "params": {"requestId": "old", "request": {"url": "https://a/"}}})
    telemetry.ingest({"method": "Network.requestWillBeSent", "params": {"requestId": "L2", "request": {"url": "https://b/"}}})

    telemetry.ingest({"method": "Page.frameNavigated", "params": {"frame": {"id": "child", "parentId": "main"}}})
    assert len(telemetry.requests()) == 2

    telemetry.ingest({"method": "Page.frameNavigated", "params": {"frame": {"id": "main", "loaderId": "L2"}}})
    assert telemetry.console_messages() == []
    assert [r.url for r in telemetry.requests()] == ["https://b/"]


def test_dialog_modal_state_lifecycle() -> None:
    opened: list[ModalState] = []
    telemetry = TabTelemetry(downloads_dir="/tmp/downloads", on_modal_opened=opened.append)
    telemetry.ingest({"method": "Page.javascriptDialogOpening", "params": {"type": "prompt", "message": "Name?"}})

    [state] = telemetry.modal_states()
    assert state.kind == "dialog"
    assert state.dialog_type == "prompt"
    assert state.description == '"prompt" dialog with message "Name?"'
    assert state.clears_with_tool == "browser_handle_dialog"
    assert opened == [state]

    telemetry.ingest({"method": "Page.javascriptDialogClosed", "params": {"result": True}})
    assert telemetry.modal_states() == []


def test_file_chooser_modal_state() -> None:
    telemetry = TabTelemetry(downloads_dir="/tmp/downloads")
    telemetry.ingest({"method": "Page.fileChooserOpened", "params": {"backendNodeId": 5, "mode": "selectSingle"}})
    telemetry.ingest({"method": "Page.fileChooserOpened", "params": {"backendNodeId": 6, "mode": "selectSingle"}})

    [state] = telemetry.modal_states()
    assert state.kind == "fileChooser"
    assert state.backend_node_id == 6
    assert state.clears_with_tool == "browser_file_upload"

    telemetry.clear_modal_state("fileChooser")
    assert telemetry.modal_states() == []


def test_download_progress_marks_entry_finished() -> None:
    telemetry = TabTelemetry(downloads_dir="/tmp/downloads")
    telemetry.ingest({"method": "Browser.downloadWillBegin", "params": {"guid": "g1", "suggestedFilename": "report.csv"}})

    [entry] = telemetry.downloads()
    assert entry.finished is False
    assert entry.output_file == str(Path("/tmp/downloads") / "report.csv")

    telemetry.ingest({"method": "Browser.downloadProgress", "params": {"guid": "g1", "state": "inProgress"}})
    assert telemetry.downloads()[0].finished is False
    telemetry.ingest({"method": "Browser.downloadProgress", "params": {"guid": "g1", "state": "completed"}})
    assert telemetry.downloads()[0].finished is True


def test_unknown_events_are_ignored() -> None:
    telemetry = TabTelemetry(downloads_dir="/tmp/downloads")
    telemetry.ingest({"method": "Page.lifecycleEvent", "params": {"name": "load"}})
    telemetry.ingest({"id": 3, "result": {}})
    assert telemetry.console_messages() == []
    assert telemetry.requests() == []
