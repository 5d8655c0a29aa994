"""Per-tab CDP telemetry: console, network, downloads and modal states.

Buffers are fed from CDP events (no page injection) and are bounded so long
sessions never grow without limit.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

_MAX_CONSOLE = 1000
_MAX_REQUESTS = 2000


def _str(value: Any, *, max_len: int = 2000) -> str:
    text = "" if value is None else str(value)
    if len(text) > max_len:
        return text[:max_len]
    return text


@dataclass(frozen=True)
class ConsoleMessage:
    type: str
    text: str
    url: str = ""
    line: int | None = None

    def __str__(self) -> str:
        location = f" @ {self.url}:{self.line}" if self.url else ""
        return f"[{self.type.upper()}] {self.text}{location}"


@dataclass
class NetworkRequest:
    request_id: str
    method: str
    url: str
    resource_type: str = ""
    status: int | None = None
    status_text: str = ""

    def render(self) -> str:
        line = f"[{self.method.upper()}] {self.url}"
        if self.status is not None:
            line += f" => [{self.status}] {self.status_text}"
        return line


@dataclass
class DownloadEntry:
    guid: str
    suggested_filename: str
    output_file: str
    finished: bool = False


@dataclass(frozen=True)
class ModalState:
    kind: str  # "dialog" or "fileChooser"
    description: str
    clears_with_tool: str
    dialog_type: str = ""
    backend_node_id: int | None = None


def _console_text(args: Any) -> str:
    parts: list[str] = []
    if isinstance(args, list):
        for arg in args:
            if not isinstance(arg, dict):
                continue
            if "value" in arg:
                parts.append(_str(arg.get("value")))
            elif arg.get("description"):
                parts.append(_str(arg.get("description")))
            elif arg.get("type"):
                parts.append(_str(arg.get("type")))
    return " ".join(parts)


def _top_frame(params: dict[str, Any]) -> tuple[str, int | None]:
    stack = params.get("stackTrace")
    if isinstance(stack, dict):
        frames = stack.get("callFrames")
        if isinstance(frames, list) and frames and isinstance(frames[0], dict):
            top = frames[0]
            line = top.get("lineNumber")
            return _str(top.get("url"), max_len=500), line if isinstance(line, int) else None
    return "", None


@dataclass
class TabTelemetry:
    """Event buffers for one page target."""

    downloads_dir: str
    on_modal_opened: Callable[[ModalState], None] | None = None
    _console: list[ConsoleMessage] = field(default_factory=list)
    _recent_console: list[ConsoleMessage] = field(default_factory=list)
    _requests: dict[str, NetworkRequest] = field(default_factory=dict)
    _downloads: dict[str, DownloadEntry] = field(default_factory=dict)
    _modal_states: list[ModalState] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def ingest(self, event: dict[str, Any]) -> None:
        method = event.get("method")
        params = event.get("params") if isinstance(event.get("params"), dict) else {}
        handler = _HANDLERS.get(method) if isinstance(method, str) else None
        if handler is not None:
            handler(self, params)

    # -- console ---------------------------------------------------------

    def _add_console(self, message: ConsoleMessage) -> None:
        with self._lock:
            self._console.append(message)
            self._recent_console.append(message)
            if len(self._console) > _MAX_CONSOLE:
                del self._console[: len(self._console) - _MAX_CONSOLE]
            if len(self._recent_console) > _MAX_CONSOLE:
                del self._recent_console[: len(self._recent_console) - _MAX_CONSOLE]

    def _on_console_api(self, params: dict[str, Any]) -> None:
        url, line = _top_frame(params)
        kind = _str(params.get("type") or "log", max_len=40)
        self._add_console(ConsoleMessage(type=kind, text=_console_text(params.get("args")), url=url, line=line))

    def _on_exception(self, params: dict[str, Any]) -> None:
        details = params.get("exceptionDetails") if isinstance(params.get("exceptionDetails"), dict) else {}
        exc = details.get("exception") if isinstance(details.get("exception"), dict) else {}
        text = _str(exc.get("description") or details.get("text") or "Uncaught exception")
        line = details.get("lineNumber")
        self._add_console(
            ConsoleMessage(
                type="error",
                text=text,
                url=_str(details.get("url"), max_len=500),
                line=line if isinstance(line, int) else None,
            )
        )

    def _on_log_entry(self, params: dict[str, Any]) -> None:
        entry = params.get("entry") if isinstance(params.get("entry"), dict) else {}
        line = entry.get("lineNumber")
        self._add_console(
            ConsoleMessage(
                type=_str(entry.get("level") or "log", max_len=40),
                text=_str(entry.get("text")),
                url=_str(entry.get("url"), max_len=500),
                line=line if isinstance(line, int) else None,
            )
        )

    def console_messages(self) -> list[ConsoleMessage]:
        with self._lock:
            return list(self._console)

    def take_recent_console_messages(self) -> list[ConsoleMessage]:
        with self._lock:
            recent = self._recent_console
            self._recent_console = []
            return recent

    # -- network ---------------------------------------------------------

    def _on_request(self, params: dict[str, Any]) -> None:
        request = params.get("request") if isinstance(params.get("request"), dict) else {}
        request_id = _str(params.get("requestId"), max_len=200)
        if not request_id:
            return
        with self._lock:
            self._requests[request_id] = NetworkRequest(
                request_id=request_id,
                method=_str(request.get("method") or "GET", max_len=20),
                url=_str(request.get("url")),
                resource_type=_str(params.get("type"), max_len=40),
            )
            if len(self._requests) > _MAX_REQUESTS:
                oldest = next(iter(self._requests))
                self._requests.pop(oldest, None)

    def _on_response(self, params: dict[str, Any]) -> None:
        response = params.get("response") if isinstance(params.get("response"), dict) else {}
        with self._lock:
            entry = self._requests.get(_str(params.get("requestId"), max_len=200))
            if entry is None:
                return
            status = response.get("status")
            entry.status = int(status) if isinstance(status, (int, float)) else None
            entry.status_text = _str(response.get("statusText"), max_len=200)

    def requests(self) -> list[NetworkRequest]:
        with self._lock:
            return list(self._requests.values())

    # -- navigation ------------------------------------------------------

    def _on_frame_navigated(self, params: dict[str, Any]) -> None:
        frame = params.get("frame") if isinstance(params.get("frame"), dict) else {}
        if frame.get("parentId"):
            return
        with self._lock:
            self._console = []
            self._recent_console = []
            # The document request of the new page is already recorded; keep it.
            doc_id = _str(frame.get("loaderId"), max_len=200)
            kept = self._requests.get(doc_id)
            self._requests = {doc_id: kept} if kept is not None else {}

    # -- downloads -------------------------------------------------------

    def _on_download_begin(self, params: dict[str, Any]) -> None:
        guid = _str(params.get("guid"), max_len=200)
        name = _str(params.get("suggestedFilename"), max_len=500) or "download"
        if not guid:
            return
        with self._lock:
            self._downloads[guid] = DownloadEntry(
                guid=guid,
                suggested_filename=name,
                output_file=str(Path(self.downloads_dir) / name),
            )

    def _on_download_progress(self, params: dict[str, Any]) -> None:
        with self._lock:
            entry = self._downloads.get(_str(params.get("guid"), max_len=200))
            if entry is not None and params.get("state") == "completed":
                entry.finished = True

    def downloads(self) -> list[DownloadEntry]:
        with self._lock:
            return list(self._downloads.values())

    # -- modal states ----------------------------------------------------

    def _open_modal(self, state: ModalState) -> None:
        with self._lock:
            self._modal_states = [m for m in self._modal_states if m.kind != state.kind]
            self._modal_states.append(state)
        callback = self.on_modal_opened
        if callback is not None:
            callback(state)

    def _on_dialog_opening(self, params: dict[str, Any]) -> None:
        dialog_type = _str(params.get("type") or "alert", max_len=40)
        message = _str(params.get("message"), max_len=500)
        self._open_modal(
            ModalState(
                kind="dialog",
                description=f'"{dialog_type}" dialog with message "{message}"',
                clears_with_tool="browser_handle_dialog",
                dialog_type=dialog_type,
            )
        )

    def _on_dialog_closed(self, params: dict[str, Any]) -> None:  # noqa: ARG002
        self.clear_modal_state("dialog")

    def _on_file_chooser(self, params: dict[str, Any]) -> None:
        node = params.get("backendNodeId")
        self._open_modal(
            ModalState(
                kind="fileChooser",
                description="File chooser",
                clears_with_tool="browser_file_upload",
                backend_node_id=int(node) if isinstance(node, int) else None,
            )
        )

    def modal_states(self) -> list[ModalState]:
        with self._lock:
            return list(self._modal_states)

    def clear_modal_state(self, kind: str) -> None:
        with self._lock:
            self._modal_states = [m for m in self._modal_states if m.kind != kind]


_HANDLERS: dict[str, Callable[[TabTelemetry, dict[str, Any]], None]] = {
    "Runtime.consoleAPICalled": TabTelemetry._on_console_api,
    "Runtime.exceptionThrown": TabTelemetry._on_exception,
    "Log.entryAdded": TabTelemetry._on_log_entry,
    "Network.requestWillBeSent": TabTelemetry._on_request,
    "Network.responseReceived": TabTelemetry._on_response,
    "Page.frameNavigated": TabTelemetry._on_frame_navigated,
    "Page.downloadWillBegin": TabTelemetry._on_download_begin,
    "Browser.downloadWillBegin": TabTelemetry._on_download_begin,
    "Page.downloadProgress": TabTelemetry._on_download_progress,
    "Browser.downloadProgress": TabTelemetry._on_download_progress,
    "Page.javascriptDialogOpening": TabTelemetry._on_dialog_opening,
    "Page.javascriptDialogClosed": TabTelemetry._on_dialog_closed,
    "Page.fileChooserOpened": TabTelemetry._on_file_chooser,
}


__all__ = [
    "ConsoleMessage",
    "DownloadEntry",
    "ModalState",
    "NetworkRequest",
    "TabTelemetry",
]
