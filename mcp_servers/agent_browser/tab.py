"""
One browser tab: async facade over a page-level CDP connection.

CDP calls are blocking (websocket-client), so every operation runs in a worker
thread via ``asyncio.to_thread``. Actions that can open a JavaScript dialog or a
file chooser are raced against the modal state: when a modal opens first, the
action is abandoned and the modal is reported instead.
"""

from __future__ import annotations

import asyncio
import base64
import contextlib
import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .config import AgentBrowserConfig
from .http_client import HttpClientError
from .session_cdp import CdpConnection
from .snapshot import SnapshotFilter, render_aria_snapshot
from .telemetry import ConsoleMessage, DownloadEntry, ModalState, NetworkRequest, TabTelemetry
from .tools.base import SmartToolError

logger = logging.getLogger("mcp.agent_browser.tab")

T = TypeVar("T")

_KEY_CODES = {
    "Enter": 13,
    "Tab": 9,
    "Escape": 27,
    "Backspace": 8,
    "Delete": 46,
    "Space": 32,
    "ArrowUp": 38,
    "ArrowDown": 40,
    "ArrowLeft": 37,
    "ArrowRight": 39,
    "Home": 36,
    "End": 35,
    "PageUp": 33,
    "PageDown": 34,
}
_KEY_TEXT = {"Enter": "\r", "Tab": "\t", "Space": " "}
_MODIFIER_BITS = {"Alt": 1, "Control": 2, "Meta": 4, "Shift": 8}
_BUTTONS = ("left", "right", "middle")


@dataclass(frozen=True)
class TabSnapshot:
    """Captured page state handed to the response; never mutated after capture."""

    url: str
    title: str
    aria_snapshot: str
    console_messages: list[ConsoleMessage] = field(default_factory=list)
    downloads: list[DownloadEntry] = field(default_factory=list)
    modal_states: list[ModalState] = field(default_factory=list)


def _quad_center(box: dict[str, Any]) -> tuple[float, float]:
    model = box.get("model") if isinstance(box, dict) else None
    quad = None
    if isinstance(model, dict):
        quad = model.get("border") or model.get("content") or model.get("padding")
    if not isinstance(quad, list) or len(quad) < 8:
        raise HttpClientError("Missing box model quad for element")
    xs = [float(quad[i]) for i in (0, 2, 4, 6)]
    ys = [float(quad[i]) for i in (1, 3, 5, 7)]
    return sum(xs) / 4.0, sum(ys) / 4.0


def _consume(task: asyncio.Future[Any]) -> None:
    if not task.cancelled():
        task.exception()


class Tab:
    """A page target plus its telemetry and the refs of its last snapshot."""

    def __init__(
        self,
        config: AgentBrowserConfig,
        target: dict[str, Any],
        conn: CdpConnection | None = None,
    ) -> None:
        self.config = config
        self.target_id = str(target.get("id") or "")
        self._url = str(target.get("url") or "")
        self._last_title = str(target.get("title") or "")
        self.telemetry = TabTelemetry(downloads_dir=config.output_dir, on_modal_opened=self._on_modal_opened)
        self.conn = conn or CdpConnection(str(target["webSocketDebuggerUrl"]), timeout=config.cdp_timeout)
        self.conn.set_event_sink(self.telemetry.ingest)
        self.refs: dict[str, int] = {}
        self.lock = asyncio.Lock()
        self._modal_waiter: tuple[asyncio.AbstractEventLoop, asyncio.Event] | None = None

    # -- lifecycle -------------------------------------------------------

    def initialize(self) -> None:
        """Enable the CDP domains telemetry depends on (blocking)."""
        for method, params in (
            ("Page.enable", None),
            ("Runtime.enable", None),
            ("Network.enable", None),
            ("Log.enable", None),
            ("DOM.enable", None),
            ("Page.setInterceptFileChooserDialog", {"enabled": True}),
        ):
            try:
                self.conn.send(method, params)
            except HttpClientError as exc:
                logger.debug("cdp_enable_failed method=%s err=%s", method, exc)
        download = {"behavior": "allow", "downloadPath": self.config.output_dir, "eventsEnabled": True}
        try:
            self.conn.send("Browser.setDownloadBehavior", download)
        except HttpClientError:
            with contextlib.suppress(HttpClientError):
                self.conn.send("Page.setDownloadBehavior", {"behavior": "allow", "downloadPath": self.config.output_dir})

    def close(self) -> None:
        self.conn.close()

    # -- modal race ------------------------------------------------------

    def _on_modal_opened(self, state: ModalState) -> None:
        logger.info("modal_opened tab=%s kind=%s", self.target_id, state.kind)
        self.conn.interrupt()
        waiter = self._modal_waiter
        if waiter is not None:
            loop, event = waiter
            loop.call_soon_threadsafe(event.set)

    def _new_modal_since(self, before: set[str]) -> bool:
        return any(m.kind not in before for m in self.telemetry.modal_states())

    async def _race_modal(self, func: Callable[..., T], *args: Any) -> tuple[T | None, bool]:
        """Run ``func`` in a worker thread; return ``(result, modal_won)``."""
        before = {m.kind for m in self.telemetry.modal_states()}
        opened = asyncio.Event()
        self._modal_waiter = (asyncio.get_running_loop(), opened)
        action = asyncio.ensure_future(asyncio.to_thread(func, *args))
        waiter = asyncio.ensure_future(opened.wait())
        try:
            await asyncio.wait({action, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            self._modal_waiter = None
            waiter.cancel()
        if self._new_modal_since(before):
            if action.done():
                _consume(action)
            else:
                action.add_done_callback(_consume)
            return None, True
        return await action, False

    async def wait_for_completion(self, func: Callable[..., T], *args: Any) -> T | None:
        """Run an input action, then let navigation it triggered settle."""
        await asyncio.to_thread(self._forget_loading_events)
        result, modal_won = await self._race_modal(func, *args)
        if not modal_won:
            await asyncio.to_thread(self._settle)
        return result

    def _forget_loading_events(self) -> None:
        self.conn.drain_events()
        for name in ("Page.frameStartedLoading", "Page.frameStoppedLoading", "Page.loadEventFired"):
            while self.conn.pop_event(name) is not None:
                pass

    def _settle(self, timeout: float = 5.0) -> None:
        time.sleep(0.1)
        self.conn.drain_events()
        if self.conn.pop_event("Page.frameStartedLoading") is None:
            return
        self.conn.wait_for_event("Page.frameStoppedLoading", timeout=timeout)

    # -- navigation ------------------------------------------------------

    def _navigate(self, url: str) -> None:
        self._forget_loading_events()
        result = self.conn.send("Page.navigate", {"url": url})
        error_text = result.get("errorText") if isinstance(result, dict) else None
        # ERR_ABORTED is what Chrome reports when the navigation turned into a download.
        if error_text and error_text != "net::ERR_ABORTED":
            raise HttpClientError(f"Navigation to {url} failed: {error_text}")
        self.conn.wait_for_event("Page.loadEventFired", timeout=max(self.config.cdp_timeout, 10.0))
        self._url = url

    async def navigate(self, url: str) -> None:
        await self._race_modal(self._navigate, url)

    def _history_step(self, delta: int) -> bool:
        history = self.conn.send("Page.getNavigationHistory")
        entries = history.get("entries") or []
        index = int(history.get("currentIndex", 0)) + delta
        if index < 0 or index >= len(entries):
            return False
        self._forget_loading_events()
        self.conn.send("Page.navigateToHistoryEntry", {"entryId": entries[index]["id"]})
        self.conn.wait_for_event("Page.loadEventFired", timeout=max(self.config.cdp_timeout, 10.0))
        self._url = str(entries[index].get("url") or self._url)
        return True

    async def go_back(self) -> bool:
        moved, _ = await self._race_modal(self._history_step, -1)
        return bool(moved)

    async def go_forward(self) -> bool:
        moved, _ = await self._race_modal(self._history_step, 1)
        return bool(moved)

    # -- state -----------------------------------------------------------

    def _refresh_info(self) -> None:
        info = self.conn.send("Target.getTargetInfo")
        target = info.get("targetInfo") if isinstance(info, dict) else None
        if isinstance(target, dict):
            self._url = str(target.get("url") or self._url)
            self._last_title = str(target.get("title") or "")

    async def update_title(self) -> None:
        try:
            await asyncio.to_thread(self._refresh_info)
        except HttpClientError as exc:
            logger.debug("title_refresh_failed tab=%s err=%s", self.target_id, exc)

    def last_title(self) -> str:
        return self._last_title

    def url(self) -> str:
        return self._url

    async def sync_events(self) -> None:
        await asyncio.to_thread(self.conn.drain_events)

    async def console_messages(self) -> list[ConsoleMessage]:
        await self.sync_events()
        return self.telemetry.console_messages()

    async def requests(self) -> list[NetworkRequest]:
        await self.sync_events()
        return self.telemetry.requests()

    def modal_states(self) -> list[ModalState]:
        return self.telemetry.modal_states()

    # -- snapshot --------------------------------------------------------

    def _capture_aria(self, flt: SnapshotFilter) -> str:
        tree = self.conn.send("Accessibility.getFullAXTree")
        rendered = render_aria_snapshot(tree.get("nodes") or [], flt)
        self.refs = rendered.refs
        self._refresh_info()
        return rendered.text

    def _modal_snapshot(self) -> TabSnapshot:
        return TabSnapshot(
            url=self._url,
            title=self._last_title,
            aria_snapshot="",
            console_messages=self.telemetry.take_recent_console_messages(),
            downloads=self.telemetry.downloads(),
            modal_states=self.telemetry.modal_states(),
        )

    async def capture_snapshot(self, flt: SnapshotFilter | None = None) -> TabSnapshot:
        await self.sync_events()
        if self.telemetry.modal_states():
            return self._modal_snapshot()
        aria, modal_won = await self._race_modal(self._capture_aria, flt or SnapshotFilter())
        if modal_won:
            return self._modal_snapshot()
        return TabSnapshot(
            url=self._url,
            title=self._last_title,
            aria_snapshot=aria or "",
            console_messages=self.telemetry.take_recent_console_messages(),
            downloads=self.telemetry.downloads(),
            modal_states=[],
        )

    # -- refs ------------------------------------------------------------

    def resolve_ref(self, ref: str, *, tool: str, element: str = "") -> int:
        backend_id = self.refs.get(ref)
        if backend_id is None:
            raise SmartToolError(
                tool=tool,
                action="resolve_ref",
                reason=f"Ref {ref} not found in the current page snapshot",
                suggestion="Capture a new snapshot with browser_snapshot and use a ref from it",
                details={"ref": ref, "element": element},
            )
        return backend_id

    def _center(self, backend_id: int) -> tuple[float, float]:
        with contextlib.suppress(HttpClientError):
            self.conn.send("DOM.scrollIntoViewIfNeeded", {"backendNodeId": backend_id})
        return _quad_center(self.conn.send("DOM.getBoxModel", {"backendNodeId": backend_id}))

    # -- input -----------------------------------------------------------

    def _click(self, backend_id: int, button: str, click_count: int, modifiers: int) -> None:
        x, y = self._center(backend_id)
        self.conn.send("Input.dispatchMouseEvent", {"type": "mouseMoved", "x": x, "y": y, "modifiers": modifiers})
        for event_type in ("mousePressed", "mouseReleased"):
            self.conn.send(
                "Input.dispatchMouseEvent",
                {
                    "type": event_type,
                    "x": x,
                    "y": y,
                    "button": button,
                    "clickCount": click_count,
                    "modifiers": modifiers,
                },
            )

    async def click_ref(
        self,
        backend_id: int,
        *,
        button: str = "left",
        double_click: bool = False,
        modifiers: list[str] | None = None,
    ) -> None:
        bits = sum(_MODIFIER_BITS.get(m, 0) for m in modifiers or [])
        await self.wait_for_completion(
            self._click, backend_id, button if button in _BUTTONS else "left", 2 if double_click else 1, bits
        )

    def _dispatch_key(self, key: str, modifiers: int = 0) -> None:
        key_code = _KEY_CODES.get(key, ord(key[0].upper()) if len(key) == 1 else 0)
        code = f"Key{key.upper()}" if len(key) == 1 and key.isalpha() else key
        text = _KEY_TEXT.get(key, key if len(key) == 1 else "")
        down: dict[str, Any] = {
            "type": "keyDown",
            "key": key,
            "code": code,
            "windowsVirtualKeyCode": key_code,
            "modifiers": modifiers,
        }
        if text and not modifiers & (_MODIFIER_BITS["Control"] | _MODIFIER_BITS["Meta"]):
            down["text"] = text
        self.conn.send("Input.dispatchKeyEvent", down)
        self.conn.send(
            "Input.dispatchKeyEvent",
            {"type": "keyUp", "key": key, "code": code, "windowsVirtualKeyCode": key_code, "modifiers": modifiers},
        )

    def _press(self, combo: str) -> None:
        # "Control+Shift+A" style combos
        *mods, key = combo.split("+") if combo != "+" else ["+"]
        self._dispatch_key(key or "+", sum(_MODIFIER_BITS.get(m, 0) for m in mods))

    async def press_key(self, key: str) -> None:
        await self.wait_for_completion(self._press, key)

    def _type(self, backend_id: int, text: str, slowly: bool, submit: bool) -> None:
        self.conn.send("DOM.focus", {"backendNodeId": backend_id})
        if slowly:
            for char in text:
                self._dispatch_key(char)
        else:
            self.conn.send("Input.insertText", {"text": text})
        if submit:
            self._dispatch_key("Enter")

    async def type_ref(self, backend_id: int, text: str, *, slowly: bool = False, submit: bool = False) -> None:
        await self.wait_for_completion(self._type, backend_id, text, slowly, submit)

    # -- evaluation ------------------------------------------------------

    def _evaluate(self, function: str, backend_id: int | None) -> Any:
        if backend_id is None:
            result = self.conn.send(
                "Runtime.evaluate",
                {"expression": f"({function})()", "returnByValue": True, "awaitPromise": True},
            )
        else:
            node = self.conn.send("DOM.resolveNode", {"backendNodeId": backend_id})
            object_id = (node.get("object") or {}).get("objectId")
            result = self.conn.send(
                "Runtime.callFunctionOn",
                {
                    "functionDeclaration": function,
                    "objectId": object_id,
                    "arguments": [{"objectId": object_id}],
                    "returnByValue": True,
                    "awaitPromise": True,
                },
            )
        details = result.get("exceptionDetails")
        if isinstance(details, dict):
            exc = details.get("exception") if isinstance(details.get("exception"), dict) else {}
            raise HttpClientError(f"Evaluation failed: {exc.get('description') or details.get('text')}")
        remote = result.get("result") or {}
        if "value" in remote:
            return remote["value"]
        return remote.get("description") if remote.get("type") != "undefined" else None

    async def evaluate(self, function: str, backend_id: int | None = None) -> Any:
        return await self.wait_for_completion(self._evaluate, function, backend_id)

    # -- artifacts -------------------------------------------------------

    def _screenshot(self, full_page: bool, backend_id: int | None) -> bytes:
        params: dict[str, Any] = {"format": "png"}
        if backend_id is not None:
            with contextlib.suppress(HttpClientError):
                self.conn.send("DOM.scrollIntoViewIfNeeded", {"backendNodeId": backend_id})
            box = self.conn.send("DOM.getBoxModel", {"backendNodeId": backend_id})
            model = box.get("model") or {}
            quad = model.get("border") or []
            if len(quad) >= 8:
                xs = [float(quad[i]) for i in (0, 2, 4, 6)]
                ys = [float(quad[i]) for i in (1, 3, 5, 7)]
                params["clip"] = {
                    "x": min(xs),
                    "y": min(ys),
                    "width": max(xs) - min(xs),
                    "height": max(ys) - min(ys),
                    "scale": 1,
                }
        elif full_page:
            metrics = self.conn.send("Page.getLayoutMetrics")
            size = metrics.get("cssContentSize") or metrics.get("contentSize") or {}
            params["captureBeyondViewport"] = True
            params["clip"] = {
                "x": 0,
                "y": 0,
                "width": float(size.get("width", 0)),
                "height": float(size.get("height", 0)),
                "scale": 1,
            }
        shot = self.conn.send("Page.captureScreenshot", params)
        return base64.b64decode(shot.get("data") or "")

    async def screenshot(self, *, full_page: bool = False, backend_id: int | None = None) -> bytes:
        return await asyncio.to_thread(self._screenshot, full_page, backend_id)

    def _print_pdf(self, options: dict[str, Any]) -> bytes:
        result = self.conn.send("Page.printToPDF", options)
        return base64.b64decode(result.get("data") or "")

    async def print_pdf(self, options: dict[str, Any]) -> bytes:
        return await asyncio.to_thread(self._print_pdf, options)

    async def emulate_media(self, media: str) -> None:
        await asyncio.to_thread(self.conn.send, "Emulation.setEmulatedMedia", {"media": media})

    # -- modal resolution ------------------------------------------------

    def _handle_dialog(self, accept: bool, prompt_text: str | None) -> None:
        params: dict[str, Any] = {"accept": accept}
        if prompt_text is not None:
            params["promptText"] = prompt_text
        self.conn.send("Page.handleJavaScriptDialog", params)
        self.telemetry.clear_modal_state("dialog")

    async def handle_dialog(self, accept: bool, prompt_text: str | None = None) -> None:
        await self.wait_for_completion(self._handle_dialog, accept, prompt_text)

    def _set_files(self, backend_id: int, paths: list[str]) -> None:
        self.conn.send("DOM.setFileInputFiles", {"files": paths, "backendNodeId": backend_id})
        self.telemetry.clear_modal_state("fileChooser")

    async def set_file_input(self, paths: list[str]) -> None:
        chooser = next((m for m in self.telemetry.modal_states() if m.kind == "fileChooser"), None)
        if chooser is None or chooser.backend_node_id is None:
            raise SmartToolError(
                tool="browser_file_upload",
                action="upload",
                reason="No file chooser is open",
                suggestion="Click the file input first so the page opens a file chooser",
            )
        await self.wait_for_completion(self._set_files, chooser.backend_node_id, paths)

    def cancel_file_chooser(self) -> None:
        self.telemetry.clear_modal_state("fileChooser")

    # -- waiting ---------------------------------------------------------

    def _text_visible(self, text: str) -> bool:
        expression = f"(document.body ? document.body.innerText : '').includes({json.dumps(text)})"
        result = self.conn.send("Runtime.evaluate", {"expression": expression, "returnByValue": True})
        return bool((result.get("result") or {}).get("value"))

    async def wait_for_text(self, text: str, *, gone: bool, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while True:
            visible = await asyncio.to_thread(self._text_visible, text)
            if visible != gone:
                return True
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(0.25)


__all__ = ["Tab", "TabSnapshot"]
