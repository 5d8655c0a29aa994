"""Raw CDP connection over websocket-client."""

from __future__ import annotations

import json
import socket
import threading
import time
from collections.abc import Callable
from contextlib import suppress
from typing import Any

import websocket

from .http_client import HttpClientError


class CdpConnection:
    """Low-level CDP WebSocket connection bound to one page target."""

    def __init__(self, ws_url: str, timeout: float = 5.0):
        self.ws = websocket.create_connection(ws_url, timeout=timeout, suppress_origin=True)
        self.ws_url = ws_url
        self.timeout = timeout
        self._next_id = 1
        # CDP is event-heavy. Events that arrive while waiting for a command
        # response are queued, never dropped.
        self._event_queue: list[dict[str, Any]] = []
        self._max_event_queue = 2000
        self._event_sink: Callable[[dict[str, Any]], None] | None = None
        self._lock = threading.RLock()
        self._in_flight = False
        self._interrupted = threading.Event()

    def interrupt(self) -> None:
        """Abort the command currently waiting for a response (e.g. a JS dialog blocked the page)."""
        if self._in_flight:
            self._interrupted.set()

    def set_event_sink(self, sink: Callable[[dict[str, Any]], None] | None) -> None:
        """Attach a best-effort event sink called for every received CDP event."""
        self._event_sink = sink

    def _push_event(self, event: dict[str, Any]) -> None:
        if not isinstance(event, dict) or not isinstance(event.get("method"), str):
            return

        sink = self._event_sink
        if sink is not None:
            with suppress(Exception):
                # Telemetry must never break browser operations.
                sink(event)

        self._event_queue.append(event)
        if len(self._event_queue) > self._max_event_queue:
            del self._event_queue[: len(self._event_queue) - self._max_event_queue]

    def pop_event(self, event_name: str) -> dict[str, Any] | None:
        """Pop the oldest queued event params for the given event name."""
        for i, ev in enumerate(self._event_queue):
            if ev.get("method") == event_name:
                self._event_queue.pop(i)
                params = ev.get("params")
                return params if isinstance(params, dict) else {}
        return None

    def drain_events(self, *, max_messages: int = 200) -> int:
        """Drain already-buffered CDP events without blocking."""
        drained = 0
        with self._lock:
            for _ in range(max(0, int(max_messages))):
                try:
                    self.ws.settimeout(0.0)
                    raw = self.ws.recv()
                except Exception:  # noqa: BLE001
                    # Timeout / would-block means the socket is empty.
                    break

                try:
                    data = json.loads(raw)
                except (TypeError, json.JSONDecodeError):
                    continue

                if isinstance(data, dict) and isinstance(data.get("method"), str) and "id" not in data:
                    self._push_event(data)
                    drained += 1
                    continue
                break
        return drained

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send CDP command and wait for response."""
        with self._lock:
            msg_id = self._next_id
            self._next_id += 1

            msg: dict[str, Any] = {"id": msg_id, "method": method}
            if params:
                msg["params"] = params

            try:
                self.ws.settimeout(min(2.0, max(0.5, float(self.timeout))))
                self.ws.send(json.dumps(msg))
            except Exception as exc:  # noqa: BLE001
                raise HttpClientError(str(exc)) from exc

            self._interrupted.clear()
            self._in_flight = True
            try:
                return self._recv_until(msg_id, method)
            finally:
                self._in_flight = False

    def _recv_until(self, expected_id: int, method: str) -> dict[str, Any]:
        deadline = time.time() + self.timeout
        while True:
            if self._interrupted.is_set():
                self._interrupted.clear()
                raise HttpClientError(f"CDP wait interrupted ({method})")
            remaining = deadline - time.time()
            if remaining <= 0:
                raise HttpClientError(f"CDP response timed out ({method})")

            # Keep the socket timeout small so our own deadline is enforced.
            try:
                self.ws.settimeout(min(0.5, remaining))
                raw = self.ws.recv()
            except Exception as exc:  # noqa: BLE001
                msg = str(exc).lower()
                if isinstance(exc, (TimeoutError, websocket.WebSocketTimeoutException)) or "timed out" in msg:
                    continue
                raise HttpClientError(str(exc)) from exc

            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                continue

            if isinstance(data, dict) and isinstance(data.get("method"), str) and "id" not in data:
                self._push_event(data)
                continue

            if isinstance(data, dict) and data.get("id") == expected_id:
                if "error" in data:
                    raise HttpClientError(f"{method}: {data['error']}")
                return data.get("result", {})

    def wait_for_event(self, event_name: str, timeout: float = 10.0) -> dict[str, Any] | None:
        """Wait for a specific CDP event (queued events are consumed first)."""
        queued = self.pop_event(event_name)
        if queued is not None:
            return queued

        deadline = time.time() + timeout
        with self._lock:
            while True:
                remaining = deadline - time.time()
                if remaining <= 0:
                    return None
                try:
                    self.ws.settimeout(min(0.5, remaining))
                    raw = self.ws.recv()
                except Exception as exc:  # noqa: BLE001
                    msg = str(exc).lower()
                    if isinstance(exc, (TimeoutError, websocket.WebSocketTimeoutException)) or "timed out" in msg:
                        continue
                    raise HttpClientError(str(exc)) from exc

                try:
                    data = json.loads(raw)
                except json.JSONDecodeError:
                    continue

                if isinstance(data, dict) and isinstance(data.get("method"), str) and "id" not in data:
                    self._push_event(data)
                    if data.get("method") == event_name:
                        self.pop_event(event_name)
                        params = data.get("params")
                        return params if isinstance(params, dict) else {}

    def close(self) -> None:
        """Close the WebSocket by shutting the raw socket down (close() can hang under dialogs)."""
        sock = getattr(self.ws, "sock", None)
        if sock is not None:
            with suppress(Exception):
                sock.shutdown(socket.SHUT_RDWR)
            with suppress(Exception):
                sock.close()


__all__ = ["CdpConnection"]
