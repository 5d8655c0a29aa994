from __future__ import annotations

import json
import urllib.parse
from typing import Any
from urllib.error import URLError
from urllib.request import Request, urlopen

from .config import AgentBrowserConfig


class HttpClientError(Exception):
    pass


def _devtools_endpoint(config: AgentBrowserConfig, path: str) -> str:
    return f"http://127.0.0.1:{config.cdp_port}{path}"


def devtools_request(config: AgentBrowserConfig, path: str, *, method: str = "GET") -> Any:
    """Call the DevTools HTTP endpoint (/json/*) and decode the JSON reply."""
    req = Request(_devtools_endpoint(config, path), headers={"User-Agent": "agent-browser/1.0"}, method=method)
    try:
        with urlopen(req, timeout=config.http_timeout) as resp:
            raw = resp.read().decode(errors="replace")
    except (TimeoutError, URLError, OSError) as exc:
        raise HttpClientError(f"DevTools endpoint {path} not reachable: {exc}") from exc
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        # /json/close and /json/activate reply with plain text
        return raw


def list_page_targets(config: AgentBrowserConfig) -> list[dict[str, Any]]:
    payload = devtools_request(config, "/json/list")
    if not isinstance(payload, list):
        return []
    return [t for t in payload if isinstance(t, dict) and t.get("type") == "page"]


def new_page_target(config: AgentBrowserConfig, url: str = "about:blank") -> dict[str, Any]:
    quoted = urllib.parse.quote(url or "about:blank", safe=":/?&=#%")
    payload = devtools_request(config, f"/json/new?{quoted}", method="PUT")
    if not isinstance(payload, dict) or not payload.get("webSocketDebuggerUrl"):
        raise HttpClientError("DevTools did not return a debuggable page target")
    return payload


def close_page_target(config: AgentBrowserConfig, target_id: str) -> None:
    devtools_request(config, f"/json/close/{target_id}")


def activate_page_target(config: AgentBrowserConfig, target_id: str) -> None:
    devtools_request(config, f"/json/activate/{target_id}")
