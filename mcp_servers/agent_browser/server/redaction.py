"""Redaction utilities for logging.

Removes obvious secrets and large payloads (typed text, screenshots, prompt
answers) from log lines and trace output.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_SENSITIVE_KEYS = {
    "secret",
    "password",
    "pass",
    "pwd",
    "token",
    "auth",
    "authorization",
    "cookie",
    "set-cookie",
    "api-key",
    "api_key",
    "apikey",
    "x-api-key",
    "access_token",
    "refresh_token",
}

_TOOL_REDACTED_KEYS: dict[str, set[str]] = {
    "browser_type": {"text"},
    "browser_handle_dialog": {"prompttext"},
    "browser_evaluate": {"function"},
}


def redact_url(url: str) -> str:
    """Redact sensitive query parameters and userinfo; unchanged URLs are returned as-is."""
    if not isinstance(url, str) or not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    changed = False
    netloc = parts.netloc
    query = parts.query
    if "@" in netloc:
        netloc = netloc.split("@", 1)[1]
        changed = True
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        out_pairs: list[tuple[str, str]] = []
        for k, v in pairs:
            if k.strip().lower() in _SENSITIVE_KEYS and v:
                out_pairs.append((k, "<redacted>"))
                changed = True
            else:
                out_pairs.append((k, v))
        query = urlencode(out_pairs, doseq=True) if changed else query

    if not changed:
        return url
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def _redacted_summary(value: Any) -> str:
    if value is None:
        return "<redacted>"
    if isinstance(value, (bytes, bytearray)):
        return f"<redacted bytes len={len(value)}>"
    if isinstance(value, str):
        return f"<redacted str len={len(value)}>"
    if isinstance(value, (list, tuple, set)):
        return f"<redacted list len={len(value)}>"
    if isinstance(value, dict):
        return f"<redacted dict keys={len(value)}>"
    return "<redacted>"


def _redact_any(value: Any, *, tool: str, key: str | None) -> Any:
    if isinstance(value, dict):
        return {k: _redact_any(v, tool=tool, key=str(k)) for k, v in value.items()}
    if isinstance(value, list):
        return [_redact_any(v, tool=tool, key=key) for v in value]

    lk = (key or "").lower()
    if isinstance(value, str) and lk == "url":
        return redact_url(value)
    if lk in _TOOL_REDACTED_KEYS.get(tool, set()):
        return _redacted_summary(value)
    if lk in _SENSITIVE_KEYS:
        return _redacted_summary(value)
    return value


def redact_tool_arguments(tool: str, args: dict[str, Any]) -> dict[str, Any]:
    """Redact tool arguments for safe logging."""
    return _redact_any(args, tool=tool, key=None)


def redact_jsonrpc_for_log(payload: dict[str, Any], *, max_text_chars: int = 512) -> dict[str, Any]:
    """Shallow-copied JSON-RPC message with tool args redacted and content shortened."""
    msg = dict(payload) if isinstance(payload, dict) else {}

    params = msg.get("params")
    if msg.get("method") == "tools/call" and isinstance(params, dict):
        name = params.get("name")
        args = params.get("arguments")
        if isinstance(name, str) and isinstance(args, dict):
            msg["params"] = {**params, "arguments": redact_tool_arguments(name, args)}

    result = msg.get("result")
    if isinstance(result, dict) and isinstance(result.get("content"), list):
        content = []
        for item in result["content"]:
            it = dict(item) if isinstance(item, dict) else item
            if isinstance(it, dict) and it.get("type") == "image" and isinstance(it.get("data"), str):
                it["data"] = f"<omitted image base64 len={len(it['data'])}>"
            if isinstance(it, dict) and isinstance(it.get("text"), str) and len(it["text"]) > max_text_chars:
                it["text"] = it["text"][:max_text_chars] + f"… <truncated len={len(item['text'])}>"
            content.append(it)
        msg["result"] = {**result, "content": content}
    return msg


__all__ = ["redact_jsonrpc_for_log", "redact_tool_arguments", "redact_url"]
