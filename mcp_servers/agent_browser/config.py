from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_BINARY_CANDIDATES: list[str] = [
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/local/bin/chromium",
    "/opt/chromium/chromium",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "C:\\Program Files\\Chromium\\Application\\chrome.exe",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/opt/google/chrome/chrome",
    "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
    "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
    # Snap last: it ignores --user-data-dir.
    "/snap/bin/chromium",
]

IMAGE_RESPONSE_MODES = ("allow", "omit")


def expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class AgentBrowserConfig:
    binary_path: str
    profile_path: str
    output_dir: str
    cdp_port: int = 9222
    mode: str = "launch"
    headless: bool = True
    extra_flags: list[str] = field(default_factory=list)
    allow_hosts: list[str] = field(default_factory=list)
    image_responses: str = "allow"
    cdp_timeout: float = 10.0
    http_timeout: float = 10.0

    @staticmethod
    def normalize_mode(raw: str | None) -> str:
        mode = (raw or "").strip().lower()
        if mode in {"attach", "connect", "external"}:
            return "attach"
        return "launch"

    @staticmethod
    def normalize_image_responses(raw: str | None) -> str:
        value = (raw or "").strip().lower()
        return value if value in IMAGE_RESPONSE_MODES else "allow"

    @classmethod
    def detect_binary(cls) -> str:
        env_path = os.environ.get("MCP_BROWSER_BINARY")
        if env_path:
            return expand_path(env_path)
        for candidate in DEFAULT_BINARY_CANDIDATES:
            path = Path(candidate)
            if path.exists() and os.access(str(path), os.X_OK):
                return str(path)
        # Last resort: rely on PATH lookup
        return "google-chrome"

    @classmethod
    def from_env(cls) -> AgentBrowserConfig:
        mode = cls.normalize_mode(os.environ.get("MCP_BROWSER_MODE"))
        profile = expand_path(os.environ.get("MCP_BROWSER_PROFILE", "~/.cache/agent-browser/profile"))
        output_dir = expand_path(os.environ.get("MCP_BROWSER_OUTPUT_DIR", "~/.cache/agent-browser/output"))
        port = int(os.environ.get("MCP_BROWSER_PORT", "9222"))
        flags_raw = os.environ.get("MCP_BROWSER_FLAGS", "")
        extra_flags = [flag for flag in flags_raw.split(",") if flag.strip()]
        allow_raw = os.environ.get("MCP_ALLOW_HOSTS", "")
        allow_hosts = [host.strip().lower() for host in allow_raw.split(",") if host.strip() and host.strip() != "*"]
        return cls(
            binary_path=cls.detect_binary(),
            profile_path=profile,
            output_dir=output_dir,
            cdp_port=port,
            mode=mode,
            headless=_env_flag("MCP_HEADLESS", True),
            extra_flags=extra_flags,
            allow_hosts=allow_hosts,
            image_responses=cls.normalize_image_responses(os.environ.get("MCP_IMAGE_RESPONSES")),
            cdp_timeout=float(os.environ.get("MCP_CDP_TIMEOUT", "10")),
            http_timeout=float(os.environ.get("MCP_HTTP_TIMEOUT", "10")),
        )

    def is_host_allowed(self, host: str) -> bool:
        host = (host or "").strip().lower().rstrip(".")
        if not self.allow_hosts:
            return True
        for raw_allowed in self.allow_hosts:
            allowed = (raw_allowed or "").strip().lower().lstrip(".").rstrip(".")
            if not allowed:
                continue
            if host == allowed:
                return True
            if host.endswith("." + allowed):
                return True
        return False


@dataclass
class LoopConfig:
    provider: str = "claude"
    model: str | None = None
    max_tokens: int = 10_000
    max_turns: int = 50

    @staticmethod
    def normalize_provider(raw: str | None) -> str:
        provider = (raw or "").strip().lower()
        if provider in {"openai", "gpt"}:
            return "openai"
        return "claude"

    @classmethod
    def from_env(cls) -> LoopConfig:
        return cls(
            provider=cls.normalize_provider(os.environ.get("AGENT_BROWSER_PROVIDER")),
            model=(os.environ.get("AGENT_BROWSER_MODEL") or "").strip() or None,
            max_tokens=int(os.environ.get("AGENT_BROWSER_MAX_TOKENS", "10000")),
            max_turns=int(os.environ.get("AGENT_BROWSER_MAX_TURNS", "50")),
        )
