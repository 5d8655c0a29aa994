from __future__ import annotations

import contextlib
import socket
import subprocess
import time
from dataclasses import dataclass
from urllib.error import URLError
from urllib.request import urlopen

from .config import AgentBrowserConfig, expand_path


@dataclass
class LaunchResult:
    command: list[str]
    started: bool
    message: str


class BrowserLauncher:
    def __init__(self, config: AgentBrowserConfig | None = None) -> None:
        self.config = config or AgentBrowserConfig.from_env()
        self.process: subprocess.Popen | None = None

    def cdp_ready(self, timeout: float = 0.4) -> bool:
        """Return True if the CDP HTTP endpoint responds."""
        endpoint = f"http://127.0.0.1:{self.config.cdp_port}/json/version"
        try:
            with urlopen(endpoint, timeout=timeout) as resp:
                return resp.status == 200
        except (OSError, TimeoutError, URLError):
            return False

    def _port_available(self, timeout: float = 0.2) -> bool:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.settimeout(timeout)
            try:
                return sock.connect_ex(("127.0.0.1", self.config.cdp_port)) != 0
            except OSError:
                return False

    def build_launch_command(self) -> list[str]:
        flags = [
            f"--remote-debugging-port={self.config.cdp_port}",
            f"--user-data-dir={expand_path(self.config.profile_path)}",
            "--remote-allow-origins=*",
            "--no-first-run",
            "--no-default-browser-check",
        ]
        if self.config.headless:
            flags.append("--headless=new")
        return [self.config.binary_path, *flags, *self.config.extra_flags]

    def ensure_running(self, timeout: float = 5.0) -> LaunchResult:
        if self.cdp_ready():
            return LaunchResult([], False, "Chrome already listening on CDP port")

        if self.config.mode == "attach":
            return LaunchResult(
                [],
                False,
                f"Attach mode: no Chrome listening on CDP port {self.config.cdp_port} "
                "(start Chrome with --remote-debugging-port)",
            )

        if not self._port_available():
            return LaunchResult([], False, f"Port {self.config.cdp_port} already in use")

        cmd = self.build_launch_command()
        try:
            self.process = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError as exc:
            return LaunchResult(cmd, False, str(exc))

        deadline = time.time() + timeout
        while time.time() < deadline:
            if self.cdp_ready():
                return LaunchResult(cmd, True, "Chrome launched")
            time.sleep(0.1)
        return LaunchResult(cmd, False, "Chrome launch timed out")

    def stop(self, *, timeout: float = 2.0) -> bool:
        """Best-effort stop of the launcher-owned Chrome process."""
        proc = self.process
        if proc is None:
            return False
        if proc.poll() is not None:
            return True
        with contextlib.suppress(Exception):
            proc.terminate()
        deadline = time.time() + max(0.1, float(timeout))
        while time.time() < deadline:
            if proc.poll() is not None:
                return True
            time.sleep(0.05)
        with contextlib.suppress(Exception):
            proc.kill()
        return True
