"""Browser context: the set of open tabs and the current one."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from contextlib import suppress
from pathlib import Path

from .config import AgentBrowserConfig
from .http_client import (
    HttpClientError,
    activate_page_target,
    close_page_target,
    list_page_targets,
    new_page_target,
)
from .launcher import BrowserLauncher
from .tab import Tab
from .tools.base import SmartToolError

logger = logging.getLogger("mcp.agent_browser.context")

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]+")


class Context:
    """Owns tabs for one server (or agent) session.

    Tools run one at a time per tab: callers take ``tab.lock`` around a tool call.
    """

    def __init__(self, config: AgentBrowserConfig, launcher: BrowserLauncher | None = None) -> None:
        self.config = config
        self.launcher = launcher or BrowserLauncher(config)
        self._tabs: list[Tab] = []
        self._current: Tab | None = None
        self._attach_lock = asyncio.Lock()

    def tabs(self) -> list[Tab]:
        return list(self._tabs)

    def current_tab(self) -> Tab | None:
        return self._current

    def current_tab_or_die(self) -> Tab:
        if self._current is None:
            raise SmartToolError(
                tool="context",
                action="current_tab",
                reason="No open pages available",
                suggestion='Use the "browser_navigate" tool to navigate to a page first',
            )
        return self._current

    async def _open(self, target: dict) -> Tab:
        tab = Tab(self.config, target)
        await asyncio.to_thread(tab.initialize)
        self._tabs.append(tab)
        self._current = tab
        logger.info("tab_opened id=%s url=%s", tab.target_id, tab.url())
        return tab

    async def ensure_tab(self) -> Tab:
        """Return the current tab, attaching to (or launching) the browser when needed."""
        async with self._attach_lock:
            if self._current is not None:
                return self._current
            result = await asyncio.to_thread(self.launcher.ensure_running)
            logger.info("browser_launch started=%s message=%s", result.started, result.message)
            try:
                targets = await asyncio.to_thread(list_page_targets, self.config)
            except HttpClientError as exc:
                raise SmartToolError(
                    tool="context",
                    action="connect",
                    reason=str(exc),
                    suggestion=f"Ensure Chrome is running with --remote-debugging-port={self.config.cdp_port}",
                    details={"launch": result.message},
                ) from exc
            usable = [t for t in targets if t.get("webSocketDebuggerUrl")]
            target = usable[0] if usable else await asyncio.to_thread(new_page_target, self.config)
            return await self._open(target)

    async def new_tab(self, url: str = "about:blank") -> Tab:
        await self.ensure_tab()
        target = await asyncio.to_thread(new_page_target, self.config, url)
        return await self._open(target)

    def _tab_at(self, index: int, tool: str) -> Tab:
        if index < 0 or index >= len(self._tabs):
            raise SmartToolError(
                tool=tool,
                action="select",
                reason=f"Tab {index} not found",
                suggestion='List tabs with browser_tabs {"action": "list"}',
                details={"tabs": len(self._tabs)},
            )
        return self._tabs[index]

    async def select_tab(self, index: int) -> Tab:
        tab = self._tab_at(index, "browser_tabs")
        with suppress(HttpClientError):
            await asyncio.to_thread(activate_page_target, self.config, tab.target_id)
        self._current = tab
        return tab

    async def close_tab(self, index: int | None = None) -> str:
        tab = self.current_tab_or_die() if index is None else self._tab_at(index, "browser_tabs")
        url = tab.url()
        tab.close()
        with suppress(HttpClientError):
            await asyncio.to_thread(close_page_target, self.config, tab.target_id)
        self._tabs.remove(tab)
        if self._current is tab:
            self._current = self._tabs[-1] if self._tabs else None
        logger.info("tab_closed id=%s", tab.target_id)
        return url

    def output_file(self, name: str) -> str:
        """Path inside the output directory for a generated artifact."""
        out_dir = Path(self.config.output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        safe = _UNSAFE_FILENAME.sub("-", name).strip("-") or f"file-{int(time.time() * 1000)}"
        return str(out_dir / safe)

    async def close(self) -> None:
        for tab in self._tabs:
            tab.close()
        self._tabs = []
        self._current = None
        await asyncio.to_thread(self.launcher.stop)


__all__ = ["Context"]
