"""
Browser tools organized by domain.

Each module exposes a ``TOOLS`` list:
- navigation: Open URLs, history back/forward
- snapshot: Accessibility snapshot with filters
- input: Click, type, press keys by snapshot ref
- screenshot: Viewport / full page / element screenshots
- evaluate: JavaScript evaluation with output budget
- console, network: Paginated console messages and requests
- pdf: Save page as PDF
- dialog, upload: Resolve modal states
- tabs: Tab management
- wait: Wait for time or text

Modules are imported lazily by ``all_tools`` so that ``tools.base`` stays
importable from the engine layer without pulling every tool.
"""

from __future__ import annotations

from .base import SmartToolError, Tool, ensure_allowed_navigation

__all__ = ["SmartToolError", "Tool", "all_tools", "ensure_allowed_navigation"]


def all_tools() -> list[Tool]:
    from . import (
        console,
        dialog,
        evaluate,
        input,
        navigation,
        network,
        pdf,
        screenshot,
        snapshot,
        tabs,
        upload,
        wait,
    )

    modules = (navigation, snapshot, input, screenshot, evaluate, console, network, pdf, dialog, upload, tabs, wait)
    return [tool for module in modules for tool in module.TOOLS]
