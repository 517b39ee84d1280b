"""
Navigation tool handlers - page navigation and history.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..args import get_bool, get_enum, get_url
from ..types import ToolResult

if TYPE_CHECKING:
    from ...lifecycle import ConnectionManager


async def handle_browser_navigate(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    url = get_url(args, "url")
    wait_until = get_enum(args, "waitUntil", ("load", "domcontentloaded", "networkidle"), default="load")
    await bridge.send("browser_navigate", {"url": url, "waitUntil": wait_until})
    return ToolResult.text(f"Navigated to {url}")


async def handle_browser_go_back(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    await bridge.send("browser_go_back")
    return ToolResult.text("Navigated back")


async def handle_browser_go_forward(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    await bridge.send("browser_go_forward")
    return ToolResult.text("Navigated forward")


async def handle_browser_reload(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    ignore_cache = get_bool(args, "ignoreCache", default=False)
    await bridge.send("browser_reload", {"ignoreCache": ignore_cache})
    return ToolResult.text("Page reloaded")


NAVIGATION_HANDLERS = {
    "browser_navigate": handle_browser_navigate,
    "browser_go_back": handle_browser_go_back,
    "browser_go_forward": handle_browser_go_forward,
    "browser_reload": handle_browser_reload,
}
