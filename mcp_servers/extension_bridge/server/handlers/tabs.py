"""
Tab management tool handlers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..args import get_bool, get_number, get_url
from ..types import ToolResult

if TYPE_CHECKING:
    from ...lifecycle import ConnectionManager


def _tab_id_text(tab_id: float | int) -> str:
    return f"{tab_id:g}" if isinstance(tab_id, float) else str(tab_id)


async def handle_browser_new_tab(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    url = get_url(args, "url")
    result = await bridge.send("browser_new_tab", {"url": url, "switchTo": get_bool(args, "switchTo", default=True)})
    tab_id = result.get("tabId") if isinstance(result, dict) else None
    return ToolResult.text(f"Opened new tab (id: {tab_id}) with {url}")


async def handle_browser_list_tabs(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    tabs = await bridge.send("browser_list_tabs")
    tabs = [t for t in tabs if isinstance(t, dict)] if isinstance(tabs, list) else []
    if not tabs:
        return ToolResult.text("No tabs found")

    blocks = []
    for tab in tabs:
        markers = []
        if tab.get("active"):
            markers.append("(active)")
        if tab.get("connected"):
            markers.append("(connected)")
        blocks.append(f"[{tab.get('id')}] {tab.get('title', '')} {' '.join(markers)}\n    {tab.get('url', '')}")
    return ToolResult.text("\n\n".join(blocks))


async def handle_browser_switch_tab(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    tab_id = get_number(args, "tabId", required=True)
    await bridge.send("browser_switch_tab", {"tabId": tab_id})
    return ToolResult.text(f"Switched to tab {_tab_id_text(tab_id)}")


async def handle_browser_close_tab(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    tab_id = get_number(args, "tabId")
    await bridge.send("browser_close_tab", {"tabId": tab_id})
    return ToolResult.text(f"Closed tab {_tab_id_text(tab_id)}" if tab_id is not None else "Closed current tab")


TAB_HANDLERS = {
    "browser_new_tab": handle_browser_new_tab,
    "browser_list_tabs": handle_browser_list_tabs,
    "browser_switch_tab": handle_browser_switch_tab,
    "browser_close_tab": handle_browser_close_tab,
}
