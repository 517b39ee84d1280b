"""
Snapshot tool handler - ARIA accessibility tree of the page.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..args import get_str
from ..types import ToolResult

if TYPE_CHECKING:
    from ...lifecycle import ConnectionManager


async def handle_browser_snapshot(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    result = await bridge.send("browser_snapshot", {"selector": get_str(args, "selector")})

    # The extension returns either the snapshot text or {url, title, snapshot}.
    if isinstance(result, str):
        snapshot, header = result, ""
    elif isinstance(result, dict):
        snapshot = result.get("snapshot")
        url = result.get("url")
        header = f"Page: {result.get('title') or 'Untitled'}\nURL: {url}\n\n" if url else ""
    else:
        snapshot, header = None, ""

    if not snapshot or not isinstance(snapshot, str):
        return ToolResult.error("No snapshot data received")
    return ToolResult.text(header + snapshot)


SNAPSHOT_HANDLERS = {
    "browser_snapshot": handle_browser_snapshot,
}
