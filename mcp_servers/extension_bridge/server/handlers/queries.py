"""
Element query tool handlers - text, attributes, visibility, waits, highlight.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..args import get_enum, get_number, get_str, get_target
from ..definitions import ELEMENT_STATES
from ..types import ToolResult

if TYPE_CHECKING:
    from ...lifecycle import ConnectionManager


async def handle_browser_get_text(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    ref, selector = get_target(args)
    text = await bridge.send("browser_get_text", {"ref": ref, "selector": selector})
    return ToolResult.text(str(text) if text else "(empty)")


async def handle_browser_get_attribute(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    attribute = get_str(args, "attribute", required=True)
    ref, selector = get_target(args)
    value = await bridge.send("browser_get_attribute", {"ref": ref, "selector": selector, "attribute": attribute})
    return ToolResult.text("(null)" if value is None else str(value))


async def handle_browser_is_visible(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    ref, selector = get_target(args)
    visible = await bridge.send("browser_is_visible", {"ref": ref, "selector": selector})
    return ToolResult.text("Element is visible" if visible else "Element is not visible")


async def handle_browser_wait_for_element(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    selector = get_str(args, "selector", required=True)
    state = get_enum(args, "state", ELEMENT_STATES, default="visible")
    await bridge.send(
        "browser_wait_for_element",
        {
            "selector": selector,
            "timeout": get_number(args, "timeout", default=5000, minimum=0, maximum=30000),
            "state": state,
        },
    )
    return ToolResult.text(f"Element {selector} is {state}")


async def handle_browser_highlight(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    ref, selector = get_target(args)
    await bridge.send(
        "browser_highlight",
        {
            "ref": ref,
            "selector": selector,
            "color": get_str(args, "color", default="red"),
            "duration": get_number(args, "duration", default=2000, minimum=0, maximum=10000),
        },
    )
    return ToolResult.text(f"Highlighted {ref or selector}")


QUERY_HANDLERS = {
    "browser_get_text": handle_browser_get_text,
    "browser_get_attribute": handle_browser_get_attribute,
    "browser_is_visible": handle_browser_is_visible,
    "browser_wait_for_element": handle_browser_wait_for_element,
    "browser_highlight": handle_browser_highlight,
}
