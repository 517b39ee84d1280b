"""
Interaction tool handlers - click, type, hover, drag, select, keys.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ...errors import InvalidParamsError
from ..args import get_bool, get_enum, get_number, get_str, get_target
from ..types import ToolResult

if TYPE_CHECKING:
    from ...lifecycle import ConnectionManager


async def handle_browser_click(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    ref, selector = get_target(args)
    await bridge.send(
        "browser_click",
        {
            "ref": ref,
            "selector": selector,
            "button": get_enum(args, "button", ("left", "right", "middle"), default="left"),
            "clickCount": get_number(args, "clickCount", default=1),
        },
    )
    return ToolResult.text(f"Clicked on {ref or selector}")


async def handle_browser_type(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    text = get_str(args, "text", required=True)
    ref, selector = get_target(args)
    await bridge.send(
        "browser_type",
        {
            "ref": ref,
            "selector": selector,
            "text": text,
            "clear": get_bool(args, "clear", default=False),
            "delay": get_number(args, "delay"),
        },
    )
    return ToolResult.text(f'Typed "{text}" into {ref or selector}')


async def handle_browser_hover(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    ref, selector = get_target(args)
    await bridge.send("browser_hover", {"ref": ref, "selector": selector})
    return ToolResult.text(f"Hovered over {ref or selector}")


async def handle_browser_drag(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    source_ref, source_selector = get_target(args, ref_key="sourceRef", selector_key="sourceSelector", label="Source")
    target_ref, target_selector = get_target(args, ref_key="targetRef", selector_key="targetSelector", label="Target")
    await bridge.send(
        "browser_drag",
        {
            "sourceRef": source_ref,
            "sourceSelector": source_selector,
            "targetRef": target_ref,
            "targetSelector": target_selector,
        },
    )
    return ToolResult.text("Drag completed")


async def handle_browser_select_option(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    ref, selector = get_target(args)
    value = get_str(args, "value")
    label = get_str(args, "label")
    index = get_number(args, "index")
    if value is None and label is None and index is None:
        raise InvalidParamsError("One of value, label, or index must be provided")
    await bridge.send(
        "browser_select_option",
        {"ref": ref, "selector": selector, "value": value, "label": label, "index": index},
    )
    return ToolResult.text(f"Selected option in {ref or selector}")


async def handle_browser_press_key(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    key = get_str(args, "key", required=True)
    await bridge.send(
        "browser_press_key",
        {"key": key, "ref": get_str(args, "ref"), "selector": get_str(args, "selector")},
    )
    return ToolResult.text(f"Pressed key: {key}")


INTERACTION_HANDLERS = {
    "browser_click": handle_browser_click,
    "browser_type": handle_browser_type,
    "browser_hover": handle_browser_hover,
    "browser_drag": handle_browser_drag,
    "browser_select_option": handle_browser_select_option,
    "browser_press_key": handle_browser_press_key,
}
