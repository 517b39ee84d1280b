"""Tool schema definitions shown by tools/list.

Names must match the handler names in the browser extension: the tool name is
sent verbatim as the call `type`.
"""

from __future__ import annotations

from typing import Any

_REF = {"type": "string", "description": "Element reference from snapshot"}
_SELECTOR = {"type": "string", "description": "CSS selector for the element"}


def _object(properties: dict[str, Any], required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "object", "properties": properties, "additionalProperties": False}
    if required:
        schema["required"] = required
    return schema


# ─────────────────────────────────────────────────────────────────────────────
# Navigation
# ─────────────────────────────────────────────────────────────────────────────

NAVIGATION_TOOLS: list[dict[str, Any]] = [
    {
        "name": "browser_navigate",
        "description": "Navigate the browser to a specified URL. Use this to open web pages.",
        "inputSchema": _object(
            {
                "url": {"type": "string", "format": "uri", "description": "The URL to navigate to"},
                "waitUntil": {
                    "type": "string",
                    "enum": ["load", "domcontentloaded", "networkidle"],
                    "default": "load",
                    "description": "When to consider navigation complete",
                },
            },
            ["url"],
        ),
    },
    {
        "name": "browser_go_back",
        "description": "Navigate back in browser history.",
        "inputSchema": _object({}),
    },
    {
        "name": "browser_go_forward",
        "description": "Navigate forward in browser history.",
        "inputSchema": _object({}),
    },
    {
        "name": "browser_reload",
        "description": "Reload the current page.",
        "inputSchema": _object(
            {"ignoreCache": {"type": "boolean", "default": False, "description": "If true, bypasses the cache"}}
        ),
    },
]

# ─────────────────────────────────────────────────────────────────────────────
# Snapshot
# ─────────────────────────────────────────────────────────────────────────────

SNAPSHOT_TOOLS: list[dict[str, Any]] = [
    {
        "name": "browser_snapshot",
        "description": (
            "Take an accessibility snapshot of the current page. Returns a simplified representation of the "
            'page structure with element references (ref="...") that can be used with other tools like click, '
            "type, etc. Always use this before interacting with elements."
        ),
        "inputSchema": _object(
            {
                "selector": {
                    "type": "string",
                    "description": "CSS selector to scope the snapshot to a specific element",
                }
            }
        ),
    },
]

# ─────────────────────────────────────────────────────────────────────────────
# Interaction
# ─────────────────────────────────────────────────────────────────────────────

INTERACTION_TOOLS: list[dict[str, Any]] = [
    {
        "name": "browser_click",
        "description": "Click on an element identified by its ref from a snapshot, or by CSS selector.",
        "inputSchema": _object(
            {
                "ref": {"type": "string", "description": 'Element reference from snapshot (e.g., "e12")'},
                "selector": {"type": "string", "description": "CSS selector to find the element"},
                "button": {
                    "type": "string",
                    "enum": ["left", "right", "middle"],
                    "default": "left",
                    "description": "Mouse button to click",
                },
                "clickCount": {
                    "type": "number",
                    "default": 1,
                    "description": "Number of clicks (2 for double-click)",
                },
            }
        ),
    },
    {
        "name": "browser_type",
        "description": "Type text into an input field or text area.",
        "inputSchema": _object(
            {
                "ref": _REF,
                "selector": {"type": "string", "description": "CSS selector to find the element"},
                "text": {"type": "string", "description": "Text to type"},
                "clear": {"type": "boolean", "default": False, "description": "Clear existing text before typing"},
                "delay": {"type": "number", "description": "Delay between keystrokes in milliseconds"},
            },
            ["text"],
        ),
    },
    {
        "name": "browser_hover",
        "description": "Hover the mouse over an element to trigger hover effects.",
        "inputSchema": _object(
            {"ref": _REF, "selector": {"type": "string", "description": "CSS selector to find the element"}}
        ),
    },
    {
        "name": "browser_drag",
        "description": "Drag an element to another element or position.",
        "inputSchema": _object(
            {
                "sourceRef": {"type": "string", "description": "Source element reference"},
                "sourceSelector": {"type": "string", "description": "Source CSS selector"},
                "targetRef": {"type": "string", "description": "Target element reference"},
                "targetSelector": {"type": "string", "description": "Target CSS selector"},
            }
        ),
    },
    {
        "name": "browser_select_option",
        "description": "Select an option from a <select> dropdown element.",
        "inputSchema": _object(
            {
                "ref": _REF,
                "selector": {"type": "string", "description": "CSS selector for the select element"},
                "value": {"type": "string", "description": "Value attribute of the option to select"},
                "label": {"type": "string", "description": "Visible text of the option to select"},
                "index": {"type": "number", "description": "Index of the option to select (0-based)"},
            }
        ),
    },
    {
        "name": "browser_press_key",
        "description": 'Press a keyboard key or key combination (e.g., "Enter", "Tab", "Control+A").',
        "inputSchema": _object(
            {
                "key": {"type": "string", "description": 'Key to press (e.g., "Enter", "Tab", "Escape", "Control+A")'},
                "ref": {"type": "string", "description": "Element to focus before pressing key"},
                "selector": {"type": "string", "description": "CSS selector for element to focus"},
            },
            ["key"],
        ),
    },
]

# ─────────────────────────────────────────────────────────────────────────────
# Utility
# ─────────────────────────────────────────────────────────────────────────────

CONSOLE_LOG_TYPES = ("log", "warn", "error", "info", "debug")

UTILITY_TOOLS: list[dict[str, Any]] = [
    {
        "name": "browser_wait",
        "description": "Wait for a specified number of milliseconds. Use sparingly - prefer waiting for elements.",
        "inputSchema": _object(
            {
                "ms": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 30000,
                    "description": "Milliseconds to wait (max 30 seconds)",
                }
            },
            ["ms"],
        ),
    },
    {
        "name": "browser_screenshot",
        "description": "Take a screenshot of the current page or a specific element.",
        "inputSchema": _object(
            {
                "ref": {"type": "string", "description": "Element reference to screenshot"},
                "selector": {"type": "string", "description": "CSS selector for element to screenshot"},
                "fullPage": {"type": "boolean", "default": False, "description": "Capture the full scrollable page"},
                "quality": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 100,
                    "default": 80,
                    "description": "JPEG quality (0-100)",
                },
            }
        ),
    },
    {
        "name": "browser_get_console_logs",
        "description": "Get console log messages from the page (log, warn, error, info).",
        "inputSchema": _object(
            {
                "types": {
                    "type": "array",
                    "items": {"type": "string", "enum": list(CONSOLE_LOG_TYPES)},
                    "description": "Filter by log types",
                },
                "clear": {"type": "boolean", "default": False, "description": "Clear logs after retrieving"},
            }
        ),
    },
]

# ─────────────────────────────────────────────────────────────────────────────
# Tabs
# ─────────────────────────────────────────────────────────────────────────────

TAB_TOOLS: list[dict[str, Any]] = [
    {
        "name": "browser_new_tab",
        "description": "Open a URL in a new browser tab and connect to it.",
        "inputSchema": _object(
            {
                "url": {"type": "string", "format": "uri", "description": "URL to open in the new tab"},
                "switchTo": {"type": "boolean", "default": True, "description": "Switch to the new tab after opening"},
            },
            ["url"],
        ),
    },
    {
        "name": "browser_list_tabs",
        "description": "List all open browser tabs with their IDs, titles, and URLs.",
        "inputSchema": _object({}),
    },
    {
        "name": "browser_switch_tab",
        "description": "Switch to a different browser tab by its ID.",
        "inputSchema": _object({"tabId": {"type": "number", "description": "ID of the tab to switch to"}}, ["tabId"]),
    },
    {
        "name": "browser_close_tab",
        "description": "Close a browser tab by its ID. If no ID provided, closes the current tab.",
        "inputSchema": _object(
            {"tabId": {"type": "number", "description": "ID of the tab to close. Omit to close current tab."}}
        ),
    },
]

# ─────────────────────────────────────────────────────────────────────────────
# Element queries
# ─────────────────────────────────────────────────────────────────────────────

ELEMENT_STATES = ("attached", "visible", "hidden", "detached")

QUERY_TOOLS: list[dict[str, Any]] = [
    {
        "name": "browser_get_text",
        "description": "Get the text content of an element.",
        "inputSchema": _object({"ref": _REF, "selector": _SELECTOR}),
    },
    {
        "name": "browser_get_attribute",
        "description": "Get the value of a specific attribute from an element.",
        "inputSchema": _object(
            {
                "ref": _REF,
                "selector": _SELECTOR,
                "attribute": {"type": "string", "description": "Name of the attribute to get"},
            },
            ["attribute"],
        ),
    },
    {
        "name": "browser_is_visible",
        "description": "Check if an element is visible on the page.",
        "inputSchema": _object({"ref": _REF, "selector": _SELECTOR}),
    },
    {
        "name": "browser_wait_for_element",
        "description": "Wait for an element to appear on the page.",
        "inputSchema": _object(
            {
                "selector": {"type": "string", "description": "CSS selector for the element to wait for"},
                "timeout": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 30000,
                    "default": 5000,
                    "description": "Maximum time to wait in milliseconds",
                },
                "state": {
                    "type": "string",
                    "enum": list(ELEMENT_STATES),
                    "default": "visible",
                    "description": "State to wait for",
                },
            },
            ["selector"],
        ),
    },
    {
        "name": "browser_highlight",
        "description": "Temporarily highlight an element with a colored border for visual debugging.",
        "inputSchema": _object(
            {
                "ref": _REF,
                "selector": _SELECTOR,
                "color": {"type": "string", "default": "red", "description": "Highlight color (CSS color value)"},
                "duration": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 10000,
                    "default": 2000,
                    "description": "Duration of highlight in milliseconds",
                },
            }
        ),
    },
]

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    *NAVIGATION_TOOLS,
    *SNAPSHOT_TOOLS,
    *INTERACTION_TOOLS,
    *UTILITY_TOOLS,
    *TAB_TOOLS,
    *QUERY_TOOLS,
]

__all__ = ["CONSOLE_LOG_TYPES", "ELEMENT_STATES", "TOOL_DEFINITIONS"]
