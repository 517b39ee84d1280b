"""Protocol and tool contract definitions.

Single source of truth for:
- supported MCP protocol versions
- server identity
- capabilities advertised by initialize
"""

from __future__ import annotations

from typing import Any

SERVER_INFO: dict[str, str] = {"name": "agent-jake-browser-mcp", "version": "1.0.0"}

SUPPORTED_PROTOCOL_VERSIONS = ["2025-06-18", "2025-03-26", "2024-11-05"]
LATEST_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]
DEFAULT_PROTOCOL_VERSION = LATEST_PROTOCOL_VERSION

CAPABILITIES: dict[str, Any] = {
    "tools": {"listChanged": False},
}

INSTRUCTIONS = (
    "Browser automation through the Chrome extension. Call browser_snapshot first to get element refs, "
    "then act on them with browser_click, browser_type and the other tools."
)


def select_protocol(requested: Any) -> str:
    if isinstance(requested, str) and requested in SUPPORTED_PROTOCOL_VERSIONS:
        return requested
    return DEFAULT_PROTOCOL_VERSION


def initialize_result(protocol: str) -> dict[str, Any]:
    return {
        "protocolVersion": protocol,
        "serverInfo": SERVER_INFO,
        "capabilities": CAPABILITIES,
        "instructions": INSTRUCTIONS,
    }
