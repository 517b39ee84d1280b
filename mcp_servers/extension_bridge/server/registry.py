"""
Tool registry with dispatch table for the MCP server.

Dispatch enforces the readiness contract before any handler runs:
check the connection, wait for one if needed, then call the handler.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..errors import BridgeError
from .definitions import TOOL_DEFINITIONS
from .handlers import ALL_HANDLERS
from .types import HandlerFunc, ToolResult, ToolSpec

if TYPE_CHECKING:
    from ..lifecycle import ConnectionManager

logger = logging.getLogger("mcp.extension_bridge.registry")

NOT_CONNECTED_MESSAGE = "Extension not connected. Please ensure the Chrome extension is running and connected."


class ToolRegistry:
    """Registry for tool handlers with extension readiness gating."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    def get(self, name: str) -> ToolSpec | None:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def schemas(self) -> list[dict[str, Any]]:
        return [spec.schema() for spec in self._tools.values()]

    async def dispatch(
        self,
        name: str,
        bridge: ConnectionManager,
        arguments: dict[str, Any],
        *,
        connect_timeout: float,
    ) -> ToolResult:
        """Dispatch a tool call once the extension is attached.

        Raises KeyError for unknown tools; handler errors propagate to the caller.
        """
        spec = self._tools.get(name)
        if spec is None:
            raise KeyError(f"Unknown tool: {name}")

        if not bridge.is_connected():
            logger.warning("Extension not connected, waiting up to %.1fs...", connect_timeout)
            try:
                await bridge.wait_for_connection(timeout=connect_timeout)
            except BridgeError as exc:
                logger.info("tool=%s not dispatched: %s", name, exc)
                return ToolResult.raw_error(NOT_CONNECTED_MESSAGE)

        return await spec.handler(bridge, arguments)

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)


def create_default_registry() -> ToolRegistry:
    """Pair every catalog definition with its handler."""
    registry = ToolRegistry()
    for definition in TOOL_DEFINITIONS:
        name = definition["name"]
        handler: HandlerFunc = ALL_HANDLERS[name]
        registry.register(
            ToolSpec(
                name=name,
                description=definition["description"],
                input_schema=definition["inputSchema"],
                handler=handler,
            )
        )
    return registry


__all__ = ["NOT_CONNECTED_MESSAGE", "ToolRegistry", "create_default_registry"]
