"""
Tool result types and the handler signature.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from ..lifecycle import ConnectionManager


@dataclass(slots=True, frozen=True)
class TextItem:
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(slots=True, frozen=True)
class ImageItem:
    data: str  # bare base64, no data: URL prefix
    mime_type: str = "image/png"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "image", "data": self.data, "mimeType": self.mime_type}


ContentItem = Union[TextItem, ImageItem]


@dataclass(slots=True)
class ToolResult:
    """What a handler hands back to the front server: content items plus the error flag."""

    items: list[ContentItem] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def text(cls, text: str) -> ToolResult:
        return cls(items=[TextItem(text)])

    @classmethod
    def error(cls, message: str) -> ToolResult:
        """Failure with the `Error: ` prefix tool callers expect."""
        return cls(items=[TextItem(f"Error: {message}")], is_error=True)

    @classmethod
    def raw_error(cls, text: str) -> ToolResult:
        return cls(items=[TextItem(text)], is_error=True)

    @classmethod
    def image(cls, data_b64: str, mime_type: str = "image/png") -> ToolResult:
        if not data_b64:
            return cls.error("No screenshot data received")
        return cls(items=[ImageItem(data_b64, mime_type)])

    def to_content_list(self) -> list[dict[str, Any]]:
        return [item.to_dict() for item in self.items]

    def to_response(self) -> dict[str, Any]:
        """`tools/call` result body."""
        return {"content": self.to_content_list(), "isError": self.is_error}


HandlerFunc = Callable[["ConnectionManager", dict[str, Any]], Awaitable[ToolResult]]


@dataclass(slots=True, frozen=True)
class ToolSpec:
    """A catalog entry: schema shown by tools/list plus its handler."""

    name: str
    description: str
    input_schema: dict[str, Any]
    handler: HandlerFunc

    def schema(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "inputSchema": self.input_schema}
