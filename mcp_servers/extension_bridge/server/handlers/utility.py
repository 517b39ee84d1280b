"""
Utility tool handlers - wait, screenshot, console logs.
"""

from __future__ import annotations

import base64
import io
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from PIL import Image

from ..args import get_bool, get_enum_list, get_number, get_str
from ..definitions import CONSOLE_LOG_TYPES
from ..types import ToolResult

if TYPE_CHECKING:
    from ...lifecycle import ConnectionManager

_DATA_URL_RE = re.compile(r"^data:(image/[^;,]+);base64,")

# Format headers sit in the first few KB; full-page screenshots can run to tens of MiB.
SNIFF_B64_CHARS = 8192


async def handle_browser_wait(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    ms = get_number(args, "ms", required=True, minimum=0, maximum=30000)
    # The extension expects seconds.
    await bridge.send("browser_wait", {"time": ms / 1000})
    return ToolResult.text(f"Waited {ms:g}ms")


def split_data_url(data: str) -> tuple[str | None, str]:
    """Strip a `data:image/...;base64,` prefix, returning (declared mime, base64 body)."""
    m = _DATA_URL_RE.match(data)
    if m is None:
        return None, data
    return m.group(1), data[m.end() :]


def sniff_image_mime(data_b64: str) -> str | None:
    """Detect the real image type from its bytes (quality settings may yield JPEG)."""
    try:
        head = "".join(data_b64[:SNIFF_B64_CHARS].split())
        raw = base64.b64decode(head[: len(head) - len(head) % 4])
        with Image.open(io.BytesIO(raw)) as img:
            fmt = img.format
    except (ValueError, OSError):
        return None
    return Image.MIME.get(fmt) if fmt else None


async def handle_browser_screenshot(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    result = await bridge.send(
        "browser_screenshot",
        {
            "ref": get_str(args, "ref"),
            "selector": get_str(args, "selector"),
            "fullPage": get_bool(args, "fullPage", default=False),
            "quality": get_number(args, "quality", default=80, minimum=0, maximum=100),
        },
    )

    # Either {image: "data:image/png;base64,..."} or the bare base64 string.
    data = result.get("image") if isinstance(result, dict) else result
    if not data or not isinstance(data, str):
        return ToolResult.error("No screenshot data received")

    declared, body = split_data_url(data)
    mime = sniff_image_mime(body) or declared or "image/png"
    return ToolResult.image(body, mime)


def _format_log_time(timestamp: Any) -> str:
    try:
        dt = datetime.fromtimestamp(float(timestamp) / 1000.0, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return "unknown time"
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def handle_browser_get_console_logs(bridge: ConnectionManager, args: dict[str, Any]) -> ToolResult:
    logs = await bridge.send(
        "browser_get_console_logs",
        {
            "types": get_enum_list(args, "types", CONSOLE_LOG_TYPES),
            "clear": get_bool(args, "clear", default=False),
        },
    )
    entries = [e for e in logs if isinstance(e, dict)] if isinstance(logs, list) else []
    if not entries:
        return ToolResult.text("No console logs found")

    lines = [
        f"[{_format_log_time(e.get('timestamp'))}] [{str(e.get('type') or 'log').upper()}] {e.get('text', '')}"
        for e in entries
    ]
    return ToolResult.text("\n".join(lines))


UTILITY_HANDLERS = {
    "browser_wait": handle_browser_wait,
    "browser_screenshot": handle_browser_screenshot,
    "browser_get_console_logs": handle_browser_get_console_logs,
}
