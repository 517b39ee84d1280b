"""Scriptable stand-in for the Chrome extension.

Connects to the bridge listener with websocket-client and answers every call
with a canned result, so the server can be exercised without a browser:

    python -m mcp_servers.extension_bridge.stub_extension --port 8765
"""

from __future__ import annotations

import argparse
import base64
import io
import json
import logging
import threading
from collections.abc import Callable
from typing import Any

import websocket
from PIL import Image

from .config import DEFAULT_HOST, DEFAULT_PORT

logger = logging.getLogger("mcp.extension_bridge.stub")

ResultFunc = Callable[[dict[str, Any]], Any]


def _blank_png_data_url() -> str:
    buf = io.BytesIO()
    Image.new("RGB", (1, 1), (255, 255, 255)).save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode()


def _default_results() -> dict[str, ResultFunc]:
    return {
        "browser_navigate": lambda p: {"url": p.get("url"), "title": "Stub page"},
        "browser_snapshot": lambda p: {
            "url": "about:blank",
            "title": "Stub page",
            "snapshot": '- document [ref=e1]\n  - button "OK" [ref=e2]',
        },
        "browser_screenshot": lambda p: {"image": _blank_png_data_url()},
        "browser_list_tabs": lambda p: [
            {"id": 1, "title": "Stub page", "url": "about:blank", "active": True, "connected": True}
        ],
        "browser_new_tab": lambda p: {"tabId": 2},
        "browser_get_console_logs": lambda p: [],
        "browser_get_text": lambda p: "stub text",
        "browser_get_attribute": lambda p: None,
        "browser_is_visible": lambda p: True,
    }


def build_reply(message: Any, results: dict[str, ResultFunc] | None = None, failures: dict[str, str] | None = None) -> dict[str, Any] | None:
    """Reply for one inbound call. None when the frame is not a call."""
    if not isinstance(message, dict) or not isinstance(message.get("id"), str):
        return None
    call_type = str(message.get("type") or "")
    payload = message.get("payload") if isinstance(message.get("payload"), dict) else {}

    if failures and call_type in failures:
        return {
            "id": message["id"],
            "success": False,
            "error": {"code": "STUB_FAILURE", "message": failures[call_type]},
        }

    table = results if results is not None else _default_results()
    fn = table.get(call_type)
    return {"id": message["id"], "success": True, "result": fn(payload) if fn else {"ok": True}}


class StubExtension:
    """Blocking extension peer; `serve_forever` answers calls until the socket closes."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        results: dict[str, ResultFunc] | None = None,
        failures: dict[str, str] | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.results = results
        self.failures = failures
        self.received: list[dict[str, Any]] = []
        self.ws: websocket.WebSocket | None = None
        self._thread: threading.Thread | None = None

    def connect(self) -> None:
        self.ws = websocket.create_connection(self.url, timeout=self.timeout)
        logger.info("stub connected to %s", self.url)

    def serve_forever(self) -> None:
        if self.ws is None:
            self.connect()
        ws = self.ws
        ws.settimeout(None)
        while True:
            try:
                raw = ws.recv()
            except (websocket.WebSocketException, OSError):
                return
            if not raw:
                return
            try:
                message = json.loads(raw)
            except ValueError:
                logger.warning("stub dropping non-JSON frame")
                continue
            if isinstance(message, dict):
                self.received.append(message)
            reply = build_reply(message, self.results, self.failures)
            if reply is None:
                continue
            try:
                ws.send(json.dumps(reply))
            except (websocket.WebSocketException, OSError):
                return

    def start(self) -> StubExtension:
        """Connect, then answer calls on a daemon thread."""
        self.connect()
        self._thread = threading.Thread(target=self.serve_forever, name="stub-extension", daemon=True)
        self._thread.start()
        return self

    def close(self) -> None:
        if self.ws is None:
            return
        # abort() wakes the serving thread blocked in recv.
        try:
            self.ws.abort()
            self.ws.close(timeout=0.5)
        except (websocket.WebSocketException, OSError):
            pass
        if self._thread is not None:
            self._thread.join(timeout=2.0)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Stand-in extension peer for the bridge server")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("-p", "--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    stub = StubExtension(f"ws://{args.host}:{args.port}")
    try:
        stub.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        stub.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
