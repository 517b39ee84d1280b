"""End-to-end: MCP server with a real listener, driven by the websocket-client stub peer."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from mcp_servers.extension_bridge import main as mcp_server
from mcp_servers.extension_bridge.config import BridgeConfig
from mcp_servers.extension_bridge.stub_extension import StubExtension, build_reply


def test_build_reply_success_failure_and_non_calls() -> None:
    call = {"id": "c1", "type": "browser_new_tab", "payload": {"url": "https://example.com"}}
    assert build_reply(call) == {"id": "c1", "success": True, "result": {"tabId": 2}}
    assert build_reply({"id": "c2", "type": "browser_unknown"}) == {"id": "c2", "success": True, "result": {"ok": True}}

    failed = build_reply(call, failures={"browser_new_tab": "Tab limit reached"})
    assert failed == {
        "id": "c1",
        "success": False,
        "error": {"code": "STUB_FAILURE", "message": "Tab limit reached"},
    }
    assert build_reply({"type": "browser_go_back"}) is None
    assert build_reply("hello") is None


def test_default_screenshot_is_a_png_data_url() -> None:
    reply = build_reply({"id": "s1", "type": "browser_screenshot", "payload": {}})
    assert reply["result"]["image"].startswith("data:image/png;base64,")


def test_server_relays_tool_calls_to_stub_extension(monkeypatch: pytest.MonkeyPatch) -> None:
    sent: list[dict[str, Any]] = []
    monkeypatch.setattr(mcp_server, "_write_message", sent.append)

    async def scenario() -> StubExtension:
        server = mcp_server.McpServer(BridgeConfig(host="127.0.0.1", port=0, connect_timeout=2.0, call_timeout=5.0))
        await server.start()
        stub = StubExtension(f"ws://127.0.0.1:{server.bridge.transport.port}", failures={"browser_hover": "Element not found"})
        await asyncio.to_thread(stub.start)
        try:
            await server.bridge.wait_for_connection(timeout=2.0)
            calls = [
                ("browser_navigate", {"url": "https://example.com"}),
                ("browser_snapshot", {}),
                ("browser_screenshot", {}),
                ("browser_hover", {"ref": "e2"}),
            ]
            tasks = [
                server.dispatch({"jsonrpc": "2.0", "id": i, "method": "tools/call", "params": {"name": n, "arguments": a}})
                for i, (n, a) in enumerate(calls)
            ]
            await asyncio.gather(*tasks)
        finally:
            await server.close()
            await asyncio.to_thread(stub.close)
        return stub

    stub = asyncio.run(scenario())

    by_id = {m["id"]: m["result"] for m in sent}
    assert by_id[0]["content"] == [{"type": "text", "text": "Navigated to https://example.com"}]
    assert by_id[1]["content"][0]["text"].startswith("Page: Stub page\nURL: about:blank\n\n- document")
    assert by_id[2]["content"][0]["type"] == "image"
    assert by_id[2]["content"][0]["mimeType"] == "image/png"
    assert by_id[3] == {"content": [{"type": "text", "text": "Error: Element not found"}], "isError": True}

    received = {m["type"]: m for m in stub.received}
    assert set(received) == {"browser_navigate", "browser_snapshot", "browser_screenshot", "browser_hover"}
    assert received["browser_navigate"]["payload"] == {"url": "https://example.com", "waitUntil": "load"}
    assert received["browser_hover"]["payload"] == {"ref": "e2"}
