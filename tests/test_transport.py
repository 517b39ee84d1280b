from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any

import pytest
import websockets
from websockets.exceptions import ConnectionClosed

from mcp_servers.extension_bridge.config import BridgeConfig
from mcp_servers.extension_bridge.errors import (
    CallTimeoutError,
    NotConnectedError,
    PeerError,
    PortInUseError,
    ServerClosingError,
)
from mcp_servers.extension_bridge.transport import CorrelationTransport, PeerConnection


def _config(**overrides: Any) -> BridgeConfig:
    return BridgeConfig(host="127.0.0.1", port=0, **overrides)


async def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def _url(transport: CorrelationTransport) -> str:
    return f"ws://127.0.0.1:{transport.port}"


async def _connect(transport: CorrelationTransport) -> Any:
    before = transport.get_connection()
    ws = await websockets.connect(_url(transport))
    await _wait_for(lambda: transport.get_connection() not in (None, before))
    return ws


class _RecordingObserver:
    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    def peer_attached(self, peer: PeerConnection) -> None:
        self.events.append(("attached", peer.peer_id))

    def peer_detached(self, peer: PeerConnection) -> None:
        self.events.append(("detached", peer.peer_id))


def test_listen_on_port_zero_reports_bound_port() -> None:
    async def scenario() -> None:
        transport = CorrelationTransport(_config())
        await transport.listen()
        try:
            assert transport.listening is True
            assert transport.port > 0
            st = transport.status()
            assert st["listening"] is True
            assert st["connected"] is False
            assert st["pending"] == 0
        finally:
            await transport.close()
        assert transport.listening is False

    asyncio.run(scenario())


def test_concurrent_calls_resolve_by_id_regardless_of_reply_order() -> None:
    async def scenario() -> None:
        transport = CorrelationTransport(_config())
        await transport.listen()
        ws = await _connect(transport)
        try:
            first = asyncio.create_task(transport.send("browser_get_text", {"ref": "e1"}))
            second = asyncio.create_task(transport.send("browser_get_text", {"ref": "e2"}))

            calls = [json.loads(await ws.recv()), json.loads(await ws.recv())]
            assert calls[0]["id"] != calls[1]["id"]
            assert {c["type"] for c in calls} == {"browser_get_text"}
            assert transport.pending_count == 2

            for call in reversed(calls):
                await ws.send(json.dumps({"id": call["id"], "success": True, "result": call["payload"]["ref"]}))

            assert await asyncio.gather(first, second) == ["e1", "e2"]
            assert transport.pending_count == 0
        finally:
            await ws.close()
            await transport.close()

    asyncio.run(scenario())


def test_failure_reply_raises_peer_error() -> None:
    async def scenario() -> None:
        transport = CorrelationTransport(_config())
        await transport.listen()
        ws = await _connect(transport)
        try:
            task = asyncio.create_task(transport.send("browser_click", {"ref": "e9"}))
            call = json.loads(await ws.recv())
            await ws.send(
                json.dumps(
                    {"id": call["id"], "success": False, "error": {"code": "NOT_FOUND", "message": "Element not found"}}
                )
            )
            with pytest.raises(PeerError) as exc_info:
                await task
            assert exc_info.value.code == "NOT_FOUND"
            assert str(exc_info.value) == "Element not found"
            assert transport.pending_count == 0
        finally:
            await ws.close()
            await transport.close()

    asyncio.run(scenario())


def test_send_without_peer_fails_fast() -> None:
    async def scenario() -> None:
        transport = CorrelationTransport(_config())
        await transport.listen()
        try:
            with pytest.raises(NotConnectedError):
                await transport.send("browser_go_back")
            assert transport.pending_count == 0
        finally:
            await transport.close()

    asyncio.run(scenario())


def test_call_times_out_and_late_reply_is_dropped(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="mcp.extension_bridge.transport")

    async def scenario() -> None:
        transport = CorrelationTransport(_config(call_timeout=0.15))
        await transport.listen()
        ws = await _connect(transport)
        try:
            task = asyncio.create_task(transport.send("browser_wait", {"time": 5}))
            call = json.loads(await ws.recv())
            with pytest.raises(CallTimeoutError) as exc_info:
                await task
            assert str(exc_info.value) == "Request timed out: browser_wait"
            assert transport.pending_count == 0

            await ws.send(json.dumps({"id": call["id"], "success": True, "result": "late"}))
            await _wait_for(lambda: any("unmatched reply" in r.getMessage() for r in caplog.records))

            # The link is still usable afterwards.
            follow_up = asyncio.create_task(transport.send("browser_go_back"))
            call = json.loads(await ws.recv())
            await ws.send(json.dumps({"id": call["id"], "success": True, "result": None}))
            assert await follow_up is None
        finally:
            await ws.close()
            await transport.close()

    asyncio.run(scenario())


def test_caller_cancellation_keeps_entry_until_deadline() -> None:
    async def scenario() -> None:
        transport = CorrelationTransport(_config(call_timeout=0.2))
        await transport.listen()
        ws = await _connect(transport)
        try:
            task = asyncio.create_task(transport.send("browser_snapshot"))
            await ws.recv()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            assert transport.pending_count == 1
            await _wait_for(lambda: transport.pending_count == 0)
        finally:
            await ws.close()
            await transport.close()

    asyncio.run(scenario())


def test_malformed_frames_are_dropped_without_closing_the_link(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="mcp.extension_bridge.transport")

    async def scenario() -> None:
        transport = CorrelationTransport(_config())
        await transport.listen()
        ws = await _connect(transport)
        try:
            task = asyncio.create_task(transport.send("browser_is_visible", {"selector": "#a"}))
            call = json.loads(await ws.recv())
            await ws.send("not json at all")
            await ws.send(json.dumps({"id": 42, "success": True}))
            await ws.send(json.dumps({"id": call["id"], "success": True, "result": True}))
            assert await task is True
            assert transport.get_connection() is not None
        finally:
            await ws.close()
            await transport.close()

    asyncio.run(scenario())
    assert sum("Failed to parse message" in r.getMessage() for r in caplog.records) == 2


def test_newer_connection_replaces_existing_peer() -> None:
    async def scenario() -> None:
        transport = CorrelationTransport(_config())
        observer = _RecordingObserver()
        transport.add_observer(observer)
        await transport.listen()
        old = await _connect(transport)
        new = await _connect(transport)
        try:
            assert transport.get_connection().peer_id == "ext-2"
            with pytest.raises(ConnectionClosed):
                await asyncio.wait_for(old.recv(), timeout=2.0)

            task = asyncio.create_task(transport.send("browser_list_tabs"))
            call = json.loads(await new.recv())
            await new.send(json.dumps({"id": call["id"], "success": True, "result": []}))
            assert await task == []

            await _wait_for(lambda: ("detached", "ext-1") in observer.events)
            assert observer.events[0] == ("attached", "ext-1")
            assert ("attached", "ext-2") in observer.events
            # Detaching the replaced peer never clears the new one.
            assert transport.get_connection().peer_id == "ext-2"
        finally:
            await new.close()
            await transport.close()

    asyncio.run(scenario())


def test_pending_call_survives_reconnect_by_default() -> None:
    async def scenario() -> None:
        transport = CorrelationTransport(_config())
        await transport.listen()
        first = await _connect(transport)
        task = asyncio.create_task(transport.send("browser_navigate", {"url": "https://example.com"}))
        call = json.loads(await first.recv())
        await first.close()
        await _wait_for(lambda: transport.get_connection() is None)
        assert transport.pending_count == 1

        second = await _connect(transport)
        try:
            await second.send(json.dumps({"id": call["id"], "success": True, "result": {"ok": True}}))
            assert await task == {"ok": True}
        finally:
            await second.close()
            await transport.close()

    asyncio.run(scenario())


def test_fail_pending_on_detach_rejects_in_flight_calls() -> None:
    async def scenario() -> None:
        transport = CorrelationTransport(_config(fail_pending_on_detach=True))
        await transport.listen()
        ws = await _connect(transport)
        try:
            task = asyncio.create_task(transport.send("browser_reload"))
            await ws.recv()
            await ws.close()
            with pytest.raises(NotConnectedError, match="Extension disconnected"):
                await asyncio.wait_for(task, timeout=2.0)
            assert transport.pending_count == 0
        finally:
            await transport.close()

    asyncio.run(scenario())


def test_close_drains_pending_calls_that_resolve_in_time() -> None:
    async def scenario() -> None:
        transport = CorrelationTransport(_config(drain_timeout=2.0))
        await transport.listen()
        ws = await _connect(transport)
        task = asyncio.create_task(transport.send("browser_get_text", {"ref": "e1"}))
        call = json.loads(await ws.recv())

        closing = asyncio.create_task(transport.close())
        await asyncio.sleep(0.05)
        assert transport.status().get("closing") is True
        with pytest.raises(ServerClosingError):
            await transport.send("browser_go_back")

        await ws.send(json.dumps({"id": call["id"], "success": True, "result": "hello"}))
        assert await task == "hello"
        await closing
        assert transport.listening is False

    asyncio.run(scenario())


def test_close_rejects_calls_still_pending_after_grace() -> None:
    async def scenario() -> None:
        transport = CorrelationTransport(_config(drain_timeout=0.1))
        await transport.listen()
        ws = await _connect(transport)
        task = asyncio.create_task(transport.send("browser_wait_for_element", {"selector": "#slow"}))
        await ws.recv()

        await transport.close()
        with pytest.raises(ServerClosingError):
            await task
        assert transport.pending_count == 0
        with pytest.raises(ConnectionClosed):
            await asyncio.wait_for(ws.recv(), timeout=2.0)

        # Second close is a no-op.
        await transport.close()

    asyncio.run(scenario())


def test_listen_on_busy_port_raises_port_in_use() -> None:
    async def scenario() -> None:
        holder = CorrelationTransport(_config())
        await holder.listen()
        try:
            contender = CorrelationTransport(_config())
            with pytest.raises(PortInUseError) as exc_info:
                await contender.listen(port=holder.port)
            assert exc_info.value.port == holder.port
        finally:
            await holder.close()

    asyncio.run(scenario())


def test_failing_observer_does_not_break_attach(caplog: pytest.LogCaptureFixture) -> None:
    class _Broken:
        def peer_attached(self, peer: PeerConnection) -> None:
            raise RuntimeError("observer exploded")

        def peer_detached(self, peer: PeerConnection) -> None:
            pass

    async def scenario() -> None:
        transport = CorrelationTransport(_config())
        transport.add_observer(_Broken())
        await transport.listen()
        ws = await _connect(transport)
        try:
            st = transport.status()
            assert st["connected"] is True
            assert st["peer"]["peerId"] == "ext-1"
        finally:
            await ws.close()
            await transport.close()

    asyncio.run(scenario())
    assert any("connection observer failed" in r.getMessage() for r in caplog.records)


def test_lone_surrogate_argument_is_escaped_and_peer_survives() -> None:
    async def scenario() -> None:
        transport = CorrelationTransport(_config())
        await transport.listen()
        ws = await _connect(transport)
        try:
            text = json.loads('"\\ud800"')
            task = asyncio.create_task(transport.send("browser_type", {"ref": "e1", "text": text}))
            raw = await asyncio.wait_for(ws.recv(), timeout=2.0)
            assert "\\ud800" in raw
            call = json.loads(raw)
            assert call["payload"] == {"ref": "e1", "text": text}

            await ws.send(json.dumps({"id": call["id"], "success": True, "result": None}))
            assert await task is None
            assert transport.get_connection().peer_id == "ext-1"
        finally:
            await ws.close()
            await transport.close()

    asyncio.run(scenario())


def test_replacement_keeps_pending_calls_with_fail_pending_on_detach() -> None:
    async def scenario() -> None:
        transport = CorrelationTransport(_config(fail_pending_on_detach=True))
        await transport.listen()
        old = await _connect(transport)
        task = asyncio.create_task(transport.send("browser_snapshot"))
        call = json.loads(await old.recv())

        new = await _connect(transport)
        try:
            assert transport.get_connection().peer_id == "ext-2"
            with pytest.raises(ConnectionClosed):
                await asyncio.wait_for(old.recv(), timeout=2.0)
            await asyncio.sleep(0.05)
            assert not task.done()
            assert transport.pending_count == 1

            await new.send(json.dumps({"id": call["id"], "success": True, "result": "- document"}))
            assert await task == "- document"
        finally:
            await new.close()
            await transport.close()

    asyncio.run(scenario())
