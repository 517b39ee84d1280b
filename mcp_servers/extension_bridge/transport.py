from __future__ import annotations

import asyncio
import contextlib
import errno
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import websockets
from websockets.exceptions import ConnectionClosed

from .config import BridgeConfig
from .errors import (
    BridgeError,
    CallTimeoutError,
    MalformedMessageError,
    NotConnectedError,
    PortInUseError,
    ServerClosingError,
)
from .protocol import Call, Reply, decode_reply

logger = logging.getLogger("mcp.extension_bridge.transport")

# Full-page screenshots arrive as base64 inside a single frame.
MAX_FRAME_BYTES = 64 * 1024 * 1024


def _now_ms() -> int:
    return int(time.time() * 1000)


def _format_address(addr: Any) -> str | None:
    if isinstance(addr, tuple) and len(addr) >= 2:
        return f"{addr[0]}:{addr[1]}"
    return str(addr) if addr else None


@dataclass(eq=False)
class PeerConnection:
    """The single attached extension. Identity-compared."""

    peer_id: str
    websocket: Any
    remote_address: str | None = None
    connected_at_ms: int = field(default_factory=_now_ms)

    def describe(self) -> dict[str, Any]:
        return {
            "peerId": self.peer_id,
            **({"remoteAddress": self.remote_address} if self.remote_address else {}),
            "connectedAtMs": self.connected_at_ms,
        }


class ConnectionObserver(Protocol):
    def peer_attached(self, peer: PeerConnection) -> None: ...

    def peer_detached(self, peer: PeerConnection) -> None: ...


@dataclass(eq=False)
class _PendingEntry:
    call: Call
    # Resolves to the Reply, or to the BridgeError the caller should see.
    future: asyncio.Future
    timer: asyncio.TimerHandle | None = None

    def settle(self, outcome: Reply | BridgeError) -> None:
        if self.timer is not None:
            self.timer.cancel()
        if not self.future.done():
            self.future.set_result(outcome)


class CorrelationTransport:
    """Loopback WebSocket endpoint that relays calls to one extension peer.

    Each `send` gets a fresh UUID, a pending entry and a deadline timer. Replies are
    matched purely by id, so concurrent calls complete in whatever order the
    extension answers. Whichever of reply, timer or shutdown pops the pending entry
    first is its only resolver.

    All state lives on the event loop that called `listen`; nothing here is
    thread-safe and nothing needs to be.
    """

    def __init__(self, config: BridgeConfig | None = None) -> None:
        self.config = config or BridgeConfig.from_env()
        self.host = self.config.host
        self.port = int(self.config.port)

        # Typed as Any so this module does not pin a websockets server class.
        self._server: Any | None = None
        self._peer: PeerConnection | None = None
        self._peer_seq = 0
        # Accepts currently closing an old peer to make room for a new one.
        self._replacing = 0
        self._pending: dict[str, _PendingEntry] = {}
        self._observers: list[ConnectionObserver] = []
        self._closing = False
        self._closed = False
        self._started_at_ms = _now_ms()

        # small diagnostics buffer surfaced via status()
        self._logs: deque[dict[str, Any]] = deque(maxlen=200)

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def add_observer(self, observer: ConnectionObserver) -> None:
        self._observers.append(observer)

    def remove_observer(self, observer: ConnectionObserver) -> None:
        with contextlib.suppress(ValueError):
            self._observers.remove(observer)

    async def listen(self, port: int | None = None) -> None:
        """Bind the endpoint. Port 0 picks a free port (reflected in `self.port`)."""
        if self._server is not None:
            return
        if self._closed or self._closing:
            raise ServerClosingError("Transport already closed")
        if port is not None:
            self.port = int(port)

        try:
            server = await websockets.serve(
                self._handle_connection,
                self.host,
                self.port,
                max_size=MAX_FRAME_BYTES,
                ping_interval=None,
                close_timeout=2.0,
            )
        except OSError as exc:
            if getattr(exc, "errno", None) == errno.EADDRINUSE:
                raise PortInUseError(self.host, self.port, str(exc)) from exc
            raise

        self._server = server
        if self.port == 0:
            with contextlib.suppress(Exception):
                self.port = int(next(iter(server.sockets)).getsockname()[1])
        self._log("info", f"listening on ws://{self.host}:{self.port}")
        logger.info("WebSocket server listening on ws://%s:%s", self.host, self.port)

    async def close(self) -> None:
        """Drain pending calls, then tear down the peer and the listener.

        Pending calls get `drain_timeout` seconds to settle naturally; the rest are
        rejected with ServerClosingError. Repeated calls are no-ops.
        """
        if self._closing or self._closed:
            return
        self._closing = True

        waiting = [entry.future for entry in self._pending.values()]
        if waiting:
            logger.info("Draining %d pending call(s), grace=%.1fs", len(waiting), self.config.drain_timeout)
            await asyncio.wait(waiting, timeout=self.config.drain_timeout)

        leftover = self._reject_all(ServerClosingError)
        if leftover:
            logger.warning("Rejected %d pending call(s) on shutdown", leftover)

        peer = self._peer
        self._peer = None
        if peer is not None:
            await peer.websocket.close(code=1001, reason="server closing")

        server = self._server
        self._server = None
        if server is not None:
            server.close()
            await server.wait_closed()

        self._closed = True
        self._log("info", "server closed")
        logger.info("WebSocket server closed")

    # ─────────────────────────────────────────────────────────────────────────
    # Calls
    # ─────────────────────────────────────────────────────────────────────────

    def get_connection(self) -> PeerConnection | None:
        return self._peer

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def listening(self) -> bool:
        return self._server is not None

    async def send(self, operation: str, payload: dict[str, Any] | None = None) -> Any:
        """Relay one call to the extension and return its result.

        Raises NotConnectedError (no peer, nothing queued), CallTimeoutError,
        PeerError (extension reported failure) or ServerClosingError.

        The pending entry is shielded from caller cancellation: it stays
        registered until a reply, its deadline, or shutdown.
        """
        if self._closing or self._closed:
            raise ServerClosingError()
        peer = self._peer
        if peer is None:
            raise NotConnectedError()

        call = Call.create(operation, payload)
        if call.id in self._pending:
            raise BridgeError(f"Duplicate call id: {call.id}")
        frame = call.to_wire()

        loop = asyncio.get_running_loop()
        timeout = float(self.config.call_timeout)
        entry = _PendingEntry(call=call, future=loop.create_future())
        entry.timer = loop.call_later(timeout, self._expire, call.id, timeout)
        self._pending[call.id] = entry

        logger.debug("send id=%s type=%s", call.id, call.type)
        try:
            await peer.websocket.send(frame)
        except ConnectionClosed as exc:
            if self._pending.pop(call.id, None) is entry and entry.timer is not None:
                entry.timer.cancel()
            raise NotConnectedError(f"Extension connection lost while sending {operation}") from exc

        outcome = await asyncio.shield(entry.future)
        if isinstance(outcome, BridgeError):
            raise outcome
        return outcome.unwrap()

    def status(self) -> dict[str, Any]:
        peer = self._peer
        return {
            "listening": self.listening,
            "host": self.host,
            "port": self.port,
            "connected": peer is not None,
            "peer": peer.describe() if peer is not None else None,
            "pending": len(self._pending),
            "serverStartedAtMs": self._started_at_ms,
            **({"closing": True} if self._closing and not self._closed else {}),
            "logs": list(self._logs)[-20:],
        }

    # ─────────────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────────────

    async def _handle_connection(self, ws: Any) -> None:
        if self._closing or self._closed:
            await ws.close(code=1001, reason="server closing")
            return

        # Last connection wins. Loop because another accept may adopt while we await a close.
        while self._peer is not None:
            previous = self._peer
            self._peer = None
            logger.warning("Closing existing connection for new one (old peer=%s)", previous.peer_id)
            self._replacing += 1
            try:
                await previous.websocket.close(code=1000, reason="replaced by newer connection")
            finally:
                self._replacing -= 1

        self._peer_seq += 1
        peer = PeerConnection(
            peer_id=f"ext-{self._peer_seq}",
            websocket=ws,
            remote_address=_format_address(getattr(ws, "remote_address", None)),
        )
        self._peer = peer
        self._log("info", f"extension connected peer={peer.peer_id}")
        logger.info("Extension connected peer=%s remote=%s", peer.peer_id, peer.remote_address)
        self._notify("peer_attached", peer)

        try:
            async for raw in ws:
                self._on_frame(peer, raw)
        except ConnectionClosed as exc:
            logger.warning("Extension connection error peer=%s: %s", peer.peer_id, exc)
        finally:
            self._detach(peer)

    def _detach(self, peer: PeerConnection) -> None:
        if self._peer is peer:
            self._peer = None
        self._log("info", f"extension disconnected peer={peer.peer_id}")
        logger.info("Extension disconnected peer=%s", peer.peer_id)

        # A replaced peer hands its pending calls over to the incoming one.
        replaced = self._replacing > 0
        if self.config.fail_pending_on_detach and self._peer is None and not replaced and not self._closing:
            failed = self._reject_all(lambda: NotConnectedError("Extension disconnected"))
            if failed:
                logger.warning("Failed %d pending call(s) on disconnect", failed)

        self._notify("peer_detached", peer)

    def _on_frame(self, peer: PeerConnection, raw: str | bytes) -> None:
        try:
            reply = decode_reply(raw)
        except MalformedMessageError as exc:
            self._log("warn", f"malformed message: {exc}")
            logger.warning("Failed to parse message peer=%s: %s", peer.peer_id, exc)
            return

        logger.debug("recv id=%s success=%s", reply.id, reply.success)
        entry = self._pending.pop(reply.id, None)
        if entry is None:
            logger.info("unmatched reply id=%s success=%s (late or unknown), dropped", reply.id, reply.success)
            return
        entry.settle(reply)

    def _expire(self, call_id: str, timeout: float) -> None:
        entry = self._pending.pop(call_id, None)
        if entry is None:
            return
        self._log("warn", f"timeout type={entry.call.type}")
        logger.warning("timeout id=%s type=%s after=%.1fs", call_id, entry.call.type, timeout)
        entry.settle(CallTimeoutError(entry.call.type, timeout))

    def _reject_all(self, make_error: Callable[[], BridgeError]) -> int:
        entries = list(self._pending.values())
        self._pending.clear()
        for entry in entries:
            entry.settle(make_error())
        return len(entries)

    def _notify(self, event: str, peer: PeerConnection) -> None:
        for observer in list(self._observers):
            try:
                getattr(observer, event)(peer)
            except Exception:
                logger.exception("connection observer failed event=%s", event)

    def _log(self, level: str, message: str) -> None:
        self._logs.append({"ts": _now_ms(), "level": level, "message": message})


__all__ = ["ConnectionObserver", "CorrelationTransport", "PeerConnection"]
