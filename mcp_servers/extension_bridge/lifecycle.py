"""Connection lifecycle on top of the correlation transport.

Tool handlers talk to the extension only through `ConnectionManager`: it answers
"is a peer attached?", lets callers wait for the next attach, and forwards calls.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .config import BridgeConfig
from .errors import BridgeError, ConnectTimeoutError, ServerClosingError
from .transport import CorrelationTransport, PeerConnection

logger = logging.getLogger("mcp.extension_bridge.lifecycle")


class ConnectionManager:
    """Readiness queries and a shared "wait until connected" for one transport.

    Concurrent waiters share a single future and a single timer: the next attach
    wakes all of them, the timer rejects all of them. Either way the shared future
    is cleared so a later wait starts fresh.
    """

    def __init__(self, transport: CorrelationTransport) -> None:
        self.transport = transport
        # Resolves to None on attach, or to the error waiters should raise.
        self._waiter: asyncio.Future | None = None
        self._waiter_timer: asyncio.TimerHandle | None = None
        transport.add_observer(self)

    @classmethod
    def from_config(cls, config: BridgeConfig) -> ConnectionManager:
        return cls(CorrelationTransport(config))

    @property
    def config(self) -> BridgeConfig:
        return self.transport.config

    async def start(self) -> None:
        await self.transport.listen()

    async def close(self) -> None:
        self._settle_waiter(ServerClosingError())
        await self.transport.close()

    def is_connected(self) -> bool:
        return self.transport.get_connection() is not None

    async def wait_for_connection(self, timeout: float = 30.0) -> None:
        """Return once an extension is attached; raise ConnectTimeoutError otherwise.

        Only the first waiter's timeout arms the shared timer.
        """
        if self.is_connected():
            return

        if self._waiter is None:
            loop = asyncio.get_running_loop()
            self._waiter = loop.create_future()
            self._waiter_timer = loop.call_later(max(0.0, float(timeout)), self._expire_waiter, float(timeout))

        outcome = await asyncio.shield(self._waiter)
        if isinstance(outcome, BridgeError):
            raise outcome

    async def send(self, operation: str, payload: dict[str, Any] | None = None) -> Any:
        return await self.transport.send(operation, payload)

    def status(self) -> dict[str, Any]:
        return {**self.transport.status(), "waitingForConnection": self._waiter is not None}

    # ConnectionObserver

    def peer_attached(self, peer: PeerConnection) -> None:
        if self._waiter is not None:
            logger.debug("peer %s attached, releasing connection waiters", peer.peer_id)
        self._settle_waiter(None)

    def peer_detached(self, peer: PeerConnection) -> None:
        if not self.is_connected():
            logger.warning("Extension disconnected (peer=%s), waiting for reconnection...", peer.peer_id)

    # Internals

    def _expire_waiter(self, timeout: float) -> None:
        logger.warning("No extension connected within %.1fs", timeout)
        self._settle_waiter(ConnectTimeoutError(timeout))

    def _settle_waiter(self, outcome: BridgeError | None) -> None:
        waiter = self._waiter
        timer = self._waiter_timer
        self._waiter = None
        self._waiter_timer = None
        if timer is not None:
            timer.cancel()
        if waiter is not None and not waiter.done():
            waiter.set_result(outcome)


__all__ = ["ConnectionManager"]
