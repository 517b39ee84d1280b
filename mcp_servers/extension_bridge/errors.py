"""Error taxonomy for the extension bridge.

Every caller-visible failure of a relayed call is one of these. The front
server turns them into error tool results; nothing here is retried.
"""

from __future__ import annotations


class BridgeError(Exception):
    pass


class NotConnectedError(BridgeError):
    """No extension peer is attached."""

    def __init__(self, message: str = "No extension connected") -> None:
        super().__init__(message)


class CallTimeoutError(BridgeError):
    """No reply arrived before the call deadline."""

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(f"Request timed out: {operation}")
        self.operation = operation
        self.timeout = timeout


class ConnectTimeoutError(BridgeError):
    def __init__(self, timeout: float) -> None:
        super().__init__("Timeout waiting for extension connection")
        self.timeout = timeout


class PeerError(BridgeError):
    """The extension reported a failure for a specific call."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"PeerError(code={self.code!r}, message={self.message!r})"


class ServerClosingError(BridgeError):
    def __init__(self, message: str = "Server closing") -> None:
        super().__init__(message)


class MalformedMessageError(BridgeError):
    """Inbound frame could not be decoded as a reply. Never surfaced to callers."""


class PortInUseError(BridgeError):
    def __init__(self, host: str, port: int, reason: str = "") -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(f"Port {port} on {host} is already in use{detail}")
        self.host = host
        self.port = port


class InvalidParamsError(BridgeError):
    """Tool arguments failed validation; nothing was sent to the extension."""


__all__ = [
    "BridgeError",
    "CallTimeoutError",
    "ConnectTimeoutError",
    "InvalidParamsError",
    "MalformedMessageError",
    "NotConnectedError",
    "PeerError",
    "PortInUseError",
    "ServerClosingError",
]
