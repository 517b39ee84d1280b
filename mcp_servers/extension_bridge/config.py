from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765
DEFAULT_CALL_TIMEOUT = 30.0
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_DRAIN_TIMEOUT = 5.0


def _env_float(name: str, default: float) -> float:
    try:
        value = float(os.environ.get(name) or default)
    except ValueError:
        return default
    return value if value > 0 else default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name) or default)
    except ValueError:
        return default


def _env_flag(name: str) -> bool:
    return (os.environ.get(name) or "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class BridgeConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    call_timeout: float = DEFAULT_CALL_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    drain_timeout: float = DEFAULT_DRAIN_TIMEOUT
    # Reconnects keep in-flight calls alive until their own deadline unless this is set.
    fail_pending_on_detach: bool = False
    kill_existing: bool = False
    verbose: bool = False

    @staticmethod
    def normalize_host(raw: str | None) -> str:
        host = (raw or "").strip().lower()
        # Loopback only: the extension is always local.
        if host in {"localhost", "127.0.0.1", "::1"}:
            return host
        return DEFAULT_HOST

    @classmethod
    def from_env(cls) -> BridgeConfig:
        port = _env_int("MCP_EXTENSION_PORT", DEFAULT_PORT)
        if port < 1 or port > 65535:
            port = DEFAULT_PORT
        return cls(
            host=cls.normalize_host(os.environ.get("MCP_EXTENSION_HOST")),
            port=port,
            call_timeout=_env_float("MCP_CALL_TIMEOUT", DEFAULT_CALL_TIMEOUT),
            connect_timeout=_env_float("MCP_EXTENSION_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
            drain_timeout=_env_float("MCP_DRAIN_TIMEOUT", DEFAULT_DRAIN_TIMEOUT),
            fail_pending_on_detach=_env_flag("MCP_FAIL_PENDING_ON_DETACH"),
            verbose=_env_flag("MCP_VERBOSE"),
        )
