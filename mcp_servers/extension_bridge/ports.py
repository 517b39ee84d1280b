"""Port helpers for the extension listener: probe, find the holder, free it."""

from __future__ import annotations

import contextlib
import logging
import os
import signal
import socket
import subprocess
import time

from .config import DEFAULT_HOST

logger = logging.getLogger("mcp.extension_bridge.ports")


def is_port_available(port: int, host: str = DEFAULT_HOST) -> bool:
    """True if `port` can be bound on `host` right now."""
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def find_process_on_port(port: int, timeout: float = 2.0) -> int | None:
    """PID of the process listening on `port`, via lsof. None if unknown."""
    try:
        proc = subprocess.run(
            ["lsof", "-nP", f"-iTCP:{port}", "-sTCP:LISTEN", "-t"],
            capture_output=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.debug("lsof unavailable: %s", exc)
        return None

    for line in proc.stdout.decode(errors="replace").splitlines():
        line = line.strip()
        if line.isdigit():
            return int(line)
    return None


def kill_process_on_port(port: int) -> bool:
    """SIGTERM the listener on `port`. Returns True if a signal was delivered."""
    pid = find_process_on_port(port)
    if pid is None or pid == os.getpid():
        return False
    logger.info("Killing process %d holding port %d", pid, port)
    try:
        os.kill(pid, signal.SIGTERM)
    except ProcessLookupError:
        return False
    except PermissionError as exc:
        logger.error("Cannot signal process %d: %s", pid, exc)
        return False
    # Give it a moment to release the socket.
    time.sleep(0.5)
    return True


def wait_for_port(port: int, host: str = DEFAULT_HOST, timeout: float = 3.0, interval: float = 0.1) -> bool:
    """Poll until `port` is bindable or `timeout` elapses."""
    deadline = time.monotonic() + max(0.0, timeout)
    while True:
        if is_port_available(port, host):
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(interval)


__all__ = ["find_process_on_port", "is_port_available", "kill_process_on_port", "wait_for_port"]
