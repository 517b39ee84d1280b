"""
MCP server for browser automation via a Chrome extension.

This module provides the stdio JSON-RPC front end, the CLI entry point and
process lifecycle. Tool dispatch is handled via the registry in server/registry.py;
the extension link lives in transport.py and lifecycle.py.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import signal
import sys
import threading
from typing import Any

from .config import BridgeConfig
from .errors import BridgeError, InvalidParamsError, PortInUseError
from .lifecycle import ConnectionManager
from .ports import is_port_available, kill_process_on_port, wait_for_port
from .server.args import ensure_object
from .server.contract import (
    DEFAULT_PROTOCOL_VERSION,
    LATEST_PROTOCOL_VERSION,
    SERVER_INFO,
    SUPPORTED_PROTOCOL_VERSIONS,
    initialize_result,
    select_protocol,
)
from .server.redaction import redact_jsonrpc_for_log, redact_tool_arguments
from .server.registry import create_default_registry
from .server.types import ToolResult

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(message)s",
)
logger = logging.getLogger("mcp.extension_bridge")

__all__ = [
    "SUPPORTED_PROTOCOL_VERSIONS",
    "LATEST_PROTOCOL_VERSION",
    "DEFAULT_PROTOCOL_VERSION",
    "McpServer",
    "main",
]

PARENT_POLL_INTERVAL = 1.0
PORT_RELEASE_TIMEOUT = 3.0


def _write_message(payload: dict[str, Any]) -> None:
    """Write JSON-RPC message to stdout."""
    data = json.dumps(payload, ensure_ascii=False)
    sys.stdout.buffer.write((data + "\n").encode())
    sys.stdout.buffer.flush()


def _read_message() -> dict[str, Any] | None:
    """Read JSON-RPC message from stdin. None on EOF, {} for a blank line."""
    line = sys.stdin.buffer.readline()
    if not line:
        return None
    line = line.strip()
    if not line:
        return {}
    msg = json.loads(line.decode())
    if os.environ.get("MCP_TRACE"):
        logger.info("recv %s", redact_jsonrpc_for_log(msg))
    return msg


def _parent_alive(parent_pid: int) -> bool:
    if os.getppid() != parent_pid:
        return False
    try:
        os.kill(parent_pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class McpServer:
    """MCP Server with registry-based tool dispatch over one extension link."""

    def __init__(self, config: BridgeConfig | None = None) -> None:
        self.config = config or BridgeConfig.from_env()
        self.bridge = ConnectionManager.from_config(self.config)
        self.registry = create_default_registry()
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    async def start(self) -> None:
        await self.bridge.start()
        logger.info("Waiting for Chrome extension to connect on port %s...", self.bridge.transport.port)

    async def close(self) -> None:
        """Drain in-flight tool calls, then release the listener. Idempotent."""
        if self._closed:
            return
        self._closed = True
        await self.bridge.close()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def handle_initialize(self, request_id: Any, params: dict[str, Any] | None = None) -> None:
        """Handle initialize request."""
        requested = (params or {}).get("protocolVersion") if isinstance(params, dict) else None
        protocol = select_protocol(requested)
        _write_message(
            {
                "jsonrpc": "2.0",
                "id": request_id,
                "result": initialize_result(protocol),
            }
        )

    def handle_list_tools(self, request_id: Any) -> None:
        """Handle tools/list request."""
        logger.debug("tools/list")
        _write_message(
            {
                "jsonrpc": "2.0",
                "id": request_id,
                "result": {"tools": self.registry.schemas()},
            }
        )

    def _log_call(self, name: str, arguments: Any) -> None:
        """Log tool call with sanitized arguments."""
        safe_args = redact_tool_arguments(name, arguments)
        logger.info("tool=%s args=%s", name, safe_args)

    async def handle_call_tool(self, request_id: Any, name: str, arguments: Any) -> None:
        """Handle tool call via registry dispatch. Always answers with a tool result."""
        self._log_call(name, arguments)

        try:
            if not name:
                result = ToolResult.raw_error("Missing tool name")
            elif not self.registry.has(name):
                logger.error("Unknown tool: %s", name)
                result = ToolResult.raw_error(f"Unknown tool: {name}")
            else:
                result = await self.registry.dispatch(
                    name,
                    self.bridge,
                    ensure_object(arguments),
                    connect_timeout=self.config.connect_timeout,
                )
        except InvalidParamsError as e:
            logger.info("invalid_params tool=%s reason=%s", name, e)
            result = ToolResult.raw_error(f"Invalid parameters: {e}")
        except BridgeError as e:
            logger.error("Tool error: %s %s", name, e)
            result = ToolResult.error(str(e))
        except Exception as exc:
            logger.exception("tool_call_failed tool=%s", name)
            result = ToolResult.error(str(exc))

        _write_message(
            {
                "jsonrpc": "2.0",
                "id": request_id,
                "result": result.to_response(),
            }
        )

    def _spawn(self, coro: Any) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def dispatch(self, message: dict[str, Any]) -> asyncio.Task | None:
        """Dispatch incoming JSON-RPC message to appropriate handler.

        Tool calls run as their own tasks so one slow call never blocks the rest;
        the task is returned for callers that want to await it.
        """
        if not message:
            return None

        method = message.get("method")
        request_id = message.get("id")
        params = message.get("params") or {}

        if method == "initialize":
            self.handle_initialize(request_id, params)
        elif isinstance(method, str) and method.startswith("notifications/"):
            return None
        elif method == "tools/list":
            self.handle_list_tools(request_id)
        elif method == "tools/call":
            if self._closed:
                _write_message(
                    {
                        "jsonrpc": "2.0",
                        "id": request_id,
                        "result": ToolResult.error("Server closing").to_response(),
                    }
                )
                return None
            name = params.get("name") if isinstance(params, dict) else None
            arguments = params.get("arguments") if isinstance(params, dict) else None
            return self._spawn(self.handle_call_tool(request_id, name or "", arguments))
        elif method == "ping":
            _write_message({"jsonrpc": "2.0", "id": request_id, "result": {}})
        elif request_id is not None:
            _write_message(
                {
                    "jsonrpc": "2.0",
                    "id": request_id,
                    "error": {"code": -32601, "message": f"Method {method} not found"},
                }
            )
        return None

    async def serve(self) -> None:
        """Run until stdin closes, a termination signal arrives, or the parent exits."""
        loop = asyncio.get_running_loop()
        stop = asyncio.Event()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, self._on_signal, sig, stop)

        await self.start()

        inbox: asyncio.Queue = asyncio.Queue()
        # stdin reads block; a daemon thread keeps them from holding up shutdown.
        threading.Thread(target=self._stdin_pump, args=(loop, inbox), name="mcp-stdin", daemon=True).start()
        pump = loop.create_task(self._consume(inbox, stop))
        watchdog = loop.create_task(self._watch_parent(os.getppid(), stop))

        try:
            await stop.wait()
        finally:
            pump.cancel()
            watchdog.cancel()
            for sig in (signal.SIGINT, signal.SIGTERM):
                with contextlib.suppress(NotImplementedError, RuntimeError):
                    loop.remove_signal_handler(sig)
            logger.info("Shutting down...")
            await self.close()

    def _on_signal(self, sig: signal.Signals, stop: asyncio.Event) -> None:
        logger.info("Received %s, exiting...", sig.name)
        stop.set()

    @staticmethod
    def _stdin_pump(loop: asyncio.AbstractEventLoop, inbox: asyncio.Queue) -> None:
        while True:
            try:
                message = _read_message()
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                loop.call_soon_threadsafe(inbox.put_nowait, exc)
                continue
            except (OSError, ValueError):
                message = None
            try:
                loop.call_soon_threadsafe(inbox.put_nowait, message)
            except RuntimeError:
                return
            if message is None:
                return

    async def _consume(self, inbox: asyncio.Queue, stop: asyncio.Event) -> None:
        while True:
            item = await inbox.get()
            if item is None:
                logger.info("stdin closed, exiting...")
                stop.set()
                return
            if isinstance(item, Exception):
                logger.warning("Dropping unparseable request: %s", item)
                _write_message({"jsonrpc": "2.0", "id": None, "error": {"code": -32700, "message": "Parse error"}})
                continue
            if not isinstance(item, dict):
                _write_message({"jsonrpc": "2.0", "id": None, "error": {"code": -32600, "message": "Invalid Request"}})
                continue
            self.dispatch(item)

    @staticmethod
    async def _watch_parent(parent_pid: int, stop: asyncio.Event) -> None:
        while not stop.is_set():
            await asyncio.sleep(PARENT_POLL_INTERVAL)
            if not _parent_alive(parent_pid):
                logger.info("Parent process terminated, exiting...")
                stop.set()
                return


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="extension-bridge-mcp",
        description="MCP server for browser automation via Chrome extension",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {SERVER_INFO['version']}")
    parser.add_argument("-p", "--port", type=int, default=None, help="WebSocket port for extension connection")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--kill-existing", action="store_true", help="Kill any existing process on the port")
    return parser


def config_from_args(args: argparse.Namespace) -> BridgeConfig:
    config = BridgeConfig.from_env()
    if args.port is not None:
        config.port = args.port
    config.verbose = config.verbose or args.verbose
    config.kill_existing = args.kill_existing
    return config


def ensure_port(config: BridgeConfig) -> bool:
    """Make sure the listener port is free, killing the holder if allowed."""
    if is_port_available(config.port, config.host):
        return True
    if not config.kill_existing:
        logger.error("Port %d is already in use. Use --kill-existing to terminate the existing process.", config.port)
        return False

    logger.warning("Port %d in use, killing existing process...", config.port)
    if not kill_process_on_port(config.port):
        logger.error("Failed to kill process on port %d", config.port)
        return False
    if not wait_for_port(config.port, config.host, timeout=PORT_RELEASE_TIMEOUT):
        logger.error("Port %d still in use after killing process", config.port)
        return False
    logger.info("Port %d is now available", config.port)
    return True


def main(argv: list[str] | None = None) -> int:
    """Main entry point for MCP server."""
    args = build_parser().parse_args(argv)
    config = config_from_args(args)
    if config.verbose:
        logging.getLogger("mcp.extension_bridge").setLevel(logging.DEBUG)

    if not 0 < config.port < 65536:
        logger.error("Invalid port: %s", config.port)
        return 1

    logger.info("Starting Agent Jake Browser MCP Server on port %d", config.port)
    if not ensure_port(config):
        return 1

    server = McpServer(config)
    try:
        asyncio.run(server.serve())
    except PortInUseError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
