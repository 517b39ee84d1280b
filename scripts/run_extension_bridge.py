#!/usr/bin/env python3
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

print(
    f"[mcp] host={os.environ.get('MCP_EXTENSION_HOST', '127.0.0.1')} | "
    f"port={os.environ.get('MCP_EXTENSION_PORT', '8765')} | "
    f"call_timeout={os.environ.get('MCP_CALL_TIMEOUT', '30')}s | "
    f"connect_timeout={os.environ.get('MCP_EXTENSION_CONNECT_TIMEOUT', '10')}s",
    file=sys.stderr,
)

from mcp_servers.extension_bridge.main import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
