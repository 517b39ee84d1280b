"""MCP server that relays browser-automation tools to a Chrome extension over a local WebSocket."""
