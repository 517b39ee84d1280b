"""Redaction helpers for logs and traces.

Tool arguments may carry typed text, credentials or URLs with tokens; none of
that belongs in stderr. Tool responses themselves are never redacted.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_SENSITIVE_KEYS = {
    "password",
    "passwd",
    "secret",
    "token",
    "apikey",
    "api_key",
    "authorization",
    "cookie",
}

_SENSITIVE_URL_KEYS = {"token", "access_token", "refresh_token", "id_token", "code", "key", "api_key", "secret", "sig"}

# Per-tool argument keys whose values are user content.
_TOOL_SENSITIVE_ARGS = {
    "browser_type": {"text"},
    "browser_select_option": {"value", "label"},
}


def _redacted_summary(value: Any) -> str:
    if isinstance(value, str):
        return f"<redacted str len={len(value)}>"
    if isinstance(value, (list, tuple)):
        return f"<redacted list len={len(value)}>"
    if isinstance(value, dict):
        return f"<redacted dict keys={len(value)}>"
    return "<redacted>"


def redact_url(url: str) -> str:
    """Drop userinfo and mask token-like query parameters; other params stay readable."""
    if not isinstance(url, str) or not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    netloc = parts.netloc.split("@", 1)[1] if "@" in parts.netloc else parts.netloc
    query = parts.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        if any(k.lower() in _SENSITIVE_URL_KEYS for k, _ in pairs):
            query = urlencode(
                [(k, "<redacted>" if k.lower() in _SENSITIVE_URL_KEYS and v else v) for k, v in pairs],
                doseq=True,
            )

    if netloc == parts.netloc and query == parts.query:
        return url
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def _redact_any(value: Any, *, tool: str, key: str | None) -> Any:
    if isinstance(value, dict):
        return {k: _redact_any(v, tool=tool, key=str(k)) for k, v in value.items()}
    if isinstance(value, list):
        return [_redact_any(v, tool=tool, key=key) for v in value]

    lk = (key or "").lower()
    if lk == "url" and isinstance(value, str):
        return redact_url(value)
    if lk in _TOOL_SENSITIVE_ARGS.get(tool, ()):
        return _redacted_summary(value)
    if lk in _SENSITIVE_KEYS:
        return _redacted_summary(value)
    return value


def redact_tool_arguments(tool: str, arguments: Any) -> Any:
    """Copy of `arguments` that is safe to log for `tool`."""
    if not isinstance(arguments, dict):
        return arguments
    return _redact_any(arguments, tool=tool, key=None)


def redact_jsonrpc_for_log(message: Any) -> Any:
    """Redact tools/call arguments inside a JSON-RPC request for trace logs."""
    if not isinstance(message, dict):
        return message
    params = message.get("params")
    if message.get("method") != "tools/call" or not isinstance(params, dict):
        return message
    safe_params = dict(params)
    safe_params["arguments"] = redact_tool_arguments(str(params.get("name") or ""), params.get("arguments"))
    return {**message, "params": safe_params}


__all__ = ["redact_jsonrpc_for_log", "redact_tool_arguments", "redact_url"]
