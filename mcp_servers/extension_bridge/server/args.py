"""Argument readers for tool handlers.

Each reader validates one field and raises InvalidParamsError with a
`<field>: <reason>` message. Unknown keys are ignored.
"""

from __future__ import annotations

import urllib.parse
from collections.abc import Iterable
from typing import Any

from ..errors import InvalidParamsError

_MISSING = object()


def _fail(key: str, reason: str) -> InvalidParamsError:
    return InvalidParamsError(f"{key}: {reason}")


def ensure_object(args: Any) -> dict[str, Any]:
    if args is None:
        return {}
    if not isinstance(args, dict):
        raise InvalidParamsError("arguments must be an object")
    return args


def get_str(args: dict[str, Any], key: str, *, required: bool = False, default: str | None = None) -> str | None:
    value = args.get(key, _MISSING)
    if value is _MISSING or value is None:
        if required:
            raise _fail(key, "Required")
        return default
    if not isinstance(value, str):
        raise _fail(key, "Expected string")
    return value


def get_url(args: dict[str, Any], key: str) -> str:
    value = get_str(args, key, required=True) or ""
    parsed = urllib.parse.urlparse(value.strip())
    if not parsed.scheme or not (parsed.netloc or parsed.path):
        raise _fail(key, "Invalid url")
    if parsed.scheme in {"http", "https"} and not parsed.netloc:
        raise _fail(key, "Invalid url")
    return value


def get_bool(args: dict[str, Any], key: str, default: bool | None = None) -> bool | None:
    value = args.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise _fail(key, "Expected boolean")
    return value


def get_number(
    args: dict[str, Any],
    key: str,
    *,
    required: bool = False,
    default: float | None = None,
    minimum: float | None = None,
    maximum: float | None = None,
) -> float | int | None:
    value = args.get(key)
    if value is None:
        if required:
            raise _fail(key, "Required")
        return default
    # bool is an int subclass; JSON true/false is never a number here.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _fail(key, "Expected number")
    if minimum is not None and value < minimum:
        raise _fail(key, f"Number must be greater than or equal to {minimum:g}")
    if maximum is not None and value > maximum:
        raise _fail(key, f"Number must be less than or equal to {maximum:g}")
    return value


def get_enum(args: dict[str, Any], key: str, choices: Iterable[str], default: str | None = None) -> str | None:
    allowed = tuple(choices)
    value = args.get(key)
    if value is None:
        return default
    if value not in allowed:
        raise _fail(key, f"Expected one of {', '.join(repr(c) for c in allowed)}")
    return value


def get_enum_list(args: dict[str, Any], key: str, choices: Iterable[str]) -> list[str] | None:
    allowed = tuple(choices)
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise _fail(key, "Expected array")
    for item in value:
        if item not in allowed:
            raise _fail(key, f"Expected items in {', '.join(repr(c) for c in allowed)}")
    return list(value)


def get_target(args: dict[str, Any], *, ref_key: str = "ref", selector_key: str = "selector", label: str = "") -> tuple[str | None, str | None]:
    """Read an element target: a snapshot ref or a CSS selector, at least one required."""
    ref = get_str(args, ref_key)
    selector = get_str(args, selector_key)
    if not ref and not selector:
        what = f"{label} ref or selector" if label else "Either ref or selector"
        raise InvalidParamsError(f"{what} must be provided")
    return ref, selector


__all__ = [
    "ensure_object",
    "get_bool",
    "get_enum",
    "get_enum_list",
    "get_number",
    "get_str",
    "get_target",
    "get_url",
]
