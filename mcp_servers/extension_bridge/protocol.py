"""Wire format shared with the browser extension.

Server -> extension (one JSON text frame per call):
    {"id": "<uuid>", "type": "<tool name>", "payload": {...}}

Extension -> server (matched by id):
    {"id": "<uuid>", "success": true, "result": <any>}
    {"id": "<uuid>", "success": false, "error": {"code": "<str>", "message": "<str>"}}
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any

from .errors import MalformedMessageError, PeerError


def new_call_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True, slots=True)
class Call:
    id: str
    type: str
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, operation: str, payload: dict[str, Any] | None = None) -> Call:
        # Unset optionals are omitted from the wire payload.
        body = {k: v for k, v in (payload or {}).items() if v is not None}
        return cls(id=new_call_id(), type=operation, payload=body)

    def to_wire(self) -> str:
        # ASCII escapes keep lone surrogates from typed text encodable as a UTF-8 frame.
        return json.dumps({"id": self.id, "type": self.type, "payload": self.payload})


@dataclass(frozen=True, slots=True)
class Reply:
    id: str
    success: bool
    result: Any = None
    error_code: str | None = None
    error_message: str | None = None

    def unwrap(self) -> Any:
        """Return the result, or raise PeerError for a failure reply."""
        if self.success:
            return self.result
        raise PeerError(self.error_code or "UNKNOWN", self.error_message or "Extension call failed")


def decode_reply(raw: str | bytes) -> Reply:
    """Decode one inbound frame into a Reply.

    Required: a non-empty string `id` and a boolean `success`; failures must also
    carry `error.code` and `error.message` strings. Anything else is malformed.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedMessageError(f"frame is not utf-8: {exc}") from exc
    try:
        msg = json.loads(raw)
    except ValueError as exc:
        raise MalformedMessageError(f"invalid JSON: {exc}") from exc

    if not isinstance(msg, dict):
        raise MalformedMessageError("reply must be a JSON object")

    reply_id = msg.get("id")
    if not isinstance(reply_id, str) or not reply_id:
        raise MalformedMessageError("reply is missing a string id")

    success = msg.get("success")
    if success is True:
        # A JS peer drops an undefined `result` when serializing, so a missing key reads as None.
        return Reply(id=reply_id, success=True, result=msg.get("result"))
    if success is not False:
        raise MalformedMessageError(f"reply {reply_id} has no boolean success flag")

    err = msg.get("error")
    if not isinstance(err, dict):
        raise MalformedMessageError(f"failure reply {reply_id} has no error object")
    code = err.get("code")
    message = err.get("message")
    if not isinstance(code, str) or not isinstance(message, str):
        raise MalformedMessageError(f"failure reply {reply_id} needs error.code and error.message strings")
    return Reply(id=reply_id, success=False, error_code=code, error_message=message)


__all__ = ["Call", "Reply", "decode_reply", "new_call_id"]
