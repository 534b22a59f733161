"""Helpers for safe debug logging.

Trip documents carry base64 attachments and header images, and the weather
lookup carries an API key. This module provides a small utility to redact
secrets and shorten blobs before emitting DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "appid",
        "apikey",
        "api_key",
        "token",
        "authorization",
        "cookie",
    }
)

# Keys whose values are opaque blobs (base64 images, receipts, tickets).
_BLOB_KEYS: frozenset[str] = frozenset(
    {
        "data",
        "headerimage",
        "receipturl",
        "ticketurl",
    }
)


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            lowered = key.lower()
            if lowered in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            elif lowered in _BLOB_KEYS and isinstance(v, str) and len(v) > 64:
                redacted[key] = f"<blob:{len(v)}chars>"
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    return repr(value)
