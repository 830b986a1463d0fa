"""Helpers for safe debug logging.

Control server payloads carry the client identity, test tokens, sync codes
and the client's public address. Anyone holding the identity or a sync code
can read or adopt the client's history, so these values are masked before
request/response bodies reach DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_REDACTED = "<redacted>"
_MAX_DEPTH = 20

# Keys whose values identify the client or unlock its history.
_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "uuid",
        "client_uuid",
        "test_token",
        "sync_code",
        "client_remote_ip",
        "ip",
    }
)


def _truncate(text: str, max_string: int) -> str:
    if len(text) <= max_string:
        return text
    return f"{text[:max_string]}…<truncated>"


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of a decoded JSON *value* with sensitive fields masked.

    Strings longer than *max_string* are truncated. Anything that is not a
    JSON type is rendered with ``repr``.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _truncate(value, max_string)
    if isinstance(value, Mapping):
        return {
            str(key): _REDACTED
            if str(key).lower() in _SENSITIVE_KEYS
            else redact_for_log(item, max_string=max_string, _depth=_depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]
    return repr(value)
