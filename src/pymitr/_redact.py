"""Helpers for safe debug logging.

Every pymitr request carries the shared API key in its headers, and data
responses can carry long coordinate batches. Both are cut down here before
they reach DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_REDACTED = "<redacted>"
_MAX_LIST_ITEMS = 20

_SENSITIVE_KEYS: frozenset[str] = frozenset({"x-api-key", "apikey", "api_key", "authorization", "cookie"})


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a log-safe copy of a header mapping or decoded JSON document.

    Credential keys are masked, strings longer than *max_string* are cut,
    and lists of more than 20 entries are replaced by their length.
    """
    if isinstance(value, Mapping):
        return {
            str(key): _REDACTED if str(key).lower() in _SENSITIVE_KEYS else redact_for_log(item, max_string=max_string)
            for key, item in value.items()
        }
    if isinstance(value, list):
        if len(value) > _MAX_LIST_ITEMS:
            return f"<list:{len(value)} items>"
        return [redact_for_log(item, max_string=max_string) for item in value]
    if isinstance(value, str) and len(value) > max_string:
        return f"{value[:max_string]}<truncated:{len(value)} chars>"
    return value
