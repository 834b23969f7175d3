"""Redaction of credentials before request details reach debug output."""

from collections.abc import Mapping
from typing import Any

REDACT_KEYS: frozenset[str] = frozenset({
    "api_key",
    "token",
    "secret",
    "password",
    "access_key",
    "access_token",
    "refresh_token",
    "authorization",
    "auth_token",
    "private_key",
    "secret_key",
    "credentials",
    "cookie",
})

REDACTED_VALUE = "[REDACTED]"


def redact_payload(payload: Mapping[str, Any] | None) -> dict[str, Any]:
    """Recursively redact sensitive keys from request parameters or headers.

    Creates a copy - the original mapping is never mutated. Keys are matched
    case-insensitively, so both `Authorization` headers and `password`
    parameters are hidden.

    Args:
        payload: The mapping to redact sensitive values from.

    Returns:
        A new dictionary with sensitive values replaced by "[REDACTED]".
    """
    if not payload:
        return {}
    return _redact_recursive(dict(payload))


def _redact_recursive(obj: Any) -> Any:
    """Recursively redact sensitive keys."""
    if isinstance(obj, Mapping):
        result = {}
        for key, value in obj.items():
            key_lower = key.lower() if isinstance(key, str) else key
            if key_lower in REDACT_KEYS:
                result[key] = REDACTED_VALUE
            else:
                result[key] = _redact_recursive(value)
        return result
    elif isinstance(obj, (list, tuple)):
        return [_redact_recursive(item) for item in obj]
    else:
        return obj
