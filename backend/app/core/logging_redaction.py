"""Redact sensitive data from structured logs. Never log tokens or secrets; never echo raw control characters."""
import json
import logging
import re
from typing import Any

from app.core.config import get_settings

# Keys (case-insensitive) that must be redacted in dicts
REDACT_KEYS = frozenset({
    "password", "token", "secret", "authorization", "cookie",
    "access_token", "refresh_token", "jwt", "api_key",
})

# Uploaded filenames are client-controlled: strip CR/LF and other control bytes before logging
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def _redact_key(key: str) -> bool:
    k = key.lower()
    return any(r in k for r in REDACT_KEYS)


def redact_for_log(obj: Any) -> Any:
    """Return a copy of obj safe for logging: sensitive keys replaced with '[REDACTED]'."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return {
            k: "[REDACTED]" if _redact_key(k) else redact_for_log(v)
            for k, v in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return type(obj)(redact_for_log(x) for x in obj)
    if isinstance(obj, str):
        if _looks_like_secret(obj):
            return "[REDACTED]"
        return _CONTROL_CHARS.sub("?", obj)
    return obj


def _looks_like_secret(s: str) -> bool:
    """Heuristic: long base64-like or bearer token."""
    if len(s) > 64 and re.match(r"^[A-Za-z0-9_-]+\.([A-Za-z0-9_-]+)\.", s):
        return True  # JWT-like
    if s.lower().startswith("bearer "):
        return True
    return False


def log_event(logger: logging.Logger, level: int, event: str, exc_info: bool = False, **fields: Any) -> None:
    """Log one structured event. JSON line when log_json; else message with redacted extra.

    Field names must not collide with LogRecord attributes (filename, module, created, ...).
    """
    extra = redact_for_log(fields)
    if get_settings().log_json:
        logger.log(level, json.dumps({"event": event, **extra}, default=str), exc_info=exc_info)
    else:
        logger.log(level, event, extra=extra, exc_info=exc_info)
