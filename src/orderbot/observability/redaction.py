"""Redaction helpers for safe logging. Message text, names and phone
numbers are customer PII: everything external goes through these."""

import re
from typing import Any

from orderbot.domain.phones import find_phone

# Any long digit run: order phones, bank accounts, IC numbers
_DIGIT_RUN_PATTERN = re.compile(r"\+?\d[\d\s\-()]{6,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"
MAX_LOGGED_STRING = 120


def _redact_phones(value: str) -> str:
    while True:
        match = find_phone(value)
        if match is None:
            return value
        value = value[: match.start()] + _REDACTED + value[match.end():]


def redact_string(value: str) -> str:
    """Redact PII patterns from a string and cap its length."""
    result = _redact_phones(value)
    result = _DIGIT_RUN_PATTERN.sub(_REDACTED, result)
    result = _EMAIL_PATTERN.sub(_REDACTED, result)
    if len(result) > MAX_LOGGED_STRING:
        result = result[:MAX_LOGGED_STRING] + "..."
    return result


def redact_phone(phone: str | None) -> str:
    """Keep only the last 4 digits, e.g. "60194419638" -> "***9638"."""
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) < 4:
        return _REDACTED
    return "***" + digits[-4:]


def redact_value(value: Any) -> str:
    """Redact any value for safe logging. Returns string representation."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        # Structure only, never values
        return f"dict(keys={list(value.keys())})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted."""
    return {k: redact_value(v) for k, v in kwargs.items()}
