"""Keep guest PII (phone numbers, e-mail addresses, free text) out of logs."""

import re
from datetime import date
from decimal import Decimal
from typing import Any

_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"

# Stay and payment fields whose values are never logged, whatever they hold.
GUEST_FIELDS = frozenset(
    {
        "primary_guest_name",
        "primary_guest_phone",
        "primary_guest_email",
        "special_requests",
        "notes",
        "reference",
    }
)


def redact_string(value: str) -> str:
    return _EMAIL_PATTERN.sub(_REDACTED, _PHONE_PATTERN.sub(_REDACTED, value))


def redact_value(value: Any) -> str:
    """String form of value that is safe to log.

    Scalars are kept (strings scrubbed); containers are reduced to their shape
    and unknown objects to their type name.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        return f"dict(keys={sorted(map(str, value))})"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**fields: Any) -> dict[str, str]:
    return {
        name: _REDACTED if name in GUEST_FIELDS and value is not None else redact_value(value)
        for name, value in fields.items()
    }
