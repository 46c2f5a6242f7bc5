"""Clock access. Business code takes dates as arguments; only audit and
check-in timestamps and booking numbers read the clock."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def utc_stamp() -> str:
    """Compact UTC timestamp used in booking numbers (YYYYMMDDHHMMSS)."""
    return utc_now().strftime("%Y%m%d%H%M%S")
