"""Hotel check-in/check-out configuration.

Priority:
1. Database row (hotel_settings, active, lowest id)
2. Environment variables STAYBOOK_CHECKIN_TIME / STAYBOOK_CHECKOUT_TIME
3. Built-in defaults (14:00 / 12:00)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import time
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from staybook.observability.logging import get_logger

from .db import fetchone

logger = get_logger(__name__)

DEFAULT_CHECKIN_TIME = time(14, 0)
DEFAULT_CHECKOUT_TIME = time(12, 0)


@dataclass(frozen=True)
class HotelSettings:
    """Clock times used to turn two calendar dates into a night count."""

    check_in_time: time = DEFAULT_CHECKIN_TIME
    check_out_time: time = DEFAULT_CHECKOUT_TIME


def parse_clock(value: Any, fallback: time) -> time:
    """Parse "HH:MM" / "HH:MM:SS" strings or pass through time objects."""
    if isinstance(value, time):
        return value
    if not value:
        return fallback
    try:
        parts = [int(p) for p in str(value).strip().split(":")]
        return time(*parts[:3])
    except (TypeError, ValueError):
        logger.warning(
            "invalid clock time in hotel settings, using default",
            extra={"extra_fields": {"fallback": fallback.isoformat()}},
        )
        return fallback


def get_hotel_settings(cur: PgCursor) -> HotelSettings:
    """Load hotel settings within the caller's transaction."""
    row = fetchone(
        cur,
        """
        SELECT check_in_time, check_out_time
        FROM hotel_settings
        WHERE is_active = true
        ORDER BY id
        LIMIT 1
        """,
    )
    db_config: dict[str, Any] = {}
    if row is not None:
        db_config = {"check_in_time": row[0], "check_out_time": row[1]}
    return _merge_with_env(db_config)


def _merge_with_env(db_config: dict[str, Any]) -> HotelSettings:
    """Merge database config with environment fallbacks."""
    check_in = db_config.get("check_in_time") or os.environ.get("STAYBOOK_CHECKIN_TIME")
    check_out = db_config.get("check_out_time") or os.environ.get("STAYBOOK_CHECKOUT_TIME")
    return HotelSettings(
        check_in_time=parse_clock(check_in, DEFAULT_CHECKIN_TIME),
        check_out_time=parse_clock(check_out, DEFAULT_CHECKOUT_TIME),
    )
