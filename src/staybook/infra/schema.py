"""Schema capability flags.

Older stores lack the payment adjustment columns added by migration 002
(discount, round-off, refund flag). Instead of reacting to errors that
mention those columns, the columns present are read once from
information_schema and the payment ledger picks its writer/reader
variant from the resulting flags.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from psycopg2.extensions import cursor as PgCursor

from staybook.observability.logging import get_logger

logger = get_logger(__name__)

PAYMENT_ADJUSTMENT_COLUMNS = frozenset(
    {"discount_amount", "round_off_amount", "is_round_off_applied", "is_refund"}
)


@dataclass(frozen=True)
class SchemaCapabilities:
    payment_adjustments: bool

    @property
    def version(self) -> int:
        return 2 if self.payment_adjustments else 1


_capabilities: SchemaCapabilities | None = None
_lock = threading.Lock()


def detect_capabilities(cur: PgCursor) -> SchemaCapabilities:
    cur.execute(
        """
        SELECT column_name
        FROM information_schema.columns
        WHERE table_schema = current_schema()
          AND table_name = 'stay_payments'
        """
    )
    columns = {row[0] for row in cur.fetchall()}
    caps = SchemaCapabilities(
        payment_adjustments=PAYMENT_ADJUSTMENT_COLUMNS.issubset(columns),
    )
    logger.info(
        "schema capabilities resolved",
        extra={"extra_fields": {"schema_version": caps.version}},
    )
    return caps


def get_capabilities(cur: PgCursor) -> SchemaCapabilities:
    """Resolve capabilities on first use and cache them for the process."""
    global _capabilities
    if _capabilities is None:
        with _lock:
            if _capabilities is None:
                _capabilities = detect_capabilities(cur)
    return _capabilities


def set_capabilities(caps: SchemaCapabilities | None) -> None:
    """Override (or clear, with None) the cached capabilities."""
    global _capabilities
    with _lock:
        _capabilities = caps
