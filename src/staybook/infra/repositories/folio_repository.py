"""Folio repository - payment ledger rows and ancillary charges.

Uses raw SQL with psycopg2 (no ORM). Payment rows are append-only.
Two ledger variants exist, picked from SchemaCapabilities:

- v2: stores discount, round-off and the refund flag;
- legacy (v1): amount-only; adjustments cannot be stored and are
  dropped with a warning, refunds are marked through the status.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable

from psycopg2.extensions import cursor as PgCursor

from staybook.domain.folio import PaymentEntryStatus
from staybook.domain.money import ZERO, round_money
from staybook.domain.payments import PaymentEntry
from staybook.infra.schema import SchemaCapabilities
from staybook.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class NewPayment:
    stay_id: int
    amount: Decimal
    method: str
    status: PaymentEntryStatus
    discount: Decimal = ZERO
    round_off: Decimal = ZERO
    round_off_applied: bool = False
    is_refund: bool = False
    reference: str | None = None
    notes: str | None = None
    recorded_by: int | None = None

    def entry(self, caps: SchemaCapabilities) -> PaymentEntry:
        """The ledger entry as the store will read it back."""
        if not caps.payment_adjustments:
            return PaymentEntry(amount=self.amount, is_refund=self.is_refund)
        return PaymentEntry(
            amount=self.amount,
            discount=self.discount,
            round_off=self.round_off,
            round_off_applied=self.round_off_applied,
            is_refund=self.is_refund,
        )


def _iso(value: Any) -> str:
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def _insert_payment_v2(cur: PgCursor, payment: NewPayment) -> tuple[int, datetime]:
    cur.execute(
        """
        INSERT INTO stay_payments (
            stay_id, amount, method, reference, status, notes, recorded_by,
            discount_amount, round_off_amount, is_round_off_applied, is_refund
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING id, paid_on
        """,
        (
            payment.stay_id,
            payment.amount,
            payment.method,
            payment.reference,
            payment.status.value,
            payment.notes,
            payment.recorded_by,
            payment.discount,
            payment.round_off,
            payment.round_off_applied,
            payment.is_refund,
        ),
    )
    row = cur.fetchone()
    return row[0], row[1]


def _insert_payment_legacy(
    cur: PgCursor, payment: NewPayment
) -> tuple[int, datetime]:
    if payment.discount or (payment.round_off_applied and payment.round_off):
        logger.warning(
            "payment adjustments not stored: legacy payment ledger",
            extra={"extra_fields": {"stay_id": payment.stay_id}},
        )
    cur.execute(
        """
        INSERT INTO stay_payments (
            stay_id, amount, method, reference, status, notes, recorded_by
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        RETURNING id, paid_on
        """,
        (
            payment.stay_id,
            payment.amount,
            payment.method,
            payment.reference,
            payment.status.value,
            payment.notes,
            payment.recorded_by,
        ),
    )
    row = cur.fetchone()
    return row[0], row[1]


def _writer(caps: SchemaCapabilities) -> Callable[[PgCursor, NewPayment], tuple]:
    return _insert_payment_v2 if caps.payment_adjustments else _insert_payment_legacy


def insert_payment(
    cur: PgCursor, *, caps: SchemaCapabilities, payment: NewPayment
) -> tuple[int, PaymentEntry]:
    """Append a payment row.

    Returns:
        Tuple of (payment_id, the entry as the store will read it back).
    """
    payment_id, _paid_on = _writer(caps)(cur, payment)
    return payment_id, payment.entry(caps)


def list_payment_entries(
    cur: PgCursor, *, caps: SchemaCapabilities, stay_id: int
) -> list[PaymentEntry]:
    """Full payment history of a stay as ledger entries."""
    if caps.payment_adjustments:
        cur.execute(
            """
            SELECT amount, discount_amount, round_off_amount,
                   is_round_off_applied, is_refund
            FROM stay_payments
            WHERE stay_id = %s
            ORDER BY id
            """,
            (stay_id,),
        )
        return [
            PaymentEntry(
                amount=r[0],
                discount=r[1] if r[1] is not None else ZERO,
                round_off=r[2] if r[2] is not None else ZERO,
                round_off_applied=bool(r[3]),
                is_refund=bool(r[4]),
            )
            for r in cur.fetchall()
        ]

    cur.execute(
        """
        SELECT amount, status
        FROM stay_payments
        WHERE stay_id = %s
        ORDER BY id
        """,
        (stay_id,),
    )
    return [
        PaymentEntry(amount=r[0], is_refund=r[1] == PaymentEntryStatus.REFUNDED.value)
        for r in cur.fetchall()
    ]


def list_payments(
    cur: PgCursor, *, caps: SchemaCapabilities, stay_id: int
) -> list[dict[str, Any]]:
    """Payment rows for display, newest first."""
    adjustment_cols = (
        "discount_amount, round_off_amount, is_round_off_applied, is_refund"
        if caps.payment_adjustments
        else "0, 0, false, status = 'Refunded'"
    )
    cur.execute(
        f"""
        SELECT id, amount, method, reference, status, notes, paid_on, recorded_by,
               {adjustment_cols}
        FROM stay_payments
        WHERE stay_id = %s
        ORDER BY paid_on DESC, id DESC
        """,
        (stay_id,),
    )
    return [
        {
            "id": r[0],
            "amount": str(r[1]),
            "method": r[2],
            "reference": r[3],
            "status": r[4],
            "notes": r[5],
            "paid_on": _iso(r[6]),
            "recorded_by": r[7],
            "discount_amount": str(round_money(r[8])),
            "round_off_amount": str(round_money(r[9])),
            "is_round_off_applied": bool(r[10]),
            "is_refund": bool(r[11]),
        }
        for r in cur.fetchall()
    ]


# ── Ancillary charges ────────────────────────────────────


def insert_charge(
    cur: PgCursor,
    *,
    stay_id: int,
    description: str,
    amount: Decimal,
    tax_amount: Decimal,
    created_by: int | None = None,
) -> int:
    cur.execute(
        """
        INSERT INTO stay_charges (stay_id, description, amount, tax_amount, created_by)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING id
        """,
        (stay_id, description, amount, tax_amount, created_by),
    )
    return cur.fetchone()[0]


def sum_outstanding_charges(cur: PgCursor, stay_id: int) -> Decimal:
    """Ancillary charges (amount + tax) billed to the stay."""
    cur.execute(
        """
        SELECT COALESCE(SUM(amount + tax_amount), 0)
        FROM stay_charges
        WHERE stay_id = %s
        """,
        (stay_id,),
    )
    return round_money(cur.fetchone()[0])


def list_charges(cur: PgCursor, stay_id: int) -> list[dict[str, Any]]:
    cur.execute(
        """
        SELECT id, description, amount, tax_amount, created_at
        FROM stay_charges
        WHERE stay_id = %s
        ORDER BY created_at, id
        """,
        (stay_id,),
    )
    return [
        {
            "id": r[0],
            "description": r[1],
            "amount": str(r[2]),
            "tax_amount": str(r[3]),
            "created_at": _iso(r[4]),
        }
        for r in cur.fetchall()
    ]
