"""Payment adjustment columns (discount, round-off, refund flag).

Stores without this revision keep working on the amount-only payment
ledger; the application detects the columns at runtime.

Revision ID: 002_payment_adjustment_columns
Revises: 001_initial_schema
Create Date: 2026-10-19
"""

from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "002_payment_adjustment_columns"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parents[1] / "sql" / "002_payment_adjustments.sql"


def upgrade() -> None:
    op.execute(_SQL_FILE.read_text(encoding="utf-8"))


def downgrade() -> None:
    op.execute(
        """
        ALTER TABLE stay_payments
            DROP COLUMN IF EXISTS discount_amount,
            DROP COLUMN IF EXISTS round_off_amount,
            DROP COLUMN IF EXISTS is_round_off_applied,
            DROP COLUMN IF EXISTS is_refund
        """
    )
