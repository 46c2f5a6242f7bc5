"""Folio domain - enums and schemas for payments and ancillary charges."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ─────────────────────────────────────────────────


class PaymentMethod(str, Enum):
    CASH = "Cash"
    CARD = "Card"
    UPI = "UPI"
    BANK_TRANSFER = "BankTransfer"
    CHEQUE = "Cheque"


class PaymentEntryStatus(str, Enum):
    CAPTURED = "Captured"
    ADVANCE = "Advance"
    REFUNDED = "Refunded"


# ── Pydantic Schemas ─────────────────────────────────────


class PaymentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: Decimal = Field(..., description="Cash amount; refunds use is_refund")
    method: PaymentMethod
    discount_amount: Decimal = Decimal("0")
    round_off_amount: Decimal = Decimal("0")
    is_round_off_applied: bool = False
    is_refund: bool = False
    reference: str | None = None
    notes: str | None = None


class ChargeCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0)
