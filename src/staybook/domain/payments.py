"""Payment ledger arithmetic - balance, deposit and payment status.

A payment moves the balance by amount + discount + round-off (when the
round-off is applied), while the deposit only tracks cash: amount.
Refunds are negative amounts and go through the same formula.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable

from staybook.domain.money import ZERO, round_money, to_decimal


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"


@dataclass(frozen=True)
class PaymentEntry:
    """One ledger row.

    discount, round_off and round_off_applied default to "not present",
    which is also how rows from a store without those columns are read.
    """

    amount: Decimal
    discount: Decimal = ZERO
    round_off: Decimal = ZERO
    round_off_applied: bool = False
    is_refund: bool = False

    @property
    def applied_to_balance(self) -> Decimal:
        applied = to_decimal(self.amount) + to_decimal(self.discount)
        if self.round_off_applied:
            applied += to_decimal(self.round_off)
        return round_money(applied)


@dataclass(frozen=True)
class BalanceState:
    deposit_amount: Decimal
    balance_amount: Decimal
    payment_status: PaymentStatus

    def as_dict(self) -> dict:
        return {
            "deposit_amount": str(self.deposit_amount),
            "balance_amount": str(self.balance_amount),
            "payment_status": self.payment_status.value,
        }


def payment_status_for(
    balance: Decimal, deposit: Decimal, outstanding_charges: Decimal = ZERO
) -> PaymentStatus:
    if to_decimal(balance) + to_decimal(outstanding_charges) <= 0:
        return PaymentStatus.PAID
    if to_decimal(deposit) > 0:
        return PaymentStatus.PARTIALLY_PAID
    return PaymentStatus.PENDING


def apply_payment(
    *,
    balance: Decimal,
    deposit: Decimal,
    entry: PaymentEntry,
    outstanding_charges: Decimal = ZERO,
) -> BalanceState:
    """Apply a single entry to the running balance/deposit."""
    new_balance = round_money(to_decimal(balance) - entry.applied_to_balance)
    new_deposit = round_money(to_decimal(deposit) + to_decimal(entry.amount))
    return BalanceState(
        deposit_amount=new_deposit,
        balance_amount=new_balance,
        payment_status=payment_status_for(new_balance, new_deposit, outstanding_charges),
    )


def reconcile_balance(
    *,
    total_amount: Decimal,
    entries: Iterable[PaymentEntry],
    outstanding_charges: Decimal = ZERO,
) -> BalanceState:
    """Recompute deposit, balance and status from the full history.

    A pure function of its inputs, so reconciling twice gives the same
    result.
    """
    entries = list(entries)
    deposit = round_money(sum((to_decimal(e.amount) for e in entries), ZERO))
    applied = sum((e.applied_to_balance for e in entries), ZERO)
    balance = round_money(to_decimal(total_amount) - applied)
    return BalanceState(
        deposit_amount=deposit,
        balance_amount=balance,
        payment_status=payment_status_for(balance, deposit, outstanding_charges),
    )
