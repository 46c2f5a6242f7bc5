"""Money helpers shared by the rate and ledger calculations.

All amounts are Decimal with 2 decimal places. Rounding is
half-away-from-zero (0.005 -> 0.01, -0.005 -> -0.01), applied at every
step where a monetary figure is produced.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
_CENT = Decimal("0.01")


def to_decimal(value: object) -> Decimal:
    """Coerce an int/float/str/Decimal/None into a Decimal (None -> 0)."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # Go through str so 0.1 stays 0.1 and not its binary expansion.
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: object) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    return to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """Return round(amount * percent / 100)."""
    return round_money(to_decimal(amount) * to_decimal(percent) / HUNDRED)


def parse_discount_percent(raw: object) -> Decimal:
    """Parse the free-text discount field of a rate plan.

    Accepts numbers and strings such as "10", "12.5" or "10%". Anything
    unparseable or outside [0, 100] is treated as no discount.
    """
    if raw is None:
        return Decimal("0")
    if isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool):
        value = to_decimal(raw)
    else:
        text = str(raw).strip().rstrip("%").strip()
        if not text:
            return Decimal("0")
        try:
            value = Decimal(text)
        except InvalidOperation:
            logger.warning(
                "unparseable discount percent, using 0",
                extra={"extra_fields": {"raw_length": len(text)}},
            )
            return Decimal("0")

    if not value.is_finite() or value < 0 or value > HUNDRED:
        logger.warning(
            "discount percent out of range, using 0",
            extra={"extra_fields": {"value": str(value)}},
        )
        return Decimal("0")
    return value
