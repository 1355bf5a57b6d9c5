# accounting/services/money.py

"""
MONEY HELPERS

All monetary values are Decimal quantized to cents (ROUND_HALF_UP).
Comparisons go through MONEY_EPSILON so balance checks never depend
on float noise.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from accounting.services.exceptions import InvalidAmountError

TWOPLACES = Decimal("0.01")
MONEY_EPSILON = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value) -> Decimal:
    if value is None or value == "":
        return ZERO

    if isinstance(value, bool):
        raise InvalidAmountError(amount=value)

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise InvalidAmountError(amount=value) from exc

    if not amt.is_finite():
        raise InvalidAmountError(amount=value)

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def is_zero(value) -> bool:
    return abs(money(value)) < MONEY_EPSILON


def exceeds(value, limit) -> bool:
    """True when `value` is larger than `limit` by at least one cent."""
    return money(value) - money(limit) >= MONEY_EPSILON
