# documents/services/totals.py

"""
DOCUMENT LINE MATH (PURE)

subtotal = quantity × unit_price
discount = subtotal × discount_percent / 100
tax      = (subtotal − discount) × tax_rate / 100
total    = subtotal − discount + tax

Every intermediate value is rounded to cents, so document totals are
exactly the sum of their rounded lines.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from accounting.services.exceptions import InvalidInputError, ItemNotFoundError
from accounting.services.money import ZERO, money

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class DocumentLineInput:
    item_id: str
    quantity: int
    unit_price: Decimal | None = None
    tax_rate: Decimal = ZERO
    discount_percent: Decimal = ZERO
    description: str = ""


@dataclass(frozen=True)
class LineAmounts:
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal

    @property
    def net(self) -> Decimal:
        return money(self.subtotal - self.discount)


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: Decimal = ZERO
    discount: Decimal = ZERO
    tax: Decimal = ZERO
    total: Decimal = ZERO
    lines: tuple[LineAmounts, ...] = field(default_factory=tuple)

    @property
    def net(self) -> Decimal:
        return money(self.subtotal - self.discount)


def _percent(value, field_name: str) -> Decimal:
    pct = money(value)
    if pct < ZERO or pct > HUNDRED:
        raise InvalidInputError(field=field_name, message="must be between 0 and 100")
    return pct


def line_amounts(quantity: int, unit_price, tax_rate=ZERO, discount_percent=ZERO) -> LineAmounts:
    price = money(unit_price)
    if price < ZERO:
        raise InvalidInputError(field="unit_price", message="must not be negative")
    rate = _percent(tax_rate, "tax_rate")
    discount_pct = _percent(discount_percent, "discount_percent")

    subtotal = money(price * quantity)
    discount = money(subtotal * discount_pct / HUNDRED)
    tax = money((subtotal - discount) * rate / HUNDRED)
    total = money(subtotal - discount + tax)
    return LineAmounts(subtotal=subtotal, discount=discount, tax=tax, total=total)


def document_totals(lines: Iterable[LineAmounts]) -> DocumentTotals:
    lines = tuple(lines)
    return DocumentTotals(
        subtotal=money(sum((l.subtotal for l in lines), ZERO)),
        discount=money(sum((l.discount for l in lines), ZERO)),
        tax=money(sum((l.tax for l in lines), ZERO)),
        total=money(sum((l.total for l in lines), ZERO)),
        lines=lines,
    )


def normalize_line_inputs(raw_lines: Iterable) -> list[DocumentLineInput]:
    """
    Accepts DocumentLineInput instances or mappings with the same keys.
    Validation only; prices are defaulted later from the item master.
    """
    normalized = []
    for position, raw in enumerate(raw_lines or [], start=1):
        if isinstance(raw, DocumentLineInput):
            data = raw.__dict__
        elif isinstance(raw, dict):
            data = raw
        else:
            raise InvalidInputError(field=f"lines[{position}]", message="invalid line")

        item_id = data.get("item_id")
        if not item_id:
            raise InvalidInputError(field=f"lines[{position}].item_id", message="is required")
        try:
            item_id = str(uuid.UUID(str(item_id)))
        except ValueError:
            raise ItemNotFoundError(item_id=item_id) from None

        quantity = data.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidInputError(
                field=f"lines[{position}].quantity",
                message="must be a positive integer",
            )

        unit_price = data.get("unit_price")
        if unit_price is not None:
            unit_price = money(unit_price)
            if unit_price < ZERO:
                raise InvalidInputError(field=f"lines[{position}].unit_price", message="must not be negative")

        normalized.append(
            DocumentLineInput(
                item_id=item_id,
                quantity=quantity,
                unit_price=unit_price,
                tax_rate=_percent(data.get("tax_rate") or ZERO, f"lines[{position}].tax_rate"),
                discount_percent=_percent(
                    data.get("discount_percent") or ZERO, f"lines[{position}].discount_percent"
                ),
                description=(data.get("description") or "").strip(),
            )
        )

    if not normalized:
        raise InvalidInputError(field="lines", message="at least one line is required")
    return normalized
