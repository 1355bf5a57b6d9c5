# inventory/services/valuation_guard.py

"""
======================================================
PATH: inventory/services/valuation_guard.py
======================================================
INVENTORY VALUATION GUARD

Purpose:
- Refuse any stock decrement that would take an item below zero
- Snapshot stock versions at reservation time and commit with a
  compare-and-swap, so two concurrent sales can never both win
- Value issued stock at purchase price and build the COGS postings

Rules:
- Quantities are positive integers; duplicate item ids in one request are summed
- reserve_* never mutates state
- commit_reservation() decrements every line or none of them
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from accounting.services import account_resolver
from accounting.services.exceptions import (
    ConflictError,
    DuplicateCodeError,
    InsufficientStockError,
    InvalidInputError,
    ItemNotFoundError,
)
from accounting.services.journal_entry_service import JournalPostingEngine, LineSpec
from accounting.services.money import ZERO, money
from inventory.models.item import InventoryItem, Unit, ValuationClass
from inventory.models.stock_movement import StockMovement

logger = logging.getLogger(__name__)

OPENING_SOURCE = "OPENING_STOCK"


@dataclass(frozen=True)
class ReservedLine:
    item_id: str
    product_code: str
    quantity: int
    version: int
    available: int
    unit_cost: Decimal
    sales_price: Decimal
    inventory_account_id: int | None = None
    cogs_account_id: int | None = None

    @property
    def cost(self) -> Decimal:
        return money(self.unit_cost * self.quantity)


@dataclass(frozen=True)
class Reservation:
    lines: tuple[ReservedLine, ...]
    reason: str = StockMovement.Reason.SALE

    @property
    def total_cost(self) -> Decimal:
        return money(sum((line.cost for line in self.lines), ZERO))

    def line_for(self, item_id) -> ReservedLine:
        key = str(item_id)
        for line in self.lines:
            if line.item_id == key:
                return line
        raise ItemNotFoundError(item_id=item_id)


def _item_key(raw) -> str:
    try:
        return str(uuid.UUID(str(raw)))
    except (TypeError, ValueError, AttributeError):
        raise ItemNotFoundError(item_id=raw) from None


def _to_quantity(value, *, field_name: str = "quantity") -> int:
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(field=field_name, message="must be a positive integer")
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(field=field_name, message="must be a positive integer") from None
    if qty != value and str(qty) != str(value).strip():
        raise InvalidInputError(field=field_name, message="must be a whole number")
    if qty <= 0:
        raise InvalidInputError(field=field_name, message="must be greater than zero")
    return qty


def aggregate_quantities(items: Iterable) -> "OrderedDict[str, int]":
    """[(item_id, qty), ...] -> {item_id: summed qty} preserving first-seen order."""
    totals: "OrderedDict[str, int]" = OrderedDict()
    for item_id, quantity in items or []:
        key = _item_key(item_id)
        totals[key] = totals.get(key, 0) + _to_quantity(quantity)
    return totals


class InventoryValuationGuard:
    def __init__(self, *, engine: JournalPostingEngine):
        self.engine = engine

    # ------------------------------------------------------------
    # Reservation (read-only)
    # ------------------------------------------------------------

    def _locked_items(self, keys) -> dict:
        rows = (
            InventoryItem.objects.select_for_update()
            .filter(pk__in=list(keys))
            .select_related("valuation_class")
            .order_by("pk")
        )
        return {str(item.pk): item for item in rows}

    @transaction.atomic
    def _reserve(self, items: Iterable, reason: str) -> Reservation:
        requested = aggregate_quantities(items)
        if not requested:
            raise InvalidInputError(field="items", message="at least one item is required")

        rows = self._locked_items(requested.keys())
        lines = []
        for key, qty in requested.items():
            item = rows.get(key)
            if item is None or not item.is_active:
                raise ItemNotFoundError(item_id=key)
            if item.available_quantity < qty:
                raise InsufficientStockError(
                    item_id=key,
                    requested=qty,
                    available=item.available_quantity,
                )

            vc = item.valuation_class
            lines.append(
                ReservedLine(
                    item_id=key,
                    product_code=item.product_code,
                    quantity=qty,
                    version=item.version,
                    available=item.available_quantity,
                    unit_cost=money(item.purchase_price),
                    sales_price=money(item.sales_price),
                    inventory_account_id=vc.inventory_account_id if vc else None,
                    cogs_account_id=vc.cogs_account_id if vc else None,
                )
            )

        return Reservation(lines=tuple(lines), reason=reason)

    def reserve_for_sale(self, items: Iterable) -> Reservation:
        return self._reserve(items, StockMovement.Reason.SALE)

    def reserve_for_return(self, items: Iterable) -> Reservation:
        return self._reserve(items, StockMovement.Reason.RETURN)

    # ------------------------------------------------------------
    # Commit (compare-and-swap)
    # ------------------------------------------------------------

    @transaction.atomic
    def commit_reservation(self, reservation: Reservation, *, reference: str = "") -> list[StockMovement]:
        movements = []
        now = timezone.now()

        for line in reservation.lines:
            updated = InventoryItem.objects.filter(
                pk=line.item_id,
                version=line.version,
                available_quantity__gte=line.quantity,
            ).update(
                available_quantity=F("available_quantity") - line.quantity,
                version=F("version") + 1,
                updated_at=now,
            )
            if updated != 1:
                logger.info(
                    "Stock reservation lost a concurrent update",
                    extra={"item_id": line.item_id, "version": line.version},
                )
                raise ConflictError(resource="inventory_item", resource_id=line.item_id)

            movements.append(
                StockMovement.objects.create(
                    item_id=line.item_id,
                    movement_type=StockMovement.MovementType.OUT,
                    reason=reservation.reason,
                    quantity=line.quantity,
                    unit_cost_snapshot=line.unit_cost,
                    reference=reference,
                )
            )

        return movements

    @transaction.atomic
    def consume_stock(self, items: Iterable, *, reference: str = "") -> Reservation:
        reservation = self.reserve_for_sale(items)
        self.commit_reservation(reservation, reference=reference)
        return reservation

    # ------------------------------------------------------------
    # Increments
    # ------------------------------------------------------------

    def _increment(self, item: InventoryItem, quantity: int, *, new_cost: Decimal | None = None) -> None:
        values = {
            "available_quantity": F("available_quantity") + quantity,
            "version": F("version") + 1,
            "updated_at": timezone.now(),
        }
        if new_cost is not None:
            values["purchase_price"] = new_cost

        updated = InventoryItem.objects.filter(pk=item.pk, version=item.version).update(**values)
        if updated != 1:
            raise ConflictError(resource="inventory_item", resource_id=str(item.pk))

    @transaction.atomic
    def receive_stock(self, items: Iterable, *, reference: str = "") -> list[StockMovement]:
        """
        items: [(item_id, quantity, unit_cost), ...]
        purchase_price becomes the weighted average of on-hand and received cost.
        """
        received = []
        for item_id, quantity, unit_cost in items or []:
            cost = money(unit_cost)
            if cost < ZERO:
                raise InvalidInputError(field="unit_cost", message="must not be negative")
            received.append((_item_key(item_id), _to_quantity(quantity), cost))
        if not received:
            raise InvalidInputError(field="items", message="at least one item is required")

        rows = self._locked_items({key for key, _qty, _cost in received})
        movements = []
        for key, qty, cost in received:
            item = rows.get(key)
            if item is None:
                raise ItemNotFoundError(item_id=key)

            on_hand = item.available_quantity
            new_cost = money(
                (money(item.purchase_price) * on_hand + cost * qty) / (on_hand + qty)
            )
            self._increment(item, qty, new_cost=new_cost)
            item.refresh_from_db()

            movements.append(
                StockMovement.objects.create(
                    item=item,
                    movement_type=StockMovement.MovementType.IN,
                    reason=StockMovement.Reason.PURCHASE,
                    quantity=qty,
                    unit_cost_snapshot=cost,
                    reference=reference,
                )
            )
        return movements

    @transaction.atomic
    def release_stock(self, items: Iterable, *, reference: str = "") -> list[StockMovement]:
        """Put previously sold quantities back on hand (cancelled sales)."""
        requested = aggregate_quantities(items)
        rows = self._locked_items(requested.keys())
        movements = []
        for key, qty in requested.items():
            item = rows.get(key)
            if item is None:
                raise ItemNotFoundError(item_id=key)
            self._increment(item, qty)
            movements.append(
                StockMovement.objects.create(
                    item=item,
                    movement_type=StockMovement.MovementType.IN,
                    reason=StockMovement.Reason.RELEASE,
                    quantity=qty,
                    unit_cost_snapshot=money(item.purchase_price),
                    reference=reference,
                )
            )
        return movements

    # ------------------------------------------------------------
    # Valuation
    # ------------------------------------------------------------

    def cost_of_goods_sold(self, items: Iterable) -> Decimal:
        """Sum of quantity × purchase price (no locks, no mutation)."""
        requested = aggregate_quantities(items)
        prices = dict(
            InventoryItem.objects.filter(pk__in=list(requested.keys())).values_list("pk", "purchase_price")
        )
        prices = {str(pk): price for pk, price in prices.items()}

        total = ZERO
        for key, qty in requested.items():
            if key not in prices:
                raise ItemNotFoundError(item_id=key)
            total += money(prices[key]) * qty
        return money(total)

    def cogs_lines(self, reservation: Reservation, *, memo: str = "") -> list[LineSpec]:
        """
        Dr COGS / Cr Inventory per valuation account pair.
        Zero-cost lines are skipped; an all-zero reservation yields [].
        """
        grouped: "OrderedDict[tuple[int, int], Decimal]" = OrderedDict()
        for line in reservation.lines:
            if line.cost <= ZERO:
                continue
            cogs_id = line.cogs_account_id or account_resolver.get_cogs_account().pk
            inventory_id = line.inventory_account_id or account_resolver.get_inventory_account().pk
            key = (cogs_id, inventory_id)
            grouped[key] = grouped.get(key, ZERO) + line.cost

        specs: list[LineSpec] = []
        for (cogs_id, inventory_id), amount in grouped.items():
            specs.append(LineSpec.debit(cogs_id, amount, memo or "Cost of goods sold"))
            specs.append(LineSpec.credit(inventory_id, amount, memo or "Inventory issued"))
        return specs

    @staticmethod
    def inventory_account_id_for(item: InventoryItem) -> int:
        vc = item.valuation_class
        if vc is not None and vc.inventory_account_id:
            return vc.inventory_account_id
        return account_resolver.get_inventory_account().pk

    # ------------------------------------------------------------
    # Item master data
    # ------------------------------------------------------------

    @transaction.atomic
    def create_item(
        self,
        *,
        product_code: str,
        name: str,
        sales_price=ZERO,
        purchase_price=ZERO,
        opening_quantity: int = 0,
        valuation_class: ValuationClass | None = None,
        unit: Unit | None = None,
        display_name: str = "",
        description: str = "",
        posting_date=None,
    ) -> InventoryItem:
        """
        Create an item. A positive opening quantity at a positive cost posts
        Dr Inventory / Cr Owner's Capital for the opening value.
        """
        code = (product_code or "").strip()
        if not code:
            raise InvalidInputError(field="product_code", message="is required")
        if not (name or "").strip():
            raise InvalidInputError(field="name", message="is required")

        sales = money(sales_price)
        cost = money(purchase_price)
        if sales < ZERO or cost < ZERO:
            raise InvalidInputError(field="price", message="prices must not be negative")

        qty = 0 if opening_quantity in (None, 0) else _to_quantity(opening_quantity, field_name="opening_quantity")

        if InventoryItem.objects.filter(product_code=code).exists():
            raise DuplicateCodeError(code=code)

        try:
            with transaction.atomic():
                item = InventoryItem.objects.create(
                    product_code=code,
                    name=name,
                    display_name=display_name or "",
                    description=description or "",
                    unit=unit,
                    valuation_class=valuation_class,
                    sales_price=sales,
                    purchase_price=cost,
                    available_quantity=qty,
                )
        except IntegrityError as exc:
            raise DuplicateCodeError(code=code) from exc

        if qty:
            StockMovement.objects.create(
                item=item,
                movement_type=StockMovement.MovementType.IN,
                reason=StockMovement.Reason.OPENING,
                quantity=qty,
                unit_cost_snapshot=cost,
                reference=code,
            )

            opening_value = money(cost * qty)
            if opening_value > ZERO:
                equity = account_resolver.get_owner_equity_account()
                self.engine.post(
                    [
                        LineSpec.debit(self.inventory_account_id_for(item), opening_value, f"Opening stock {code}"),
                        LineSpec.credit(equity.pk, opening_value, f"Opening stock {code}"),
                    ],
                    memo=f"Initial inventory for {code}",
                    posting_date=posting_date,
                    reference=f"{OPENING_SOURCE}:{code}",
                    source_type=OPENING_SOURCE,
                    source_id=str(item.pk),
                )

        logger.info(
            "Inventory item created",
            extra={"item_id": str(item.pk), "product_code": code, "opening_quantity": qty},
        )
        return item

    def get_item(self, item_id) -> InventoryItem:
        item = InventoryItem.objects.filter(pk=_item_key(item_id)).first()
        if item is None:
            raise ItemNotFoundError(item_id=item_id)
        return item

    def search(self, text: str):
        term = (text or "").strip()
        qs = InventoryItem.objects.select_related("unit", "valuation_class")
        if term:
            qs = qs.filter(
                Q(product_code__icontains=term)
                | Q(name__icontains=term)
                | Q(display_name__icontains=term)
            )
        return qs.order_by("name")

    def low_stock(self, threshold: int):
        return InventoryItem.objects.filter(
            is_active=True, available_quantity__lte=threshold
        ).order_by("available_quantity", "name")
