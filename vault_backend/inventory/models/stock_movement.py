# inventory/models/stock_movement.py

"""
INVENTORY MOVEMENT LEDGER

Append-only audit row for every stock change made by the valuation guard.
"""

import uuid

from django.core.exceptions import ValidationError
from django.db import models

from .item import InventoryItem


class StockMovement(models.Model):
    class MovementType(models.TextChoices):
        IN = "IN", "Stock In"
        OUT = "OUT", "Stock Out"

    class Reason(models.TextChoices):
        OPENING = "OPENING", "Opening Stock"
        PURCHASE = "PURCHASE", "Purchase Receipt"
        SALE = "SALE", "Sale"
        RELEASE = "RELEASE", "Released Sale Stock"
        RETURN = "RETURN", "Purchase Return"

    REASON_TO_MOVEMENT = {
        Reason.OPENING: MovementType.IN,
        Reason.PURCHASE: MovementType.IN,
        Reason.RELEASE: MovementType.IN,
        Reason.SALE: MovementType.OUT,
        Reason.RETURN: MovementType.OUT,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    item = models.ForeignKey(
        InventoryItem, on_delete=models.PROTECT, related_name="stock_movements"
    )

    movement_type = models.CharField(max_length=3, choices=MovementType.choices)
    reason = models.CharField(max_length=20, choices=Reason.choices)

    quantity = models.PositiveIntegerField()

    unit_cost_snapshot = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        default=None,
        help_text="Item purchase price at movement time (immutable).",
    )

    reference = models.CharField(max_length=64, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["item", "created_at"]),
            models.Index(fields=["reason"]),
            models.Index(fields=["reference"]),
        ]

    def __str__(self):
        return f"{self.movement_type} {self.quantity} × {self.item_id} ({self.reason})"

    def clean(self):
        expected = self.REASON_TO_MOVEMENT.get(self.reason)
        if expected and self.movement_type != expected:
            raise ValidationError(f"{self.reason} movements must be {expected}")
        if not self.quantity or self.quantity <= 0:
            raise ValidationError("quantity must be greater than zero")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Stock movements are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)
