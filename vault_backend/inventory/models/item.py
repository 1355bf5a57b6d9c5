# inventory/models/item.py

"""
INVENTORY ITEM MODELS

- Unit: unit of measure (pcs, box, kg, ...)
- ValuationClass: groups items that post to the same inventory / COGS accounts
- InventoryItem: a stocked product with its sales + purchase (cost) price

GUARANTEES:
- available_quantity is never negative (DB constraint + guard service)
- version increases on every stock write (optimistic locking)
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from accounting.models.account import Account


class Unit(models.Model):
    name = models.CharField(max_length=32, unique=True)
    description = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class ValuationClass(models.Model):
    class_code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=150)
    description = models.TextField(blank=True, default="")

    inventory_account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="inventory_valuation_classes",
    )
    cogs_account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="cogs_valuation_classes",
    )

    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["class_code"]
        verbose_name_plural = "Valuation classes"

    def __str__(self):
        return f"{self.class_code} – {self.name}"


class InventoryItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product_code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    display_name = models.CharField(max_length=255, blank=True, default="")
    description = models.TextField(blank=True, default="")

    unit = models.ForeignKey(
        Unit,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="items",
    )
    valuation_class = models.ForeignKey(
        ValuationClass,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="items",
    )

    sales_price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    purchase_price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Unit cost used for inventory valuation and COGS",
    )

    available_quantity = models.PositiveIntegerField(default=0)
    version = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"]),
            models.Index(fields=["is_active"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(available_quantity__gte=0),
                name="chk_item_quantity_non_negative",
            ),
            models.CheckConstraint(
                condition=~Q(product_code=""),
                name="chk_item_code_not_blank",
            ),
        ]

    def __str__(self):
        return f"{self.product_code} – {self.name}"

    @property
    def stock_value(self) -> Decimal:
        return (self.purchase_price or Decimal("0.00")) * self.available_quantity

    def clean(self):
        self.product_code = (self.product_code or "").strip()
        self.name = (self.name or "").strip()
        if not self.product_code:
            raise ValidationError("product_code is required")
        if not self.name:
            raise ValidationError("name is required")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
