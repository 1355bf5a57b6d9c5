# documents/models/document.py

import uuid
from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from inventory.models.item import InventoryItem
from partners.models import BusinessPartner


class BusinessDocument(models.Model):
    """
    A sales invoice or a purchase invoice/receipt.

    GUARANTEES:
    - 0 <= paid_amount <= total_amount (DB constraints + balance tracker)
    - document_number unique per kind
    - Status moves only through documents.services.lifecycle
    - version increases on every write (optimistic locking)
    """

    KIND_SALE = "SALE"
    KIND_PURCHASE = "PURCHASE"

    KIND_CHOICES = [
        (KIND_SALE, "Sales Invoice"),
        (KIND_PURCHASE, "Purchase Invoice"),
    ]

    STATUS_DRAFT = "DRAFT"
    STATUS_PENDING = "PENDING"
    STATUS_CONFIRMED = "CONFIRMED"
    STATUS_SHIPPED = "SHIPPED"
    STATUS_ORDERED = "ORDERED"
    STATUS_RECEIVED = "RECEIVED"
    STATUS_PARTIALLY_PAID = "PARTIALLY_PAID"
    STATUS_PAID = "PAID"
    STATUS_CANCELLED = "CANCELLED"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_PENDING, "Pending"),
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_SHIPPED, "Shipped"),
        (STATUS_ORDERED, "Ordered"),
        (STATUS_RECEIVED, "Received"),
        (STATUS_PARTIALLY_PAID, "Partially Paid"),
        (STATUS_PAID, "Paid"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    kind = models.CharField(max_length=10, choices=KIND_CHOICES)
    document_number = models.CharField(max_length=64)

    partner = models.ForeignKey(
        BusinessPartner,
        on_delete=models.PROTECT,
        related_name="documents",
    )

    document_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT)

    subtotal_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    paid_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    memo = models.TextField(blank=True, default="")

    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-document_date", "-created_at"]
        indexes = [
            models.Index(fields=["kind", "status"]),
            models.Index(fields=["partner", "kind"]),
            models.Index(fields=["document_date"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["kind", "document_number"],
                name="uniq_document_kind_number",
            ),
            models.CheckConstraint(
                condition=Q(paid_amount__gte=0),
                name="chk_document_paid_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(paid_amount__lte=F("total_amount")),
                name="chk_document_paid_within_total",
            ),
        ]

    def __str__(self):
        return f"{self.document_number} ({self.status})"

    @property
    def balance_amount(self) -> Decimal:
        return (self.total_amount or Decimal("0.00")) - (self.paid_amount or Decimal("0.00"))

    @property
    def is_sale(self) -> bool:
        return self.kind == self.KIND_SALE

    @property
    def is_fully_paid(self) -> bool:
        return self.balance_amount < Decimal("0.01")


class DocumentLine(models.Model):
    document = models.ForeignKey(
        BusinessDocument,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    item = models.ForeignKey(
        InventoryItem,
        on_delete=models.PROTECT,
        related_name="document_lines",
    )

    description = models.CharField(max_length=255, blank=True, default="")
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)

    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    discount_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )

    subtotal = models.DecimalField(max_digits=14, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    line_total = models.DecimalField(max_digits=14, decimal_places=2)

    unit_cost_snapshot = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Item cost at posting time (sales only)",
    )

    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["document", "position"]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="chk_document_line_quantity_positive",
            ),
        ]

    def __str__(self):
        return f"{self.quantity} × {self.item_id} @ {self.unit_price}"
