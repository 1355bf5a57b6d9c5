# partners/models.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounting.models.account import Account


class BusinessPartner(models.Model):
    """
    Customer and/or vendor.

    `balance` is what the partner owes us across open documents: sales
    count positive, purchase receipts negative. Payments and cancellations
    move it back toward zero.
    """

    CUSTOMER = "CUSTOMER"
    VENDOR = "VENDOR"
    BOTH = "BOTH"

    PARTNER_TYPES = [
        (CUSTOMER, "Customer"),
        (VENDOR, "Vendor"),
        (BOTH, "Customer & Vendor"),
    ]

    CODE_PREFIXES = {
        CUSTOMER: "CUS",
        VENDOR: "VEN",
        BOTH: "BP",
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    partner_code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=255)
    partner_type = models.CharField(max_length=10, choices=PARTNER_TYPES)

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="partners",
        help_text="Receivable/payable account override for this partner",
    )

    balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    credit_limit = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    payment_terms_days = models.PositiveIntegerField(null=True, blank=True)

    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    address = models.TextField(blank=True, default="")
    notes = models.TextField(blank=True, default="")

    is_active = models.BooleanField(default=True)
    last_transaction_date = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["partner_type"]),
            models.Index(fields=["is_active"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_partner_name_not_blank",
            ),
        ]

    def __str__(self):
        return f"{self.partner_code} – {self.name}"

    @property
    def is_customer(self) -> bool:
        return self.partner_type in (self.CUSTOMER, self.BOTH)

    @property
    def is_vendor(self) -> bool:
        return self.partner_type in (self.VENDOR, self.BOTH)

    def clean(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError("Partner name is required")
        if self.partner_type not in self.CODE_PREFIXES:
            raise ValidationError("Invalid partner_type")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
