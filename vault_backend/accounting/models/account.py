# accounting/models/account.py

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

DEBIT = "DEBIT"
CREDIT = "CREDIT"

SIDE_CHOICES = [
    (DEBIT, "Debit"),
    (CREDIT, "Credit"),
]


class Account(models.Model):
    """
    A single ledger account in the chart of accounts.

    Guarantees:
    - Account codes are globally unique
    - Code + name are normalized (trimmed)
    - `balance` is the running total in the account's normal direction
    - `version` increases on every balance or status write (optimistic locking)
    """

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"
    COGS = "COGS"

    ACCOUNT_TYPES = [
        (ASSET, "Asset"),
        (LIABILITY, "Liability"),
        (EQUITY, "Equity"),
        (REVENUE, "Revenue"),
        (EXPENSE, "Expense"),
        (COGS, "Cost of Goods Sold"),
    ]

    NORMAL_SIDES = {
        ASSET: DEBIT,
        EXPENSE: DEBIT,
        COGS: DEBIT,
        LIABILITY: CREDIT,
        EQUITY: CREDIT,
        REVENUE: CREDIT,
    }

    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=150)

    account_type = models.CharField(
        max_length=20,
        choices=ACCOUNT_TYPES,
    )
    subtype = models.CharField(max_length=64, blank=True, default="")
    description = models.TextField(blank=True, default="")

    balance = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    version = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Account"
        verbose_name_plural = "Accounts"
        indexes = [
            models.Index(fields=["account_type"]),
            models.Index(fields=["is_active"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_account_code_not_blank",
            ),
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_account_name_not_blank",
            ),
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    @property
    def normal_side(self) -> str:
        return self.NORMAL_SIDES[self.account_type]

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()

        if not self.code:
            raise ValidationError("Account code is required")
        if not self.name:
            raise ValidationError("Account name is required")
        if self.account_type not in self.NORMAL_SIDES:
            raise ValidationError("Invalid account_type")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
