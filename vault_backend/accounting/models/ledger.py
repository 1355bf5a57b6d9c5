# accounting/models/ledger.py

"""
======================================================
PATH: accounting/models/ledger.py
======================================================
JOURNAL LINE MODEL

One debit or credit line of a journal entry.

Invariants:
- amount > 0 (direction is carried by `side`)
- lines are ordered by `position` within their entry
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from accounting.models.account import CREDIT, DEBIT, SIDE_CHOICES, Account
from accounting.models.journal import JournalEntry


class JournalLine(models.Model):
    DEBIT = DEBIT
    CREDIT = CREDIT

    journal_entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )

    side = models.CharField(max_length=6, choices=SIDE_CHOICES)

    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )

    memo = models.CharField(max_length=255, blank=True, default="")
    position = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = "Journal Line"
        verbose_name_plural = "Journal Lines"
        ordering = ["journal_entry", "position"]
        indexes = [
            models.Index(fields=["account"]),
            models.Index(fields=["account", "side"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["journal_entry", "position"],
                name="uniq_journal_line_position",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="chk_journal_line_amount_positive",
            ),
        ]

    def __str__(self):
        return f"{self.side} {self.amount} → {self.account}"

    def clean(self):
        if self.side not in (self.DEBIT, self.CREDIT):
            raise ValidationError("Invalid side")
        if self.amount is None or self.amount <= 0:
            raise ValidationError("Line amount must be > 0")
