# accounting/models/journal.py

"""
======================================================
PATH: accounting/models/journal.py
======================================================
JOURNAL ENTRY MODEL

Represents a single balanced accounting transaction (journal header).

Guarantees:
- entry_number is unique and sequential ("JE-0001", "JE-0002", ...)
- Idempotency via reference uniqueness (when reference is provided)
- An entry can be reversed at most once (reversal_of is one-to-one)
- Entries created for documents, reversed entries and reversals are locked
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import Q, Sum
from django.utils import timezone

from accounting.models.account import CREDIT, DEBIT


class JournalEntry(models.Model):
    entry_number = models.CharField(max_length=32, unique=True)

    posting_date = models.DateField(
        default=timezone.localdate,
        help_text="Accounting effective date",
    )

    memo = models.TextField(blank=True, default="")

    reference = models.CharField(
        max_length=100,
        blank=True,
        null=True,
        help_text="External idempotency reference (SALE:INV-AR-00001, PAYMENT:IP-0001, ...)",
    )

    source_type = models.CharField(
        max_length=32,
        blank=True,
        default="",
        help_text="Kind of business record that produced this entry",
    )
    source_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Identifier of the producing record (weak reference)",
    )

    reversal_of = models.OneToOneField(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reversed_by",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-posting_date", "-id"]
        verbose_name = "Journal Entry"
        verbose_name_plural = "Journal Entries"
        indexes = [
            models.Index(fields=["posting_date"]),
            models.Index(fields=["source_type", "source_id"]),
            models.Index(fields=["reference"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["reference"],
                condition=Q(reference__isnull=False),
                name="uniq_journal_reference",
            ),
        ]

    def __str__(self):
        return f"{self.entry_number} ({self.posting_date})"

    @property
    def is_reversed(self) -> bool:
        return JournalEntry.objects.filter(reversal_of_id=self.pk).exists()

    @property
    def is_locked(self) -> bool:
        return bool(self.source_type) or self.reversal_of_id is not None or self.is_reversed

    def _side_total(self, side: str) -> Decimal:
        total = self.lines.filter(side=side).aggregate(total=Sum("amount"))["total"]
        return total or Decimal("0.00")

    @property
    def total_debits(self) -> Decimal:
        return self._side_total(DEBIT)

    @property
    def total_credits(self) -> Decimal:
        return self._side_total(CREDIT)
