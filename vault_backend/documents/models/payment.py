# documents/models/payment.py

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.journal import JournalEntry

from .document import BusinessDocument


class DocumentPayment(models.Model):
    """
    One payment applied to a document (incoming for sales, outgoing for purchases).

    idempotency_key lets clients retry a payment request safely.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    document = models.ForeignKey(
        BusinessDocument,
        on_delete=models.CASCADE,
        related_name="payments",
    )
    payment_number = models.CharField(max_length=32, unique=True)

    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    settlement_account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="document_payments",
    )
    payment_date = models.DateField(default=timezone.localdate)

    journal_entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.PROTECT,
        related_name="document_payments",
    )

    idempotency_key = models.CharField(max_length=100, null=True, blank=True)
    memo = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-payment_date", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["idempotency_key"],
                condition=Q(idempotency_key__isnull=False),
                name="uniq_document_payment_idempotency_key",
            ),
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_document_payment_amount_positive",
            ),
        ]

    def __str__(self):
        return f"{self.payment_number} {self.amount}"


class DocumentEntry(models.Model):
    """Link between a document and every journal entry posted on its behalf."""

    PURPOSE_POSTING = "POSTING"
    PURPOSE_PAYMENT = "PAYMENT"
    PURPOSE_REVERSAL = "REVERSAL"

    PURPOSE_CHOICES = [
        (PURPOSE_POSTING, "Posting"),
        (PURPOSE_PAYMENT, "Payment"),
        (PURPOSE_REVERSAL, "Reversal"),
    ]

    document = models.ForeignKey(
        BusinessDocument,
        on_delete=models.CASCADE,
        related_name="entry_links",
    )
    journal_entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.PROTECT,
        related_name="document_links",
    )
    purpose = models.CharField(max_length=10, choices=PURPOSE_CHOICES)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["document", "journal_entry"],
                name="uniq_document_entry_link",
            ),
        ]

    def __str__(self):
        return f"{self.document_id} → {self.journal_entry_id} ({self.purpose})"
