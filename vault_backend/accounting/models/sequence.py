# accounting/models/sequence.py

from __future__ import annotations

from django.db import models


class NumberSequence(models.Model):
    """
    Monotonic counter backing human-readable numbers
    (journal entries, invoices, payments, partner codes).
    """

    key = models.CharField(max_length=50, unique=True)
    last_value = models.PositiveIntegerField(default=0)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]

    def __str__(self):
        return f"{self.key}={self.last_value}"
