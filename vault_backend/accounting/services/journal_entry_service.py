# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
JOURNAL ENTRY SERVICE (ACCOUNTING ENGINE)

This module is the ONLY place allowed to:
- Create, edit and delete JournalEntry / JournalLine rows
- Enforce debit == credit
- Apply (and un-apply) line deltas to account balances
- Enforce idempotency via reference (prevents double-posting)
- Enforce reversal rules (at most once, locked entries stay immutable)

Everything else (invoices, payments, receipts, opening stock) must pass through here.

Posting order:
1. validate the lines (nothing is touched on failure)
2. apply every line delta through the LedgerStore
3. assign the next entry number
4. persist header + lines
All inside one atomic block.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from accounting.models.account import CREDIT, DEBIT
from accounting.models.journal import JournalEntry
from accounting.models.ledger import JournalLine
from accounting.services import sequences
from accounting.services.exceptions import (
    AlreadyReversedError,
    EmptyEntryError,
    EntryLockedError,
    EntryNotFoundError,
    IdempotencyError,
    InactiveAccountError,
    InvalidInputError,
    UnbalancedEntryError,
    ZeroAmountLineError,
)
from accounting.services.ledger_store import LedgerStore
from accounting.services.money import ZERO, is_zero, money

logger = logging.getLogger(__name__)

ENTRY_SEQUENCE_KEY = "journal_entry"


@dataclass(frozen=True)
class LineSpec:
    account_id: int
    side: str
    amount: Decimal
    memo: str = ""

    @classmethod
    def debit(cls, account_id, amount, memo: str = "") -> "LineSpec":
        return cls(account_id=account_id, side=DEBIT, amount=amount, memo=memo)

    @classmethod
    def credit(cls, account_id, amount, memo: str = "") -> "LineSpec":
        return cls(account_id=account_id, side=CREDIT, amount=amount, memo=memo)

    def flipped(self) -> "LineSpec":
        side = CREDIT if self.side == DEBIT else DEBIT
        return LineSpec(account_id=self.account_id, side=side, amount=self.amount, memo=self.memo)


def _normalize_reference(reference: str | None) -> str | None:
    if reference is None:
        return None
    ref = str(reference).strip()
    return ref or None


class JournalPostingEngine:
    def __init__(
        self,
        *,
        ledger: LedgerStore,
        entry_prefix: str | None = None,
        today: Callable = timezone.localdate,
    ):
        self.ledger = ledger
        self.entry_prefix = entry_prefix or getattr(settings, "JOURNAL_ENTRY_PREFIX", "JE")
        self._today = today

    # ------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------

    def validate(self, lines: Iterable[LineSpec]) -> list[LineSpec]:
        """
        Check a candidate entry without touching any state.
        Returns the lines with amounts quantized to cents.
        """
        raw = list(lines or [])
        if not raw:
            raise EmptyEntryError()

        normalized: list[LineSpec] = []
        debits = ZERO
        credits = ZERO

        for position, line in enumerate(raw, start=1):
            if line.side not in (DEBIT, CREDIT):
                raise InvalidInputError(
                    field=f"lines[{position}].side",
                    message=f"Unknown side '{line.side}'",
                )

            amount = money(line.amount)
            if amount <= ZERO:
                raise ZeroAmountLineError(position=position, amount=amount)

            account = self.ledger.get_account(line.account_id)
            if not account.is_active:
                raise InactiveAccountError(account_id=account.pk, code=account.code)

            if line.side == DEBIT:
                debits += amount
            else:
                credits += amount

            normalized.append(
                LineSpec(
                    account_id=account.pk,
                    side=line.side,
                    amount=amount,
                    memo=(line.memo or "").strip(),
                )
            )

        if len(normalized) < 2 or not is_zero(debits - credits):
            raise UnbalancedEntryError(debits=debits, credits=credits)

        return normalized

    # ------------------------------------------------------------
    # Balance application
    # ------------------------------------------------------------

    def _apply(self, lines: list[LineSpec]) -> None:
        accounts = self.ledger.lock_accounts(line.account_id for line in lines)
        for line in lines:
            account = accounts[line.account_id]
            self.ledger.post_balance_delta(
                account.pk, self.ledger.signed_delta(account, line.side, line.amount)
            )

    def _unapply(self, entry: JournalEntry) -> None:
        self._apply([self._spec_from_line(line).flipped() for line in entry.lines.all()])

    @staticmethod
    def _spec_from_line(line: JournalLine) -> LineSpec:
        return LineSpec(
            account_id=line.account_id,
            side=line.side,
            amount=line.amount,
            memo=line.memo,
        )

    @staticmethod
    def _write_lines(entry: JournalEntry, lines: list[LineSpec]) -> None:
        JournalLine.objects.bulk_create(
            [
                JournalLine(
                    journal_entry=entry,
                    account_id=line.account_id,
                    side=line.side,
                    amount=line.amount,
                    memo=line.memo[:255],
                    position=position,
                )
                for position, line in enumerate(lines, start=1)
            ]
        )

    def _next_entry_number(self) -> str:
        return sequences.next_number(ENTRY_SEQUENCE_KEY, self.entry_prefix, width=4)

    # ------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------

    @transaction.atomic
    def post(
        self,
        lines: Iterable[LineSpec],
        *,
        memo: str = "",
        posting_date=None,
        reference: str | None = None,
        source_type: str = "",
        source_id: str = "",
        reversal_of: JournalEntry | None = None,
    ) -> JournalEntry:
        normalized = self.validate(lines)
        ref = _normalize_reference(reference)

        if ref and JournalEntry.objects.filter(reference=ref).exists():
            raise IdempotencyError(reference=ref)

        self._apply(normalized)

        entry_number = self._next_entry_number()
        try:
            with transaction.atomic():
                entry = JournalEntry.objects.create(
                    entry_number=entry_number,
                    posting_date=posting_date or self._today(),
                    memo=(memo or "").strip(),
                    reference=ref,
                    source_type=source_type or "",
                    source_id=str(source_id or ""),
                    reversal_of=reversal_of,
                )
        except IntegrityError as exc:
            if ref and JournalEntry.objects.filter(reference=ref).exists():
                raise IdempotencyError(reference=ref) from exc
            raise

        self._write_lines(entry, normalized)

        logger.info(
            "Journal entry posted",
            extra={
                "entry_id": entry.pk,
                "entry_number": entry.entry_number,
                "reference": ref,
                "source_type": entry.source_type,
                "line_count": len(normalized),
            },
        )
        return entry

    def _lock_entry(self, entry_id) -> JournalEntry:
        entry = JournalEntry.objects.select_for_update().filter(pk=entry_id).first()
        if entry is None:
            raise EntryNotFoundError(entry_id=entry_id)
        return entry

    @transaction.atomic
    def reverse(
        self,
        entry_id,
        *,
        memo: str | None = None,
        posting_date=None,
    ) -> JournalEntry:
        """Post the mirror image of an entry. An entry can be reversed once."""
        entry = self._lock_entry(entry_id)
        if entry.is_reversed:
            raise AlreadyReversedError(entry_id=entry.pk)

        lines = [self._spec_from_line(line).flipped() for line in entry.lines.all()]
        reversal = self.post(
            lines,
            memo=memo or f"Reversal of {entry.entry_number}",
            posting_date=posting_date,
            reference=f"REVERSAL:{entry.entry_number}",
            source_type=entry.source_type,
            source_id=entry.source_id,
            reversal_of=entry,
        )

        logger.info(
            "Journal entry reversed",
            extra={"entry_id": entry.pk, "reversal_id": reversal.pk},
        )
        return reversal

    # ------------------------------------------------------------
    # Editing (manual, unlocked entries only)
    # ------------------------------------------------------------

    def _ensure_editable(self, entry: JournalEntry) -> None:
        if entry.is_locked:
            raise EntryLockedError(entry_id=entry.pk)

    @transaction.atomic
    def update_entry(
        self,
        entry_id,
        lines: Iterable[LineSpec],
        *,
        memo: str | None = None,
        posting_date=None,
    ) -> JournalEntry:
        normalized = self.validate(lines)

        entry = self._lock_entry(entry_id)
        self._ensure_editable(entry)

        self._unapply(entry)
        self._apply(normalized)

        entry.lines.all().delete()
        self._write_lines(entry, normalized)

        update_fields = []
        if memo is not None:
            entry.memo = memo.strip()
            update_fields.append("memo")
        if posting_date is not None:
            entry.posting_date = posting_date
            update_fields.append("posting_date")
        if update_fields:
            entry.save(update_fields=update_fields)

        logger.info("Journal entry updated", extra={"entry_id": entry.pk})
        return entry

    @transaction.atomic
    def delete_entry(self, entry_id) -> str:
        entry = self._lock_entry(entry_id)
        self._ensure_editable(entry)

        self._unapply(entry)
        entry_number = entry.entry_number
        entry.delete()

        logger.info(
            "Journal entry deleted",
            extra={"entry_id": entry_id, "entry_number": entry_number},
        )
        return entry_number

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    def get_entry(self, entry_id) -> JournalEntry:
        entry = (
            JournalEntry.objects.filter(pk=entry_id)
            .prefetch_related("lines__account")
            .first()
        )
        if entry is None:
            raise EntryNotFoundError(entry_id=entry_id)
        return entry

    def list_entries(self, *, account_id=None, date_from=None, date_to=None, source_type=None):
        qs = JournalEntry.objects.all()
        if account_id is not None:
            qs = qs.filter(lines__account_id=account_id).distinct()
        if date_from is not None:
            qs = qs.filter(posting_date__gte=date_from)
        if date_to is not None:
            qs = qs.filter(posting_date__lte=date_to)
        if source_type:
            qs = qs.filter(source_type=source_type)
        return qs.prefetch_related("lines__account")

    def search(self, text: str):
        term = (text or "").strip()
        qs = JournalEntry.objects.all()
        if term:
            qs = qs.filter(
                Q(entry_number__icontains=term)
                | Q(memo__icontains=term)
                | Q(reference__icontains=term)
                | Q(source_id__icontains=term)
            )
        return qs
