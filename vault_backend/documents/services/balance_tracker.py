# documents/services/balance_tracker.py

"""
======================================================
PATH: documents/services/balance_tracker.py
======================================================
DOCUMENT BALANCE TRACKER

Applies payments to sales and purchase documents.

Per payment (one atomic unit):
- reject non-positive amounts and payments on cancelled documents
- reject over-payment (paid + amount > total)
- post the settlement entry:
    sale:     Dr settlement account / Cr receivable
    purchase: Dr payable            / Cr settlement account
- bump paid_amount + status with a compare-and-swap on version
- record DocumentPayment + link the journal entry
- lower the partner's open balance
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.services import sequences
from accounting.services.exceptions import (
    ConflictError,
    DocumentNotFoundError,
    InvalidAmountError,
    InvalidInputError,
    InvalidTransitionError,
    OverPaymentError,
)
from accounting.services.journal_entry_service import JournalPostingEngine, LineSpec
from accounting.services.ledger_store import LedgerStore
from accounting.services.money import ZERO, exceeds, money
from documents.models import BusinessDocument, DocumentEntry, DocumentPayment
from documents.services import lifecycle
from partners import services as partner_services

logger = logging.getLogger(__name__)

PAYMENT_SOURCE = "PAYMENT"


@dataclass(frozen=True)
class PaymentReceipt:
    document: BusinessDocument
    payment: DocumentPayment
    journal_entry: JournalEntry

    @property
    def balance(self) -> Decimal:
        return money(self.document.balance_amount)


def lock_document(document_id) -> BusinessDocument:
    try:
        document = (
            BusinessDocument.objects.select_for_update()
            .select_related("partner", "partner__account")
            .filter(pk=document_id)
            .first()
        )
    except (ValueError, TypeError, DjangoValidationError):
        document = None
    if document is None:
        raise DocumentNotFoundError(document_id=document_id)
    return document


def save_document_state(document: BusinessDocument, **values) -> BusinessDocument:
    """Compare-and-swap write of document fields; bumps version."""
    updated = BusinessDocument.objects.filter(pk=document.pk, version=document.version).update(
        version=F("version") + 1,
        updated_at=timezone.now(),
        **values,
    )
    if updated != 1:
        raise ConflictError(resource="document", resource_id=str(document.pk))
    document.refresh_from_db()
    return document


class DocumentBalanceTracker:
    def __init__(
        self,
        *,
        ledger: LedgerStore,
        engine: JournalPostingEngine,
        today: Callable = timezone.localdate,
    ):
        self.ledger = ledger
        self.engine = engine
        self._today = today

    def _payment_prefix(self, document: BusinessDocument) -> str:
        if document.is_sale:
            return getattr(settings, "INCOMING_PAYMENT_PREFIX", "IP")
        return getattr(settings, "OUTGOING_PAYMENT_PREFIX", "OP")

    @staticmethod
    def _counter_account(document: BusinessDocument) -> Account:
        if document.is_sale:
            return partner_services.receivable_account_for(document.partner)
        return partner_services.payable_account_for(document.partner)

    def _settlement_account(self, document: BusinessDocument, settlement_account_id) -> Account:
        """Money moves through a cash-like asset, never the document's own AR/AP account."""
        settlement = self.ledger.get_account(settlement_account_id)
        if settlement.account_type != Account.ASSET:
            raise InvalidInputError(
                field="settlement_account_id",
                message=f"Settlement account {settlement.code} must be an asset account",
            )
        if settlement.pk == self._counter_account(document).pk:
            raise InvalidInputError(
                field="settlement_account_id",
                message=f"Settlement account {settlement.code} is the document's own counterparty account",
            )
        return settlement

    def _settlement_lines(self, document: BusinessDocument, settlement_account_id, amount: Decimal, memo: str):
        counter = self._counter_account(document)
        if document.is_sale:
            return [
                LineSpec.debit(settlement_account_id, amount, memo),
                LineSpec.credit(counter.pk, amount, memo),
            ]
        return [
            LineSpec.debit(counter.pk, amount, memo),
            LineSpec.credit(settlement_account_id, amount, memo),
        ]

    @transaction.atomic
    def apply_payment(
        self,
        document_id,
        amount,
        settlement_account_id,
        *,
        payment_date=None,
        idempotency_key: str | None = None,
        memo: str = "",
    ) -> PaymentReceipt:
        amt = money(amount)
        if amt <= ZERO:
            raise InvalidAmountError(amount=amount)

        document = lock_document(document_id)

        # a PAID document falls through to the over-payment check
        if document.status == BusinessDocument.STATUS_CANCELLED:
            raise InvalidTransitionError(
                document_id=str(document.pk),
                from_status=document.status,
                to_status=BusinessDocument.STATUS_PARTIALLY_PAID,
            )

        new_paid = money(document.paid_amount) + amt
        if exceeds(new_paid, document.total_amount):
            raise OverPaymentError(
                document_id=str(document.pk),
                amount=amt,
                balance=money(document.balance_amount),
            )

        settlement = self._settlement_account(document, settlement_account_id)

        pay_date = payment_date or self._today()
        prefix = self._payment_prefix(document)
        payment_number = sequences.next_number(f"payment:{prefix}", prefix, width=4)
        line_memo = (memo or "").strip() or f"Payment {payment_number} for {document.document_number}"

        entry = self.engine.post(
            self._settlement_lines(document, settlement.pk, amt, line_memo),
            memo=line_memo,
            posting_date=pay_date,
            reference=f"{PAYMENT_SOURCE}:{payment_number}",
            source_type=PAYMENT_SOURCE,
            source_id=document.document_number,
        )

        new_status = lifecycle.status_after_payment(document=document, new_paid_amount=new_paid)
        document = save_document_state(document, paid_amount=new_paid, status=new_status)

        key = (idempotency_key or "").strip() or None
        try:
            with transaction.atomic():
                payment = DocumentPayment.objects.create(
                    document=document,
                    payment_number=payment_number,
                    amount=amt,
                    settlement_account=settlement,
                    payment_date=pay_date,
                    journal_entry=entry,
                    idempotency_key=key,
                    memo=line_memo[:255],
                )
        except IntegrityError as exc:
            raise ConflictError(resource="document_payment", resource_id=key or payment_number) from exc

        DocumentEntry.objects.create(
            document=document,
            journal_entry=entry,
            purpose=DocumentEntry.PURPOSE_PAYMENT,
        )
        partner_services.adjust_for_document(document, -amt, transaction_date=pay_date)

        logger.info(
            "Document payment applied",
            extra={
                "document_id": str(document.pk),
                "payment_number": payment_number,
                "amount": str(amt),
                "status": new_status,
                "journal_entry_id": entry.pk,
            },
        )
        return PaymentReceipt(document=document, payment=payment, journal_entry=entry)
