# operations/services/orchestrator.py

"""
======================================================
PATH: operations/services/orchestrator.py
======================================================
TRANSACTION ORCHESTRATOR (APPLICATION SERVICE)

Purpose:
- Compose the ledger store, posting engine, balance tracker and
  inventory valuation guard into atomic business operations.
- Every operation returns an OperationResult; typed failures are values,
  never partially applied state.

Hard rules:
- Inputs are validated before the unit of work opens.
- Stock decrements, ledger postings and document writes commit together
  or roll back together (one transaction.atomic block per attempt).
- Only CONFLICT (lost compare-and-swap / unique race) is retried,
  with capped exponential backoff + full jitter.
- Retries are idempotent: an existing document number or payment
  idempotency key replays the earlier record (replayed=True).
- A CancellationToken is honoured before the unit opens and before commit.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable

from django.db import DatabaseError, IntegrityError, OperationalError, transaction
from django.utils import timezone

from accounting.services.exceptions import (
    AccountingServiceError,
    CannotCancelWithPaymentsError,
    ConflictError,
    DocumentNotDraftError,
    EntryLockedError,
    IdempotencyError,
    InvalidAmountError,
    InvalidInputError,
    InvalidTransitionError,
    StoreUnavailableError,
)
from accounting.services.journal_entry_service import JournalPostingEngine, LineSpec
from accounting.services.ledger_store import LedgerStore
from accounting.services.money import ZERO, money
from documents.models import BusinessDocument, DocumentEntry, DocumentPayment
from documents.services import document_service, lifecycle
from documents.services.balance_tracker import (
    PAYMENT_SOURCE,
    DocumentBalanceTracker,
    PaymentReceipt,
    lock_document,
    save_document_state,
)
from documents.services.totals import normalize_line_inputs
from inventory.services.valuation_guard import OPENING_SOURCE, InventoryValuationGuard
from operations.services.results import (
    CancellationToken,
    OperationResult,
    Replayed,
    RetryPolicy,
)
from partners import services as partner_services

logger = logging.getLogger(__name__)

_STATUSES = {value for value, _label in BusinessDocument.STATUS_CHOICES}

# Entries owned by a document, payment or stock record; only their owner may reverse them.
_OWNED_SOURCES = frozenset(
    {BusinessDocument.KIND_SALE, BusinessDocument.KIND_PURCHASE, PAYMENT_SOURCE, OPENING_SOURCE}
)


def _is_lock_contention(exc: OperationalError) -> bool:
    # SQLite reports a busy writer lock as OperationalError
    message = str(exc).lower()
    return "database is locked" in message or "database table is locked" in message


class TransactionOrchestrator:
    def __init__(
        self,
        *,
        ledger: LedgerStore,
        engine: JournalPostingEngine,
        tracker: DocumentBalanceTracker,
        guard: InventoryValuationGuard,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        today: Callable = timezone.localdate,
    ):
        self.ledger = ledger
        self.engine = engine
        self.tracker = tracker
        self.guard = guard
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self._sleep = sleep
        self._today = today

    # ============================================================
    # UNIT OF WORK
    # ============================================================

    def _rejected(self, operation: str, error: AccountingServiceError) -> OperationResult:
        logger.warning(
            "Operation rejected",
            extra={"operation": operation, "error": error.kind.value, "detail": str(error)},
        )
        return OperationResult.failure(error, attempts=0)

    def _store_unavailable(self, exc: DatabaseError, attempt: int, log_extra: dict) -> OperationResult:
        logger.exception("Store unavailable during operation", extra=log_extra)
        return OperationResult.failure(
            StoreUnavailableError(message=str(exc) or type(exc).__name__),
            attempts=attempt,
        )

    def _execute(
        self,
        operation: str,
        work: Callable,
        *,
        cancel_token: CancellationToken | None = None,
        context: dict | None = None,
    ) -> OperationResult:
        log_extra = {"operation": operation, **(context or {})}
        logger.info("Operation started", extra=log_extra)

        attempt = 0
        while True:
            attempt += 1
            try:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled(operation)

                with transaction.atomic():
                    outcome = work()
                    if cancel_token is not None:
                        cancel_token.raise_if_cancelled(operation)

            except (ConflictError, IntegrityError, OperationalError) as exc:
                if isinstance(exc, OperationalError) and not _is_lock_contention(exc):
                    return self._store_unavailable(exc, attempt, log_extra)
                error = exc if isinstance(exc, ConflictError) else ConflictError(
                    detail=str(exc) or None,
                    resource="database" if isinstance(exc, OperationalError) else "unique",
                    resource_id=operation,
                )
                if attempt >= self.retry_policy.max_attempts:
                    logger.warning(
                        "Operation conflict; retries exhausted",
                        extra={**log_extra, "attempt": attempt, "error": error.kind.value},
                    )
                    return OperationResult.failure(error, attempts=attempt)

                delay = self.retry_policy.delay(attempt)
                logger.info(
                    "Operation conflict; retrying",
                    extra={**log_extra, "attempt": attempt, "delay": round(delay, 4)},
                )
                self._sleep(delay)
                continue

            except AccountingServiceError as exc:
                logger.warning(
                    "Operation failed",
                    extra={**log_extra, "attempt": attempt, "error": exc.kind.value, "detail": str(exc)},
                )
                return OperationResult.failure(exc, attempts=attempt)

            except DatabaseError as exc:
                return self._store_unavailable(exc, attempt, log_extra)

            if isinstance(outcome, Replayed):
                logger.info("Operation replayed", extra={**log_extra, "attempt": attempt})
                return OperationResult.success(outcome.value, attempts=attempt, replayed=True)

            logger.info("Operation succeeded", extra={**log_extra, "attempt": attempt})
            return OperationResult.success(outcome, attempts=attempt)

    # ============================================================
    # SALES
    # ============================================================

    def create_invoice_with_stock_deduction(
        self,
        *,
        partner_id,
        lines: Iterable,
        document_date=None,
        due_date=None,
        document_number: str | None = None,
        memo: str = "",
        cancel_token: CancellationToken | None = None,
    ) -> OperationResult:
        operation = "create_invoice_with_stock_deduction"
        try:
            inputs = normalize_line_inputs(lines)
        except AccountingServiceError as exc:
            return self._rejected(operation, exc)

        kind = BusinessDocument.KIND_SALE
        doc_date = document_date or self._today()
        requested_number = (document_number or "").strip() or None

        def work():
            partner = partner_services.get_partner(partner_id, for_update=True)
            document_service.require_partner_role(partner, kind)

            existing = document_service.find_document(kind, requested_number)
            if existing is not None:
                return Replayed(existing)

            priced, totals = document_service.price_lines(kind, inputs)
            if totals.total <= ZERO:
                raise InvalidAmountError(amount=totals.total)

            reservation = self.guard.reserve_for_sale(
                (p.line.item_id, p.line.quantity) for p in priced
            )

            number = requested_number or document_service.next_document_number(kind)
            entry_lines = document_service.sale_revenue_lines(partner, totals, number)
            entry_lines += self.guard.cogs_lines(reservation, memo=f"Cost of sales {number}")

            self.guard.commit_reservation(reservation, reference=number)
            try:
                entry = self.engine.post(
                    entry_lines,
                    memo=f"Sales invoice {number} – {partner.name}",
                    posting_date=doc_date,
                    reference=f"{kind}:{number}",
                    source_type=kind,
                    source_id=number,
                )
            except IdempotencyError as exc:
                # another request created this document number first; retry replays it
                raise ConflictError(resource="document", resource_id=number) from exc

            document = document_service.create_document_record(
                kind=kind,
                document_number=number,
                partner=partner,
                priced=priced,
                totals=totals,
                document_date=doc_date,
                due_date=due_date,
                memo=memo,
                unit_costs={line.item_id: line.unit_cost for line in reservation.lines},
            )
            document_service.link_entry(document, entry, DocumentEntry.PURPOSE_POSTING)
            partner_services.adjust_for_document(document, totals.total, transaction_date=doc_date)
            return document

        return self._execute(
            operation,
            work,
            cancel_token=cancel_token,
            context={"partner_id": str(partner_id), "line_count": len(inputs)},
        )

    # ============================================================
    # PURCHASES
    # ============================================================

    def create_purchase_receipt(
        self,
        *,
        partner_id,
        lines: Iterable,
        document_date=None,
        due_date=None,
        document_number: str | None = None,
        memo: str = "",
        cancel_token: CancellationToken | None = None,
    ) -> OperationResult:
        operation = "create_purchase_receipt"
        try:
            inputs = normalize_line_inputs(lines)
        except AccountingServiceError as exc:
            return self._rejected(operation, exc)

        kind = BusinessDocument.KIND_PURCHASE
        doc_date = document_date or self._today()
        requested_number = (document_number or "").strip() or None

        def work():
            partner = partner_services.get_partner(partner_id, for_update=True)
            document_service.require_partner_role(partner, kind)

            existing = document_service.find_document(kind, requested_number)
            if existing is not None:
                return Replayed(existing)

            priced, totals = document_service.price_lines(kind, inputs)
            if totals.total <= ZERO:
                raise InvalidAmountError(amount=totals.total)

            number = requested_number or document_service.next_document_number(kind)
            entry_lines = document_service.purchase_receipt_lines(
                partner, priced, totals, number, self.guard.inventory_account_id_for
            )

            self.guard.receive_stock(
                [(p.line.item_id, p.line.quantity, money(p.amounts.net / p.line.quantity)) for p in priced],
                reference=number,
            )
            try:
                entry = self.engine.post(
                    entry_lines,
                    memo=f"Purchase receipt {number} – {partner.name}",
                    posting_date=doc_date,
                    reference=f"{kind}:{number}",
                    source_type=kind,
                    source_id=number,
                )
            except IdempotencyError as exc:
                # another request created this document number first; retry replays it
                raise ConflictError(resource="document", resource_id=number) from exc

            document = document_service.create_document_record(
                kind=kind,
                document_number=number,
                partner=partner,
                priced=priced,
                totals=totals,
                document_date=doc_date,
                due_date=due_date,
                memo=memo,
            )
            document_service.link_entry(document, entry, DocumentEntry.PURPOSE_POSTING)
            partner_services.adjust_for_document(document, totals.total, transaction_date=doc_date)
            return document

        return self._execute(
            operation,
            work,
            cancel_token=cancel_token,
            context={"partner_id": str(partner_id), "line_count": len(inputs)},
        )

    # ============================================================
    # PAYMENTS
    # ============================================================

    def record_document_payment(
        self,
        *,
        document_id,
        amount,
        settlement_account_id,
        payment_date=None,
        idempotency_key: str | None = None,
        memo: str = "",
        cancel_token: CancellationToken | None = None,
    ) -> OperationResult:
        operation = "record_document_payment"
        try:
            amt = money(amount)
            if amt <= ZERO:
                raise InvalidAmountError(amount=amount)
        except AccountingServiceError as exc:
            return self._rejected(operation, exc)

        key = (idempotency_key or "").strip() or None

        def work():
            if key:
                existing = (
                    DocumentPayment.objects.filter(idempotency_key=key)
                    .select_related("document", "journal_entry")
                    .first()
                )
                if existing is not None:
                    return Replayed(
                        PaymentReceipt(
                            document=existing.document,
                            payment=existing,
                            journal_entry=existing.journal_entry,
                        )
                    )

            return self.tracker.apply_payment(
                document_id,
                amt,
                settlement_account_id,
                payment_date=payment_date,
                idempotency_key=key,
                memo=memo,
            )

        return self._execute(
            operation,
            work,
            cancel_token=cancel_token,
            context={"document_id": str(document_id), "amount": str(amt), "idempotency_key": key},
        )

    # ============================================================
    # DOCUMENT STATE
    # ============================================================

    def _restore_stock(self, document: BusinessDocument) -> None:
        quantities = document_service.stock_quantities(document)
        if not quantities:
            return
        if document.is_sale:
            self.guard.release_stock(quantities, reference=document.document_number)
        else:
            reservation = self.guard.reserve_for_return(quantities)
            self.guard.commit_reservation(reservation, reference=document.document_number)

    def delete_draft_document(
        self,
        *,
        document_id,
        cancel_token: CancellationToken | None = None,
    ) -> OperationResult:
        def work():
            document = lock_document(document_id)
            if document.status != BusinessDocument.STATUS_DRAFT:
                raise DocumentNotDraftError(document_id=str(document.pk), status=document.status)

            number = document.document_number
            reversals = document_service.reverse_document_postings(
                self.engine, document, memo=f"Deleted draft {number}"
            )
            self._restore_stock(document)
            partner_services.adjust_for_document(document, -money(document.balance_amount))
            document.delete()

            return {
                "document_number": number,
                "reversal_entries": [r.entry_number for r in reversals],
            }

        return self._execute(
            "delete_draft_document",
            work,
            cancel_token=cancel_token,
            context={"document_id": str(document_id)},
        )

    def cancel_document(
        self,
        *,
        document_id,
        cancel_token: CancellationToken | None = None,
    ) -> OperationResult:
        def work():
            document = lock_document(document_id)
            if document.status == BusinessDocument.STATUS_CANCELLED:
                raise InvalidTransitionError(
                    document_id=str(document.pk),
                    from_status=document.status,
                    to_status=BusinessDocument.STATUS_CANCELLED,
                )
            if money(document.paid_amount) > ZERO:
                raise CannotCancelWithPaymentsError(
                    document_id=str(document.pk),
                    paid_amount=money(document.paid_amount),
                )
            lifecycle.validate_transition(document=document, target_status=BusinessDocument.STATUS_CANCELLED)

            document_service.reverse_document_postings(
                self.engine, document, memo=f"Cancelled {document.document_number}"
            )
            self._restore_stock(document)
            partner_services.adjust_for_document(document, -money(document.balance_amount))
            return save_document_state(document, status=BusinessDocument.STATUS_CANCELLED)

        return self._execute(
            "cancel_document",
            work,
            cancel_token=cancel_token,
            context={"document_id": str(document_id)},
        )

    def transition_document(
        self,
        *,
        document_id,
        target_status: str,
        cancel_token: CancellationToken | None = None,
    ) -> OperationResult:
        operation = "transition_document"
        if target_status not in _STATUSES:
            return self._rejected(
                operation,
                InvalidInputError(field="status", message=f"Unknown status '{target_status}'"),
            )

        def work():
            document = lock_document(document_id)
            if target_status not in lifecycle.manual_targets(document):
                raise InvalidTransitionError(
                    document_id=str(document.pk),
                    from_status=document.status,
                    to_status=target_status,
                )
            return save_document_state(document, status=target_status)

        return self._execute(
            operation,
            work,
            cancel_token=cancel_token,
            context={"document_id": str(document_id), "target_status": target_status},
        )

    # ============================================================
    # MANUAL JOURNAL ENTRIES
    # ============================================================

    def post_journal_entry(
        self,
        *,
        lines: Iterable[LineSpec],
        memo: str = "",
        posting_date=None,
        reference: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> OperationResult:
        specs = list(lines or [])

        def work():
            return self.engine.post(specs, memo=memo, posting_date=posting_date, reference=reference)

        return self._execute(
            "post_journal_entry",
            work,
            cancel_token=cancel_token,
            context={"reference": reference, "line_count": len(specs)},
        )

    def reverse_journal_entry(
        self,
        *,
        entry_id,
        memo: str | None = None,
        posting_date=None,
        cancel_token: CancellationToken | None = None,
    ) -> OperationResult:
        def work():
            entry = self.engine.get_entry(entry_id)
            if entry.source_type in _OWNED_SOURCES:
                raise EntryLockedError(
                    detail=(
                        f"Journal entry {entry.entry_number} belongs to {entry.source_type} "
                        f"{entry.source_id}; cancel or reverse it through its owner"
                    ),
                    entry_id=entry.pk,
                )
            return self.engine.reverse(entry_id, memo=memo, posting_date=posting_date)

        return self._execute(
            "reverse_journal_entry",
            work,
            cancel_token=cancel_token,
            context={"entry_id": entry_id},
        )

    def update_journal_entry(
        self,
        *,
        entry_id,
        lines: Iterable[LineSpec],
        memo: str | None = None,
        posting_date=None,
    ) -> OperationResult:
        specs = list(lines or [])

        def work():
            return self.engine.update_entry(entry_id, specs, memo=memo, posting_date=posting_date)

        return self._execute("update_journal_entry", work, context={"entry_id": entry_id})

    def delete_journal_entry(self, *, entry_id) -> OperationResult:
        def work():
            return self.engine.delete_entry(entry_id)

        return self._execute("delete_journal_entry", work, context={"entry_id": entry_id})


def build_orchestrator(
    *,
    retry_policy: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
    guard_class: type[InventoryValuationGuard] = InventoryValuationGuard,
) -> TransactionOrchestrator:
    ledger = LedgerStore()
    engine = JournalPostingEngine(ledger=ledger)
    return TransactionOrchestrator(
        ledger=ledger,
        engine=engine,
        tracker=DocumentBalanceTracker(ledger=ledger, engine=engine),
        guard=guard_class(engine=engine),
        retry_policy=retry_policy,
        sleep=sleep,
    )
