# documents/tests/test_balance_tracker.py

import uuid
from decimal import Decimal

from django.test import TestCase

from accounting.models import Account, JournalEntry
from accounting.services.exceptions import (
    DocumentNotFoundError,
    ErrorKind,
    InvalidAmountError,
    InvalidInputError,
    InvalidTransitionError,
    OverPaymentError,
)
from accounting.services.journal_entry_service import JournalPostingEngine
from accounting.services.ledger_store import LedgerStore
from documents.models import BusinessDocument, DocumentEntry, DocumentPayment
from documents.services.balance_tracker import DocumentBalanceTracker
from partners import services as partner_services
from partners.models import BusinessPartner


class BalanceTrackerTests(TestCase):
    """
    Payments against sales and purchase documents.

    GUARANTEES:
    - 0 <= paid_amount <= total_amount
    - status follows the paid amount (PARTIALLY_PAID -> PAID)
    - each payment posts exactly one settlement entry
    """

    def setUp(self):
        self.store = LedgerStore()
        self.store.initialize_default_chart()
        self.engine = JournalPostingEngine(ledger=self.store)
        self.tracker = DocumentBalanceTracker(ledger=self.store, engine=self.engine)

        self.cash = Account.objects.get(code="1001")
        self.customer = partner_services.create_partner(name="Acme", partner_type=BusinessPartner.CUSTOMER)
        self.vendor = partner_services.create_partner(name="Supply Co", partner_type=BusinessPartner.VENDOR)

        self.sale = BusinessDocument.objects.create(
            kind=BusinessDocument.KIND_SALE,
            document_number="INV-AR-00001",
            partner=self.customer,
            total_amount=Decimal("1000.00"),
        )
        partner_services.adjust_balance(self.customer.pk, "1000.00")

    def balance(self, code):
        return Account.objects.get(code=code).balance

    # ======================================================
    # PAYMENT SEQUENCE
    # ======================================================

    def test_partial_then_full_then_overpayment(self):
        first = self.tracker.apply_payment(self.sale.pk, "400", self.cash.pk)
        self.assertEqual(first.document.paid_amount, Decimal("400.00"))
        self.assertEqual(first.document.status, BusinessDocument.STATUS_PARTIALLY_PAID)
        self.assertEqual(first.balance, Decimal("600.00"))

        second = self.tracker.apply_payment(self.sale.pk, "600", self.cash.pk)
        self.assertEqual(second.document.paid_amount, Decimal("1000.00"))
        self.assertEqual(second.document.status, BusinessDocument.STATUS_PAID)

        with self.assertRaises(OverPaymentError) as ctx:
            self.tracker.apply_payment(self.sale.pk, "1", self.cash.pk)

        self.assertEqual(ctx.exception.balance, Decimal("0.00"))
        self.sale.refresh_from_db()
        self.assertEqual(self.sale.paid_amount, Decimal("1000.00"))
        self.assertEqual(DocumentPayment.objects.filter(document=self.sale).count(), 2)

    def test_sale_payment_posts_cash_against_receivable(self):
        receipt = self.tracker.apply_payment(self.sale.pk, "250", self.cash.pk, idempotency_key="pay-1")

        self.assertEqual(receipt.payment.payment_number, "IP-0001")
        self.assertEqual(receipt.journal_entry.reference, "PAYMENT:IP-0001")
        self.assertEqual(self.balance("1001"), Decimal("250.00"))
        self.assertEqual(self.balance("1002"), Decimal("-250.00"))
        self.assertTrue(
            DocumentEntry.objects.filter(
                document=self.sale,
                journal_entry=receipt.journal_entry,
                purpose=DocumentEntry.PURPOSE_PAYMENT,
            ).exists()
        )

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.balance, Decimal("750.00"))

    def test_purchase_payment_posts_payable_against_cash(self):
        bill = BusinessDocument.objects.create(
            kind=BusinessDocument.KIND_PURCHASE,
            document_number="INV-AP-00001",
            partner=self.vendor,
            total_amount=Decimal("80.00"),
        )
        partner_services.adjust_for_document(bill, "80.00")
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.balance, Decimal("-80.00"))

        receipt = self.tracker.apply_payment(bill.pk, "80", self.cash.pk)

        self.assertEqual(receipt.payment.payment_number, "OP-0001")
        self.assertEqual(receipt.document.status, BusinessDocument.STATUS_PAID)
        self.assertEqual(self.balance("2001"), Decimal("-80.00"))
        self.assertEqual(self.balance("1001"), Decimal("-80.00"))
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.balance, Decimal("0.00"))

    # ======================================================
    # REJECTIONS
    # ======================================================

    def test_overpayment_leaves_no_trace(self):
        with self.assertRaises(OverPaymentError) as ctx:
            self.tracker.apply_payment(self.sale.pk, "1000.01", self.cash.pk)

        self.assertEqual(ctx.exception.kind, ErrorKind.OVER_PAYMENT)
        self.assertEqual(JournalEntry.objects.count(), 0)
        self.sale.refresh_from_db()
        self.assertEqual(self.sale.paid_amount, Decimal("0.00"))
        self.assertEqual(self.sale.version, 0)

    def test_non_positive_amount(self):
        for amount in ("0", "-5"):
            with self.assertRaises(InvalidAmountError):
                self.tracker.apply_payment(self.sale.pk, amount, self.cash.pk)

    def test_settlement_must_be_an_asset_other_than_the_counterparty(self):
        revenue = Account.objects.get(code="4001")
        receivable = Account.objects.get(code="1002")

        for account in (revenue, receivable):
            with self.assertRaises(InvalidInputError) as ctx:
                self.tracker.apply_payment(self.sale.pk, "100", account.pk)
            self.assertEqual(ctx.exception.kind, ErrorKind.INVALID_INPUT)
            self.assertEqual(ctx.exception.field, "settlement_account_id")

        self.assertEqual(JournalEntry.objects.count(), 0)
        self.sale.refresh_from_db()
        self.assertEqual(self.sale.paid_amount, Decimal("0.00"))
        self.assertEqual(self.sale.status, BusinessDocument.STATUS_DRAFT)

    def test_bank_account_can_settle(self):
        bank = Account.objects.get(code="1004")

        receipt = self.tracker.apply_payment(self.sale.pk, "100", bank.pk)

        self.assertEqual(receipt.payment.settlement_account_id, bank.pk)
        self.assertEqual(self.balance("1004"), Decimal("100.00"))

    def test_cancelled_document_rejects_payment(self):
        BusinessDocument.objects.filter(pk=self.sale.pk).update(status=BusinessDocument.STATUS_CANCELLED)

        with self.assertRaises(InvalidTransitionError):
            self.tracker.apply_payment(self.sale.pk, "10", self.cash.pk)

    def test_unknown_document(self):
        with self.assertRaises(DocumentNotFoundError):
            self.tracker.apply_payment(uuid.uuid4(), "10", self.cash.pk)
        with self.assertRaises(DocumentNotFoundError):
            self.tracker.apply_payment("garbage", "10", self.cash.pk)
