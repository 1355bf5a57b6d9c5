# accounting/tests/test_journal_engine.py

from datetime import date
from decimal import Decimal

from django.test import TestCase

from accounting.models import Account, JournalEntry, JournalLine
from accounting.services.exceptions import (
    AlreadyReversedError,
    EmptyEntryError,
    EntryLockedError,
    EntryNotFoundError,
    ErrorKind,
    IdempotencyError,
    InactiveAccountError,
    InvalidAmountError,
    InvalidInputError,
    UnbalancedEntryError,
    UnknownAccountError,
    ZeroAmountLineError,
)
from accounting.services.journal_entry_service import JournalPostingEngine, LineSpec
from accounting.services.ledger_store import LedgerStore


class JournalEngineTestBase(TestCase):
    def setUp(self):
        self.store = LedgerStore()
        self.engine = JournalPostingEngine(ledger=self.store)

        self.cash = self.store.create_account(code="1000", name="Cash", account_type=Account.ASSET)
        self.bank = self.store.create_account(code="1100", name="Bank", account_type=Account.ASSET)
        self.revenue = self.store.create_account(
            code="4000", name="Sales Revenue", account_type=Account.REVENUE
        )
        self.expense = self.store.create_account(
            code="5000", name="Operating Expenses", account_type=Account.EXPENSE
        )

    def balance(self, account):
        account.refresh_from_db()
        return account.balance


class PostingTests(JournalEngineTestBase):
    # ======================================================
    # HAPPY PATH
    # ======================================================

    def test_cash_sale_updates_both_balances(self):
        entry = self.engine.post(
            [LineSpec.debit(self.cash.pk, "500"), LineSpec.credit(self.revenue.pk, "500")],
            memo="Cash sale",
        )

        self.assertEqual(self.balance(self.cash), Decimal("500.00"))
        self.assertEqual(self.balance(self.revenue), Decimal("500.00"))
        self.assertEqual(entry.total_debits, entry.total_credits)
        self.assertEqual(entry.lines.count(), 2)

    def test_entry_numbers_are_sequential(self):
        lines = [LineSpec.debit(self.cash.pk, "10"), LineSpec.credit(self.revenue.pk, "10")]

        first = self.engine.post(lines)
        second = self.engine.post(lines)

        self.assertEqual(first.entry_number, "JE-0001")
        self.assertEqual(second.entry_number, "JE-0002")

    def test_lines_keep_their_order(self):
        entry = self.engine.post(
            [
                LineSpec.debit(self.expense.pk, "30", "rent"),
                LineSpec.debit(self.cash.pk, "70", "change"),
                LineSpec.credit(self.bank.pk, "100", "transfer"),
            ]
        )

        memos = list(entry.lines.order_by("position").values_list("memo", flat=True))
        self.assertEqual(memos, ["rent", "change", "transfer"])

    def test_amounts_are_rounded_to_cents(self):
        entry = self.engine.post(
            [LineSpec.debit(self.cash.pk, "10.005"), LineSpec.credit(self.revenue.pk, "10.01")]
        )

        amounts = set(entry.lines.values_list("amount", flat=True))
        self.assertEqual(amounts, {Decimal("10.01")})

    def test_posting_date_and_source_are_stored(self):
        entry = self.engine.post(
            [LineSpec.debit(self.cash.pk, "1"), LineSpec.credit(self.revenue.pk, "1")],
            posting_date=date(2024, 1, 31),
            source_type="SALE",
            source_id="INV-AR-00001",
        )

        self.assertEqual(entry.posting_date, date(2024, 1, 31))
        self.assertTrue(entry.is_locked)

    # ======================================================
    # REJECTIONS (no state touched)
    # ======================================================

    def assertNothingPosted(self):
        self.assertEqual(JournalEntry.objects.count(), 0)
        self.assertEqual(JournalLine.objects.count(), 0)
        self.assertEqual(self.balance(self.cash), Decimal("0.00"))
        self.assertEqual(self.balance(self.revenue), Decimal("0.00"))

    def test_empty_entry(self):
        with self.assertRaises(EmptyEntryError):
            self.engine.post([])
        self.assertNothingPosted()

    def test_unbalanced_entry(self):
        with self.assertRaises(UnbalancedEntryError) as ctx:
            self.engine.post(
                [LineSpec.debit(self.cash.pk, "100"), LineSpec.credit(self.revenue.pk, "99.99")]
            )

        self.assertEqual(ctx.exception.debits, Decimal("100.00"))
        self.assertEqual(ctx.exception.credits, Decimal("99.99"))
        self.assertNothingPosted()

    def test_single_line_is_unbalanced(self):
        with self.assertRaises(UnbalancedEntryError):
            self.engine.post([LineSpec.debit(self.cash.pk, "100")])
        self.assertNothingPosted()

    def test_zero_amount_line(self):
        with self.assertRaises(ZeroAmountLineError) as ctx:
            self.engine.post(
                [
                    LineSpec.debit(self.cash.pk, "0"),
                    LineSpec.debit(self.cash.pk, "10"),
                    LineSpec.credit(self.revenue.pk, "10"),
                ]
            )

        self.assertEqual(ctx.exception.position, 1)
        self.assertNothingPosted()

    def test_negative_amount_line(self):
        with self.assertRaises(ZeroAmountLineError):
            self.engine.post(
                [LineSpec.debit(self.cash.pk, "-5"), LineSpec.credit(self.revenue.pk, "-5")]
            )
        self.assertNothingPosted()

    def test_non_numeric_amount(self):
        with self.assertRaises(InvalidAmountError):
            self.engine.post(
                [LineSpec.debit(self.cash.pk, "ten"), LineSpec.credit(self.revenue.pk, "10")]
            )
        self.assertNothingPosted()

    def test_unknown_side(self):
        with self.assertRaises(InvalidInputError):
            self.engine.post(
                [LineSpec(self.cash.pk, "LEFT", Decimal("1")), LineSpec.credit(self.revenue.pk, "1")]
            )
        self.assertNothingPosted()

    def test_unknown_account(self):
        with self.assertRaises(UnknownAccountError):
            self.engine.post([LineSpec.debit(424242, "1"), LineSpec.credit(self.revenue.pk, "1")])
        self.assertNothingPosted()

    def test_inactive_account(self):
        self.store.deactivate_account(self.bank.pk)

        with self.assertRaises(InactiveAccountError) as ctx:
            self.engine.post([LineSpec.debit(self.bank.pk, "1"), LineSpec.credit(self.revenue.pk, "1")])

        self.assertEqual(ctx.exception.kind, ErrorKind.INACTIVE_ACCOUNT)
        self.assertNothingPosted()

    # ======================================================
    # IDEMPOTENCY
    # ======================================================

    def test_duplicate_reference_rejected(self):
        lines = [LineSpec.debit(self.cash.pk, "25"), LineSpec.credit(self.revenue.pk, "25")]
        self.engine.post(lines, reference="POS:42")

        with self.assertRaises(IdempotencyError) as ctx:
            self.engine.post(lines, reference=" POS:42 ")

        self.assertEqual(ctx.exception.reference, "POS:42")
        self.assertEqual(JournalEntry.objects.count(), 1)
        self.assertEqual(self.balance(self.cash), Decimal("25.00"))

    def test_blank_reference_is_not_unique(self):
        lines = [LineSpec.debit(self.cash.pk, "1"), LineSpec.credit(self.revenue.pk, "1")]
        self.engine.post(lines, reference="")
        self.engine.post(lines, reference="   ")

        self.assertEqual(JournalEntry.objects.filter(reference__isnull=True).count(), 2)


class ReversalTests(JournalEngineTestBase):
    def test_reversal_nets_to_zero(self):
        entry = self.engine.post(
            [LineSpec.debit(self.cash.pk, "500"), LineSpec.credit(self.revenue.pk, "500")]
        )

        reversal = self.engine.reverse(entry.pk)

        self.assertEqual(self.balance(self.cash), Decimal("0.00"))
        self.assertEqual(self.balance(self.revenue), Decimal("0.00"))
        self.assertEqual(reversal.reversal_of_id, entry.pk)
        self.assertEqual(reversal.reference, f"REVERSAL:{entry.entry_number}")
        self.assertEqual(
            list(reversal.lines.order_by("position").values_list("side", flat=True)),
            ["CREDIT", "DEBIT"],
        )

    def test_second_reversal_rejected(self):
        entry = self.engine.post(
            [LineSpec.debit(self.cash.pk, "10"), LineSpec.credit(self.revenue.pk, "10")]
        )
        self.engine.reverse(entry.pk)

        with self.assertRaises(AlreadyReversedError):
            self.engine.reverse(entry.pk)

        self.assertEqual(JournalEntry.objects.count(), 2)
        self.assertEqual(self.balance(self.cash), Decimal("0.00"))

    def test_reverse_missing_entry(self):
        with self.assertRaises(EntryNotFoundError):
            self.engine.reverse(987654)


class EditTests(JournalEngineTestBase):
    def setUp(self):
        super().setUp()
        self.entry = self.engine.post(
            [LineSpec.debit(self.expense.pk, "40"), LineSpec.credit(self.cash.pk, "40")],
            memo="Stationery",
        )

    def test_update_replaces_lines_and_balances(self):
        self.engine.update_entry(
            self.entry.pk,
            [LineSpec.debit(self.expense.pk, "45"), LineSpec.credit(self.bank.pk, "45")],
            memo="Stationery (corrected)",
        )

        self.entry.refresh_from_db()
        self.assertEqual(self.entry.memo, "Stationery (corrected)")
        self.assertEqual(self.balance(self.expense), Decimal("45.00"))
        self.assertEqual(self.balance(self.cash), Decimal("0.00"))
        self.assertEqual(self.balance(self.bank), Decimal("-45.00"))
        self.assertEqual(self.entry.lines.count(), 2)

    def test_update_with_unbalanced_lines_keeps_original(self):
        with self.assertRaises(UnbalancedEntryError):
            self.engine.update_entry(
                self.entry.pk,
                [LineSpec.debit(self.expense.pk, "45"), LineSpec.credit(self.bank.pk, "44")],
            )

        self.assertEqual(self.balance(self.expense), Decimal("40.00"))
        self.assertEqual(self.balance(self.cash), Decimal("-40.00"))

    def test_delete_unapplies_balances(self):
        number = self.engine.delete_entry(self.entry.pk)

        self.assertEqual(number, self.entry.entry_number)
        self.assertFalse(JournalEntry.objects.filter(pk=self.entry.pk).exists())
        self.assertEqual(self.balance(self.expense), Decimal("0.00"))
        self.assertEqual(self.balance(self.cash), Decimal("0.00"))

    def test_reversed_entry_is_locked(self):
        reversal = self.engine.reverse(self.entry.pk)

        with self.assertRaises(EntryLockedError):
            self.engine.delete_entry(self.entry.pk)
        with self.assertRaises(EntryLockedError):
            self.engine.delete_entry(reversal.pk)
        with self.assertRaises(EntryLockedError):
            self.engine.update_entry(
                self.entry.pk,
                [LineSpec.debit(self.expense.pk, "1"), LineSpec.credit(self.cash.pk, "1")],
            )

    def test_document_entry_is_locked(self):
        entry = self.engine.post(
            [LineSpec.debit(self.cash.pk, "5"), LineSpec.credit(self.revenue.pk, "5")],
            source_type="SALE",
            source_id="INV-AR-00009",
        )

        with self.assertRaises(EntryLockedError):
            self.engine.delete_entry(entry.pk)


class QueryTests(JournalEngineTestBase):
    def test_list_entries_filters(self):
        self.engine.post(
            [LineSpec.debit(self.cash.pk, "5"), LineSpec.credit(self.revenue.pk, "5")],
            posting_date=date(2024, 1, 10),
            memo="January sale",
        )
        self.engine.post(
            [LineSpec.debit(self.expense.pk, "5"), LineSpec.credit(self.bank.pk, "5")],
            posting_date=date(2024, 2, 10),
            memo="February rent",
        )

        self.assertEqual(self.engine.list_entries(account_id=self.cash.pk).count(), 1)
        self.assertEqual(self.engine.list_entries(date_from=date(2024, 2, 1)).count(), 1)
        self.assertEqual(self.engine.list_entries(date_to=date(2024, 1, 31)).count(), 1)
        self.assertEqual(self.engine.search("rent").count(), 1)
        self.assertEqual(self.engine.search("JE-0001").count(), 1)

    def test_get_missing_entry(self):
        with self.assertRaises(EntryNotFoundError):
            self.engine.get_entry(123456)
