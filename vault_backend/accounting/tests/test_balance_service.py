# accounting/tests/test_balance_service.py

from decimal import Decimal

from django.test import TestCase

from accounting.models import Account
from accounting.services import balance_service
from accounting.services.journal_entry_service import JournalPostingEngine, LineSpec
from accounting.services.ledger_store import LedgerStore
from accounting.services.money import exceeds, is_zero, money


class MoneyTests(TestCase):
    def test_money_rounds_half_up(self):
        self.assertEqual(money("0.005"), Decimal("0.01"))
        self.assertEqual(money("2.675"), Decimal("2.68"))
        self.assertEqual(money(None), Decimal("0.00"))

    def test_epsilon_helpers(self):
        self.assertTrue(is_zero("0.004"))
        self.assertFalse(is_zero("0.01"))
        self.assertTrue(exceeds("100.01", "100"))
        self.assertFalse(exceeds("100.004", "100"))


class TrialBalanceTests(TestCase):
    def setUp(self):
        self.store = LedgerStore()
        self.engine = JournalPostingEngine(ledger=self.store)
        self.cash = self.store.create_account(code="1000", name="Cash", account_type=Account.ASSET)
        self.payable = self.store.create_account(
            code="2000", name="Accounts Payable", account_type=Account.LIABILITY
        )
        self.revenue = self.store.create_account(
            code="4000", name="Sales Revenue", account_type=Account.REVENUE
        )
        self.expense = self.store.create_account(
            code="5000", name="Operating Expenses", account_type=Account.EXPENSE
        )

        self.engine.post([LineSpec.debit(self.cash.pk, "300"), LineSpec.credit(self.revenue.pk, "300")])
        self.engine.post([LineSpec.debit(self.expense.pk, "120"), LineSpec.credit(self.payable.pk, "120")])
        self.engine.post([LineSpec.debit(self.payable.pk, "50"), LineSpec.credit(self.cash.pk, "50")])

    def test_trial_balance_is_balanced(self):
        report = balance_service.trial_balance()

        self.assertTrue(report["is_balanced"])
        self.assertEqual(report["total_debit"], Decimal("370.00"))
        self.assertEqual(report["total_credit"], Decimal("370.00"))
        self.assertEqual([row["code"] for row in report["rows"]], ["1000", "2000", "4000", "5000"])

    def test_negative_balance_moves_column(self):
        self.engine.post([LineSpec.debit(self.payable.pk, "100"), LineSpec.credit(self.cash.pk, "100")])

        rows = {row["code"]: row for row in balance_service.trial_balance()["rows"]}
        # payable overdrawn: 120 - 150 = -30 shows as a debit
        self.assertEqual(rows["2000"]["debit"], Decimal("30.00"))
        self.assertEqual(rows["2000"]["credit"], Decimal("0.00"))

    def test_include_zero(self):
        self.store.create_account(code="3000", name="Owner's Capital", account_type=Account.EQUITY)

        self.assertEqual(len(balance_service.trial_balance()["rows"]), 4)
        self.assertEqual(len(balance_service.trial_balance(include_zero=True)["rows"]), 5)

    def test_ledger_balance_matches_stored_balance(self):
        self.cash.refresh_from_db()
        self.assertEqual(balance_service.ledger_balance(self.cash), self.cash.balance)
        self.assertEqual(balance_service.reconcile_accounts(), [])

    def test_reconcile_detects_drift(self):
        Account.objects.filter(pk=self.cash.pk).update(balance=Decimal("999.00"))

        mismatches = balance_service.reconcile_accounts()

        self.assertEqual(len(mismatches), 1)
        self.assertEqual(mismatches[0]["code"], "1000")
        self.assertEqual(mismatches[0]["from_lines"], Decimal("250.00"))

    def test_totals_by_category(self):
        totals = balance_service.totals_by_category()

        self.assertEqual(totals[Account.ASSET], Decimal("250.00"))
        self.assertEqual(totals[Account.LIABILITY], Decimal("70.00"))
        self.assertEqual(totals[Account.REVENUE], Decimal("300.00"))
        self.assertEqual(totals[Account.EQUITY], Decimal("0.00"))
