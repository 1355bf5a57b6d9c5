# accounting/services/ledger_store.py

"""
======================================================
PATH: accounting/services/ledger_store.py
======================================================
LEDGER STORE

Owns the chart of accounts and the running balance of every account.

RULES:
- Balances change ONLY through post_balance_delta()
- Every balance write is a compare-and-swap on Account.version;
  a lost race raises ConflictError (the caller's unit is retried)
- Inactive accounts never receive postings
- Accounts can be deactivated/deleted only at a zero balance
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import F, ProtectedError, Q
from django.utils import timezone

from accounting.models.account import CREDIT, DEBIT, Account
from accounting.services.exceptions import (
    AccountHasBalanceError,
    AccountInUseError,
    ConflictError,
    DuplicateCodeError,
    InactiveAccountError,
    InvalidInputError,
    UnknownAccountError,
)
from accounting.services.money import is_zero, money

logger = logging.getLogger(__name__)

# (code, name, account_type, subtype)
DEFAULT_CHART = [
    ("1001", "Cash", Account.ASSET, "Cash"),
    ("1002", "Accounts Receivable", Account.ASSET, "Receivables"),
    ("1003", "Inventory", Account.ASSET, "Inventory"),
    ("1004", "Bank", Account.ASSET, "Cash"),
    ("1005", "Input Tax Receivable", Account.ASSET, "Tax"),
    ("2001", "Accounts Payable", Account.LIABILITY, "Payables"),
    ("2002", "Short-term Loans", Account.LIABILITY, "Loans"),
    ("2003", "Sales Tax Payable", Account.LIABILITY, "Tax"),
    ("3001", "Owner's Capital", Account.EQUITY, "Capital"),
    ("3002", "Retained Earnings", Account.EQUITY, "Retained Earnings"),
    ("4001", "Sales Revenue", Account.REVENUE, "Sales"),
    ("4002", "Service Revenue", Account.REVENUE, "Services"),
    ("5001", "Operating Expenses", Account.EXPENSE, "Operating"),
    ("5002", "Salaries & Wages", Account.EXPENSE, "Payroll"),
    ("6001", "Cost of Goods Sold", Account.COGS, "COGS"),
]


def _validation_message(exc: DjangoValidationError) -> str:
    return "; ".join(exc.messages) or "invalid value"


class LedgerStore:
    """Chart-of-accounts storage plus optimistic balance updates."""

    # ------------------------------------------------------------
    # Creation / lookup
    # ------------------------------------------------------------

    def create_account(
        self,
        *,
        code: str,
        name: str,
        account_type: str,
        subtype: str = "",
        description: str = "",
    ) -> Account:
        code = (code or "").strip()
        name = (name or "").strip()

        if not code:
            raise InvalidInputError(field="code", message="Account code is required")
        if not name:
            raise InvalidInputError(field="name", message="Account name is required")
        if account_type not in Account.NORMAL_SIDES:
            raise InvalidInputError(
                field="account_type",
                message=f"Unknown account type '{account_type}'",
            )
        if Account.objects.filter(code=code).exists():
            raise DuplicateCodeError(code=code)

        try:
            with transaction.atomic():
                account = Account.objects.create(
                    code=code,
                    name=name,
                    account_type=account_type,
                    subtype=(subtype or "").strip(),
                    description=description or "",
                )
        except IntegrityError as exc:
            raise DuplicateCodeError(code=code) from exc
        except DjangoValidationError as exc:
            raise InvalidInputError(field="account", message=_validation_message(exc)) from exc

        logger.info(
            "Account created",
            extra={"account_id": account.pk, "code": code, "account_type": account_type},
        )
        return account

    def get_account(self, account_id) -> Account:
        account = Account.objects.filter(pk=account_id).first()
        if account is None:
            raise UnknownAccountError(account_id=account_id)
        return account

    def get_balance(self, account_id) -> Decimal:
        return money(self.get_account(account_id).balance)

    def get_by_code(self, code: str) -> Account:
        account = Account.objects.filter(code=(code or "").strip()).first()
        if account is None:
            raise UnknownAccountError(account_id=code)
        return account

    def lock_accounts(self, account_ids: Iterable) -> dict:
        """
        Row-lock accounts in primary-key order (deadlock-safe).
        Must run inside an atomic block.
        """
        ids = sorted({int(a) for a in account_ids})
        rows = {a.pk: a for a in Account.objects.select_for_update().filter(pk__in=ids).order_by("pk")}
        for account_id in ids:
            if account_id not in rows:
                raise UnknownAccountError(account_id=account_id)
        return rows

    def list_by_category(self, category: str, *, include_inactive: bool = False):
        if category not in Account.NORMAL_SIDES:
            raise InvalidInputError(field="category", message=f"Unknown category '{category}'")
        qs = Account.objects.filter(account_type=category)
        if not include_inactive:
            qs = qs.filter(is_active=True)
        return qs.order_by("code")

    def search(self, text: str):
        term = (text or "").strip()
        qs = Account.objects.all()
        if term:
            qs = qs.filter(Q(code__icontains=term) | Q(name__icontains=term))
        return qs.order_by("code")

    # ------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------

    @staticmethod
    def signed_delta(account: Account, side: str, amount) -> Decimal:
        """Positive when `side` matches the account's normal side."""
        if side not in (DEBIT, CREDIT):
            raise InvalidInputError(field="side", message=f"Unknown side '{side}'")
        amt = money(amount)
        return amt if side == account.normal_side else -amt

    @transaction.atomic
    def post_balance_delta(self, account_id, signed_amount) -> Decimal:
        amount = money(signed_amount)

        account = Account.objects.select_for_update().filter(pk=account_id).first()
        if account is None:
            raise UnknownAccountError(account_id=account_id)
        if not account.is_active:
            raise InactiveAccountError(account_id=account.pk, code=account.code)

        new_balance = money(account.balance + amount)
        updated = Account.objects.filter(pk=account.pk, version=account.version).update(
            balance=new_balance,
            version=F("version") + 1,
            updated_at=timezone.now(),
        )
        if updated != 1:
            raise ConflictError(resource="account", resource_id=account.pk)

        logger.debug(
            "Balance delta posted",
            extra={"account_id": account.pk, "delta": str(amount), "balance": str(new_balance)},
        )
        return new_balance

    # ------------------------------------------------------------
    # Status
    # ------------------------------------------------------------

    def _set_active(self, account_id, active: bool) -> Account:
        account = Account.objects.select_for_update().filter(pk=account_id).first()
        if account is None:
            raise UnknownAccountError(account_id=account_id)

        if not active and not is_zero(account.balance):
            raise AccountHasBalanceError(account_id=account.pk, balance=account.balance)

        updated = Account.objects.filter(pk=account.pk, version=account.version).update(
            is_active=active,
            version=F("version") + 1,
            updated_at=timezone.now(),
        )
        if updated != 1:
            raise ConflictError(resource="account", resource_id=account.pk)

        account.refresh_from_db()
        return account

    @transaction.atomic
    def deactivate_account(self, account_id) -> Account:
        account = self._set_active(account_id, False)
        logger.info("Account deactivated", extra={"account_id": account.pk, "code": account.code})
        return account

    @transaction.atomic
    def reactivate_account(self, account_id) -> Account:
        return self._set_active(account_id, True)

    @transaction.atomic
    def delete_account(self, account_id) -> str:
        account = Account.objects.select_for_update().filter(pk=account_id).first()
        if account is None:
            raise UnknownAccountError(account_id=account_id)
        if not is_zero(account.balance):
            raise AccountHasBalanceError(account_id=account.pk, balance=account.balance)
        if account.journal_lines.exists():
            raise AccountInUseError(account_id=account.pk)

        code = account.code
        try:
            with transaction.atomic():
                account.delete()
        except ProtectedError as exc:
            raise AccountInUseError(account_id=account_id) from exc

        logger.info("Account deleted", extra={"account_id": account_id, "code": code})
        return code

    # ------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------

    @transaction.atomic
    def initialize_default_chart(self) -> list[Account]:
        """Create the standard chart; existing codes are left untouched."""
        accounts = []
        for code, name, account_type, subtype in DEFAULT_CHART:
            account = Account.objects.filter(code=code).first()
            if account is None:
                account = self.create_account(
                    code=code, name=name, account_type=account_type, subtype=subtype
                )
            accounts.append(account)
        return accounts
