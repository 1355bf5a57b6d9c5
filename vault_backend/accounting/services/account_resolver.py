# accounting/services/account_resolver.py

"""
PATH: accounting/services/account_resolver.py

ACCOUNT RESOLVER (AUTHORITATIVE)

This module answers ONE question:
"Which account should be used for this purpose?"

Semantic roles map to account codes. The defaults follow the standard
chart (see ledger_store.DEFAULT_CHART); a deployment may remap any role
with settings.ACCOUNTING_ACCOUNT_CODES = {"CASH": "1010", ...}.

Hard-fails on missing setup so we never post to the wrong account.
"""

from __future__ import annotations

from django.conf import settings

from accounting.models.account import Account
from accounting.services.exceptions import InactiveAccountError, UnknownAccountError

CASH = "CASH"
BANK = "BANK"
AR = "AR"
AP = "AP"
INVENTORY = "INVENTORY"
INPUT_TAX = "INPUT_TAX"
OUTPUT_TAX = "OUTPUT_TAX"
SALES_REVENUE = "SALES_REVENUE"
OWNER_EQUITY = "OWNER_EQUITY"
COGS = "COGS"

DEFAULT_CODES = {
    CASH: "1001",
    AR: "1002",
    INVENTORY: "1003",
    BANK: "1004",
    INPUT_TAX: "1005",
    AP: "2001",
    OUTPUT_TAX: "2003",
    OWNER_EQUITY: "3001",
    SALES_REVENUE: "4001",
    COGS: "6001",
}


def code_for(role: str) -> str:
    overrides = getattr(settings, "ACCOUNTING_ACCOUNT_CODES", None) or {}
    code = overrides.get(role) or DEFAULT_CODES.get(role)
    if not code:
        raise UnknownAccountError(
            f"No account code configured for role '{role}'",
            account_id=role,
        )
    return code


def resolve_account(role: str) -> Account:
    code = code_for(role)
    account = Account.objects.filter(code=code).first()
    if account is None:
        raise UnknownAccountError(
            f"Account {code} for role '{role}' does not exist (initialize the chart first)",
            account_id=code,
        )
    if not account.is_active:
        raise InactiveAccountError(account_id=account.pk, code=account.code)
    return account


def get_cash_account() -> Account:
    return resolve_account(CASH)


def get_receivable_account() -> Account:
    return resolve_account(AR)


def get_payable_account() -> Account:
    return resolve_account(AP)


def get_inventory_account() -> Account:
    return resolve_account(INVENTORY)


def get_cogs_account() -> Account:
    return resolve_account(COGS)


def get_sales_revenue_account() -> Account:
    return resolve_account(SALES_REVENUE)


def get_output_tax_account() -> Account:
    return resolve_account(OUTPUT_TAX)


def get_input_tax_account() -> Account:
    return resolve_account(INPUT_TAX)


def get_owner_equity_account() -> Account:
    return resolve_account(OWNER_EQUITY)
