# accounting/services/balance_service.py

"""
BALANCE & REPORTING SERVICE (AUTHORITATIVE)

Read-only ledger aggregation helpers.

RULES:
- READ-ONLY: no writes, ever
- JournalLine rows are the audit trail; Account.balance is the running total
- reconcile_accounts() proves the two agree
"""

from __future__ import annotations

from decimal import Decimal

from django.db.models import Sum
from django.db.models.functions import Coalesce

from accounting.models.account import CREDIT, DEBIT, Account
from accounting.models.ledger import JournalLine
from accounting.services.money import ZERO, is_zero, money

_DECIMAL_ZERO = Decimal("0.00")


def _side_totals(account: Account, *, as_of=None) -> tuple[Decimal, Decimal]:
    qs = JournalLine.objects.filter(account=account)
    if as_of is not None:
        qs = qs.filter(journal_entry__posting_date__lte=as_of)

    debit = qs.filter(side=DEBIT).aggregate(total=Coalesce(Sum("amount"), _DECIMAL_ZERO))["total"]
    credit = qs.filter(side=CREDIT).aggregate(total=Coalesce(Sum("amount"), _DECIMAL_ZERO))["total"]
    return money(debit), money(credit)


def ledger_balance(account: Account, *, as_of=None) -> Decimal:
    """Balance recomputed from journal lines, in the account's normal direction."""
    debit, credit = _side_totals(account, as_of=as_of)
    if account.normal_side == DEBIT:
        return money(debit - credit)
    return money(credit - debit)


def reconcile_accounts() -> list[dict]:
    """Accounts whose stored balance differs from their journal lines."""
    mismatches = []
    for account in Account.objects.order_by("code"):
        expected = ledger_balance(account)
        if not is_zero(expected - account.balance):
            mismatches.append(
                {
                    "account_id": account.pk,
                    "code": account.code,
                    "stored": money(account.balance),
                    "from_lines": expected,
                }
            )
    return mismatches


def trial_balance(*, include_zero: bool = False) -> dict:
    rows = []
    total_debit = ZERO
    total_credit = ZERO

    for account in Account.objects.order_by("code"):
        balance = money(account.balance)
        if is_zero(balance) and not include_zero:
            continue

        # a negative balance shows on the opposite column
        on_debit = (account.normal_side == DEBIT) == (balance >= ZERO)
        amount = abs(balance)
        debit = amount if on_debit else ZERO
        credit = ZERO if on_debit else amount

        total_debit += debit
        total_credit += credit
        rows.append(
            {
                "account_id": account.pk,
                "code": account.code,
                "name": account.name,
                "account_type": account.account_type,
                "debit": debit,
                "credit": credit,
            }
        )

    return {
        "rows": rows,
        "total_debit": money(total_debit),
        "total_credit": money(total_credit),
        "is_balanced": is_zero(total_debit - total_credit),
    }


def totals_by_category(*, include_inactive: bool = True) -> dict[str, Decimal]:
    totals = {account_type: ZERO for account_type, _label in Account.ACCOUNT_TYPES}
    qs = Account.objects.all()
    if not include_inactive:
        qs = qs.filter(is_active=True)
    for row in qs.values("account_type").annotate(total=Sum("balance")):
        totals[row["account_type"]] = money(row["total"])
    return totals
