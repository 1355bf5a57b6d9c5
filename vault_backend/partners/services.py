# partners/services.py

"""
BUSINESS PARTNER SERVICES

- create_partner(): CUS0001 / VEN0001 / BP0001 style codes
- adjust_balance(): additive balance updates (F-expression, race-safe)
- adjust_for_document(): signed update (receivables +, payables -)
- reconcile_partner_balance(): recompute from open documents
- receivable/payable account resolution (partner override or chart default)
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Case, DecimalField, F, Q, Sum, When
from django.utils import timezone

from accounting.models.account import Account
from accounting.services import account_resolver, sequences
from accounting.services.exceptions import (
    DuplicateCodeError,
    InvalidInputError,
    PartnerNotFoundError,
)
from accounting.services.money import ZERO, money
from partners.models import BusinessPartner

logger = logging.getLogger(__name__)


def _next_partner_code(partner_type: str) -> str:
    prefix = BusinessPartner.CODE_PREFIXES[partner_type]
    value = sequences.next_value(f"partner:{prefix}")
    return sequences.format_number(prefix, value, width=4, separator="")


@transaction.atomic
def create_partner(
    *,
    name: str,
    partner_type: str,
    partner_code: str | None = None,
    account: Account | None = None,
    email: str = "",
    phone: str = "",
    address: str = "",
    credit_limit=None,
    payment_terms_days: int | None = None,
    notes: str = "",
) -> BusinessPartner:
    if partner_type not in BusinessPartner.CODE_PREFIXES:
        raise InvalidInputError(field="partner_type", message=f"Unknown partner type '{partner_type}'")
    if not (name or "").strip():
        raise InvalidInputError(field="name", message="is required")

    code = (partner_code or "").strip() or _next_partner_code(partner_type)
    if BusinessPartner.objects.filter(partner_code=code).exists():
        raise DuplicateCodeError(code=code)

    try:
        with transaction.atomic():
            partner = BusinessPartner.objects.create(
                partner_code=code,
                name=name,
                partner_type=partner_type,
                account=account,
                email=email or "",
                phone=phone or "",
                address=address or "",
                credit_limit=money(credit_limit) if credit_limit not in (None, "") else None,
                payment_terms_days=payment_terms_days,
                notes=notes or "",
            )
    except IntegrityError as exc:
        raise DuplicateCodeError(code=code) from exc
    except DjangoValidationError as exc:
        raise InvalidInputError(field="partner", message="; ".join(exc.messages)) from exc

    logger.info(
        "Business partner created",
        extra={"partner_id": str(partner.pk), "partner_code": code, "partner_type": partner_type},
    )
    return partner


def get_partner(partner_id, *, for_update: bool = False) -> BusinessPartner:
    qs = BusinessPartner.objects.all()
    if for_update:
        qs = qs.select_for_update()
    try:
        partner = qs.filter(pk=partner_id).first()
    except (ValueError, TypeError, DjangoValidationError):
        partner = None
    if partner is None:
        raise PartnerNotFoundError(partner_id=partner_id)
    return partner


def adjust_balance(partner_id, delta, *, transaction_date=None) -> None:
    amount = money(delta)
    updated = BusinessPartner.objects.filter(pk=partner_id).update(
        balance=F("balance") + amount,
        last_transaction_date=transaction_date or timezone.localdate(),
        updated_at=timezone.now(),
    )
    if updated != 1:
        raise PartnerNotFoundError(partner_id=partner_id)


def adjust_for_document(document, open_delta, *, transaction_date=None) -> None:
    """
    Move the partner balance by a change in one document's open amount.

    The balance is what the partner owes us: sales count positive,
    purchases negative, so a customer-and-vendor nets both sides.
    """
    amount = money(open_delta)
    adjust_balance(
        document.partner_id,
        amount if document.is_sale else -amount,
        transaction_date=transaction_date,
    )


@transaction.atomic
def reconcile_partner_balance(partner_id) -> Decimal:
    """Reset the stored balance to the signed sum of open (non-cancelled) document balances."""
    from documents.models import BusinessDocument

    partner = get_partner(partner_id, for_update=True)
    signed_open = Case(
        When(kind=BusinessDocument.KIND_SALE, then=F("total_amount") - F("paid_amount")),
        default=F("paid_amount") - F("total_amount"),
        output_field=DecimalField(max_digits=14, decimal_places=2),
    )
    totals = (
        BusinessDocument.objects.filter(partner=partner)
        .exclude(status=BusinessDocument.STATUS_CANCELLED)
        .aggregate(open=Sum(signed_open))
    )
    expected = money(totals["open"] or ZERO)

    if expected != money(partner.balance):
        logger.warning(
            "Partner balance drift corrected",
            extra={"partner_id": str(partner.pk), "stored": str(partner.balance), "expected": str(expected)},
        )
        BusinessPartner.objects.filter(pk=partner.pk).update(balance=expected)
    return expected


def search(text: str, *, partner_type: str | None = None):
    term = (text or "").strip()
    qs = BusinessPartner.objects.all()
    if partner_type:
        qs = qs.filter(Q(partner_type=partner_type) | Q(partner_type=BusinessPartner.BOTH))
    if term:
        qs = qs.filter(
            Q(partner_code__icontains=term)
            | Q(name__icontains=term)
            | Q(email__icontains=term)
            | Q(phone__icontains=term)
        )
    return qs.order_by("name")


def receivable_account_for(partner: BusinessPartner) -> Account:
    if partner.account_id and partner.account.account_type == Account.ASSET:
        return partner.account
    return account_resolver.get_receivable_account()


def payable_account_for(partner: BusinessPartner) -> Account:
    if partner.account_id and partner.account.account_type == Account.LIABILITY:
        return partner.account
    return account_resolver.get_payable_account()
