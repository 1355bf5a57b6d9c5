"""
DOCUMENT LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed status transitions
for sales and purchase documents.

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
- Single source of truth
"""

from accounting.services.exceptions import InvalidTransitionError
from accounting.services.money import ZERO, is_zero, money
from documents.models import BusinessDocument as Doc

# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Doc.STATUS_PAID,
    Doc.STATUS_CANCELLED,
}

# Manual (non-payment) transitions. CANCELLED is handled separately.
MANUAL_TRANSITIONS = {
    Doc.KIND_SALE: {
        Doc.STATUS_DRAFT: {Doc.STATUS_PENDING, Doc.STATUS_CONFIRMED},
        Doc.STATUS_PENDING: {Doc.STATUS_CONFIRMED},
        Doc.STATUS_CONFIRMED: {Doc.STATUS_SHIPPED},
    },
    Doc.KIND_PURCHASE: {
        Doc.STATUS_DRAFT: {Doc.STATUS_ORDERED},
        Doc.STATUS_ORDERED: {Doc.STATUS_RECEIVED},
    },
}

PAYMENT_STATES = {
    Doc.STATUS_PARTIALLY_PAID,
    Doc.STATUS_PAID,
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, kind: str, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    if to_status == Doc.STATUS_CANCELLED:
        return True

    if to_status in PAYMENT_STATES:
        return True

    return to_status in MANUAL_TRANSITIONS.get(kind, {}).get(from_status, set())


def validate_transition(*, document: Doc, target_status: str) -> None:
    if not can_transition(
        kind=document.kind,
        from_status=document.status,
        to_status=target_status,
    ):
        raise InvalidTransitionError(
            document_id=str(document.pk),
            from_status=document.status,
            to_status=target_status,
        )


def can_accept_payment(document: Doc) -> bool:
    return document.status not in TERMINAL_STATES


def status_after_payment(*, document: Doc, new_paid_amount) -> str:
    paid = money(new_paid_amount)
    if is_zero(money(document.total_amount) - paid):
        return Doc.STATUS_PAID
    if paid > ZERO:
        return Doc.STATUS_PARTIALLY_PAID
    return document.status


def manual_targets(document: Doc) -> set[str]:
    if document.status in TERMINAL_STATES:
        return set()
    return set(MANUAL_TRANSITIONS.get(document.kind, {}).get(document.status, set()))
