# documents/services/queries.py

from __future__ import annotations

from django.db.models import F, Q

from accounting.services.exceptions import InvalidInputError
from documents.models import BusinessDocument

_KINDS = {BusinessDocument.KIND_SALE, BusinessDocument.KIND_PURCHASE}
_STATUSES = {value for value, _label in BusinessDocument.STATUS_CHOICES}


def _base(kind: str | None = None):
    qs = BusinessDocument.objects.select_related("partner")
    if kind is not None:
        if kind not in _KINDS:
            raise InvalidInputError(field="kind", message=f"Unknown document kind '{kind}'")
        qs = qs.filter(kind=kind)
    return qs


def list_by_status(status: str, *, kind: str | None = None):
    if status not in _STATUSES:
        raise InvalidInputError(field="status", message=f"Unknown status '{status}'")
    return _base(kind).filter(status=status)


def list_for_partner(partner_id, *, kind: str | None = None):
    return _base(kind).filter(partner_id=partner_id)


def search(text: str, *, kind: str | None = None):
    term = (text or "").strip()
    qs = _base(kind)
    if term:
        qs = qs.filter(
            Q(document_number__icontains=term)
            | Q(partner__name__icontains=term)
            | Q(partner__partner_code__icontains=term)
            | Q(memo__icontains=term)
        )
    return qs


def outstanding(*, kind: str | None = None):
    """Documents that still carry an open balance."""
    return (
        _base(kind)
        .exclude(status__in=[BusinessDocument.STATUS_CANCELLED, BusinessDocument.STATUS_PAID])
        .filter(paid_amount__lt=F("total_amount"))
    )
