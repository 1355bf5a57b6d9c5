# accounting/services/sequences.py

from __future__ import annotations

from django.db import IntegrityError, transaction
from django.db.models import F

from accounting.models.sequence import NumberSequence
from accounting.services.exceptions import ConflictError


@transaction.atomic
def next_value(key: str) -> int:
    """Allocate the next integer for `key` (1, 2, 3, ...)."""
    try:
        with transaction.atomic():
            seq, _ = NumberSequence.objects.select_for_update().get_or_create(key=key)
    except IntegrityError as exc:
        raise ConflictError(resource="sequence", resource_id=key) from exc

    updated = NumberSequence.objects.filter(pk=seq.pk, last_value=seq.last_value).update(
        last_value=F("last_value") + 1
    )
    if updated != 1:
        raise ConflictError(resource="sequence", resource_id=key)

    return seq.last_value + 1


def format_number(prefix: str, value: int, *, width: int = 4, separator: str = "-") -> str:
    return f"{prefix}{separator}{value:0{width}d}"


def next_number(key: str, prefix: str, *, width: int = 4, separator: str = "-") -> str:
    return format_number(prefix, next_value(key), width=width, separator=separator)
