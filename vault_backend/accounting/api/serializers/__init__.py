# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import AccountCreateSerializer, AccountSerializer
from accounting.api.serializers.journal_entries import (
    JournalEntrySerializer,
    JournalEntryWriteSerializer,
    JournalLineSerializer,
    ReverseEntrySerializer,
)

__all__ = [
    "AccountSerializer",
    "AccountCreateSerializer",
    "JournalEntrySerializer",
    "JournalEntryWriteSerializer",
    "JournalLineSerializer",
    "ReverseEntrySerializer",
]
