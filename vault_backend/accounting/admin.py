# accounting/admin.py

from django.contrib import admin

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.ledger import JournalLine
from accounting.models.sequence import NumberSequence

# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "account_type",
        "balance",
        "is_active",
    )
    list_filter = ("account_type", "is_active")
    search_fields = ("code", "name")
    ordering = ("code",)
    # balances only move through journal postings
    readonly_fields = ("balance", "version", "created_at", "updated_at")

    fieldsets = (
        (
            "Account Identity",
            {
                "fields": ("code", "name", "account_type", "subtype", "description"),
            },
        ),
        (
            "Status",
            {
                "fields": ("is_active", "balance", "version"),
            },
        ),
        (
            "System Fields",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# JOURNAL ENTRY (READ-ONLY)
# ============================================================


class JournalLineInline(admin.TabularInline):
    model = JournalLine
    extra = 0
    can_delete = False
    readonly_fields = ("position", "account", "side", "amount", "memo")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(JournalEntry)
class JournalEntryAdmin(admin.ModelAdmin):
    list_display = (
        "entry_number",
        "posting_date",
        "memo",
        "reference",
        "source_type",
        "reversal_of",
    )
    list_filter = ("source_type", "posting_date")
    search_fields = ("entry_number", "memo", "reference", "source_id")
    ordering = ("-posting_date", "-id")
    inlines = [JournalLineInline]

    readonly_fields = (
        "entry_number",
        "posting_date",
        "memo",
        "reference",
        "source_type",
        "source_id",
        "reversal_of",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(NumberSequence)
class NumberSequenceAdmin(admin.ModelAdmin):
    list_display = ("key", "last_value", "updated_at")
    readonly_fields = ("key", "last_value", "updated_at")
