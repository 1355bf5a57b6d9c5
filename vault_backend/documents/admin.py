# documents/admin.py

from django.contrib import admin

from documents.models import BusinessDocument, DocumentEntry, DocumentLine, DocumentPayment


class DocumentLineInline(admin.TabularInline):
    model = DocumentLine
    extra = 0
    can_delete = False
    readonly_fields = (
        "position",
        "item",
        "quantity",
        "unit_price",
        "tax_rate",
        "discount_percent",
        "line_total",
        "unit_cost_snapshot",
    )
    fields = readonly_fields

    def has_add_permission(self, request, obj=None):
        return False


class DocumentPaymentInline(admin.TabularInline):
    model = DocumentPayment
    extra = 0
    can_delete = False
    fields = ("payment_number", "amount", "settlement_account", "payment_date", "journal_entry")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


class DocumentEntryInline(admin.TabularInline):
    model = DocumentEntry
    extra = 0
    can_delete = False
    fields = ("journal_entry", "purpose", "created_at")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(BusinessDocument)
class BusinessDocumentAdmin(admin.ModelAdmin):
    list_display = (
        "document_number",
        "kind",
        "partner",
        "document_date",
        "status",
        "total_amount",
        "paid_amount",
    )
    list_filter = ("kind", "status", "document_date")
    search_fields = ("document_number", "partner__name", "partner__partner_code")
    inlines = [DocumentLineInline, DocumentPaymentInline, DocumentEntryInline]

    # all state changes go through the transaction orchestrator
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
