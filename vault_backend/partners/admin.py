# partners/admin.py

from django.contrib import admin

from partners.models import BusinessPartner


@admin.register(BusinessPartner)
class BusinessPartnerAdmin(admin.ModelAdmin):
    list_display = ("partner_code", "name", "partner_type", "balance", "is_active", "last_transaction_date")
    list_filter = ("partner_type", "is_active")
    search_fields = ("partner_code", "name", "email", "phone")
    readonly_fields = ("balance", "last_transaction_date", "created_at", "updated_at")
