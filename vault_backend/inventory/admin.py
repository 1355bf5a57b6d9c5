# inventory/admin.py

from django.contrib import admin

from inventory.models import InventoryItem, StockMovement, Unit, ValuationClass


@admin.register(Unit)
class UnitAdmin(admin.ModelAdmin):
    list_display = ("name", "description")
    search_fields = ("name",)


@admin.register(ValuationClass)
class ValuationClassAdmin(admin.ModelAdmin):
    list_display = ("class_code", "name", "inventory_account", "cogs_account", "is_active")
    list_filter = ("is_active",)
    search_fields = ("class_code", "name")


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = (
        "product_code",
        "name",
        "available_quantity",
        "sales_price",
        "purchase_price",
        "is_active",
    )
    list_filter = ("is_active", "valuation_class")
    search_fields = ("product_code", "name", "display_name")
    # stock only moves through the valuation guard
    readonly_fields = ("available_quantity", "version", "created_at", "updated_at")


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("item", "movement_type", "reason", "quantity", "unit_cost_snapshot", "reference", "created_at")
    list_filter = ("movement_type", "reason")
    search_fields = ("item__product_code", "item__name", "reference")
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
