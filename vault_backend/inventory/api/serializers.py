# inventory/api/serializers.py

from rest_framework import serializers

from inventory.models import InventoryItem, StockMovement, Unit, ValuationClass


class UnitSerializer(serializers.ModelSerializer):
    class Meta:
        model = Unit
        fields = ("id", "name", "description")


class ValuationClassSerializer(serializers.ModelSerializer):
    class Meta:
        model = ValuationClass
        fields = (
            "id",
            "class_code",
            "name",
            "description",
            "inventory_account",
            "cogs_account",
            "is_active",
        )


class InventoryItemSerializer(serializers.ModelSerializer):
    unit_name = serializers.CharField(source="unit.name", read_only=True, default=None)
    valuation_class_code = serializers.CharField(
        source="valuation_class.class_code", read_only=True, default=None
    )
    stock_value = serializers.DecimalField(max_digits=16, decimal_places=2, read_only=True)

    class Meta:
        model = InventoryItem
        fields = (
            "id",
            "product_code",
            "name",
            "display_name",
            "description",
            "unit",
            "unit_name",
            "valuation_class",
            "valuation_class_code",
            "sales_price",
            "purchase_price",
            "available_quantity",
            "stock_value",
            "is_active",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class InventoryItemCreateSerializer(serializers.Serializer):
    product_code = serializers.CharField(max_length=50)
    name = serializers.CharField(max_length=255)
    display_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    description = serializers.CharField(required=False, allow_blank=True, default="")
    sales_price = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, default=0)
    purchase_price = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, default=0)
    opening_quantity = serializers.IntegerField(min_value=0, default=0)
    unit = serializers.PrimaryKeyRelatedField(queryset=Unit.objects.all(), required=False, allow_null=True, default=None)
    valuation_class = serializers.PrimaryKeyRelatedField(
        queryset=ValuationClass.objects.filter(is_active=True),
        required=False,
        allow_null=True,
        default=None,
    )


class StockMovementSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockMovement
        fields = (
            "id",
            "movement_type",
            "reason",
            "quantity",
            "unit_cost_snapshot",
            "reference",
            "created_at",
        )
        read_only_fields = fields
