# partners/api/serializers.py

from rest_framework import serializers

from accounting.models.account import Account
from partners.models import BusinessPartner


class BusinessPartnerSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True, default=None)

    class Meta:
        model = BusinessPartner
        fields = (
            "id",
            "partner_code",
            "name",
            "partner_type",
            "account",
            "account_code",
            "balance",
            "credit_limit",
            "payment_terms_days",
            "email",
            "phone",
            "address",
            "notes",
            "is_active",
            "last_transaction_date",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class BusinessPartnerCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    partner_type = serializers.ChoiceField(choices=BusinessPartner.PARTNER_TYPES)
    partner_code = serializers.CharField(max_length=20, required=False, allow_blank=True, default=None)
    account = serializers.PrimaryKeyRelatedField(
        queryset=Account.objects.filter(is_active=True),
        required=False,
        allow_null=True,
        default=None,
    )
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    address = serializers.CharField(required=False, allow_blank=True, default="")
    credit_limit = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, allow_null=True, default=None
    )
    payment_terms_days = serializers.IntegerField(min_value=0, required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
