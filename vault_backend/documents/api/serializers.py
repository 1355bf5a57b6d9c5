# documents/api/serializers.py

from rest_framework import serializers

from documents.models import BusinessDocument, DocumentEntry, DocumentLine, DocumentPayment
from documents.services.totals import DocumentLineInput


class DocumentLineSerializer(serializers.ModelSerializer):
    product_code = serializers.CharField(source="item.product_code", read_only=True)

    class Meta:
        model = DocumentLine
        fields = (
            "position",
            "item",
            "product_code",
            "description",
            "quantity",
            "unit_price",
            "tax_rate",
            "discount_percent",
            "subtotal",
            "discount_amount",
            "tax_amount",
            "line_total",
            "unit_cost_snapshot",
        )
        read_only_fields = fields


class DocumentPaymentSerializer(serializers.ModelSerializer):
    settlement_account_code = serializers.CharField(source="settlement_account.code", read_only=True)
    entry_number = serializers.CharField(source="journal_entry.entry_number", read_only=True)

    class Meta:
        model = DocumentPayment
        fields = (
            "id",
            "payment_number",
            "amount",
            "settlement_account",
            "settlement_account_code",
            "payment_date",
            "journal_entry",
            "entry_number",
            "idempotency_key",
            "memo",
            "created_at",
        )
        read_only_fields = fields


class DocumentEntryLinkSerializer(serializers.ModelSerializer):
    entry_number = serializers.CharField(source="journal_entry.entry_number", read_only=True)

    class Meta:
        model = DocumentEntry
        fields = ("journal_entry", "entry_number", "purpose", "created_at")
        read_only_fields = fields


class BusinessDocumentSerializer(serializers.ModelSerializer):
    partner_code = serializers.CharField(source="partner.partner_code", read_only=True)
    partner_name = serializers.CharField(source="partner.name", read_only=True)
    balance_amount = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    lines = DocumentLineSerializer(many=True, read_only=True)
    payments = DocumentPaymentSerializer(many=True, read_only=True)
    journal_entries = DocumentEntryLinkSerializer(source="entry_links", many=True, read_only=True)

    class Meta:
        model = BusinessDocument
        fields = (
            "id",
            "kind",
            "document_number",
            "partner",
            "partner_code",
            "partner_name",
            "document_date",
            "due_date",
            "status",
            "subtotal_amount",
            "discount_amount",
            "tax_amount",
            "total_amount",
            "paid_amount",
            "balance_amount",
            "memo",
            "lines",
            "payments",
            "journal_entries",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class PaymentReceiptSerializer(serializers.Serializer):
    document = BusinessDocumentSerializer(read_only=True)
    payment = DocumentPaymentSerializer(read_only=True)
    balance = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)


class DocumentLineInputSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=0, required=False, allow_null=True, default=None
    )
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100, default=0)
    discount_percent = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, default=0
    )
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class DocumentCreateSerializer(serializers.Serializer):
    partner_id = serializers.UUIDField()
    document_date = serializers.DateField(required=False, allow_null=True, default=None)
    due_date = serializers.DateField(required=False, allow_null=True, default=None)
    document_number = serializers.CharField(max_length=64, required=False, allow_blank=True, allow_null=True, default=None)
    memo = serializers.CharField(required=False, allow_blank=True, default="")
    lines = DocumentLineInputSerializer(many=True, allow_empty=False)

    def line_inputs(self) -> list[DocumentLineInput]:
        return [
            DocumentLineInput(
                item_id=str(line["item_id"]),
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                tax_rate=line["tax_rate"],
                discount_percent=line["discount_percent"],
                description=line["description"],
            )
            for line in self.validated_data["lines"]
        ]


class PaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    settlement_account_id = serializers.IntegerField()
    payment_date = serializers.DateField(required=False, allow_null=True, default=None)
    idempotency_key = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True, default=None)
    memo = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class TransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=BusinessDocument.STATUS_CHOICES)
