# accounting/api/serializers/journal_entries.py

from rest_framework import serializers

from accounting.models.account import SIDE_CHOICES
from accounting.models.journal import JournalEntry
from accounting.models.ledger import JournalLine
from accounting.services.journal_entry_service import LineSpec


class JournalLineSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = JournalLine
        fields = (
            "position",
            "account",
            "account_code",
            "account_name",
            "side",
            "amount",
            "memo",
        )
        read_only_fields = fields


class JournalEntrySerializer(serializers.ModelSerializer):
    lines = JournalLineSerializer(many=True, read_only=True)
    is_locked = serializers.BooleanField(read_only=True)

    class Meta:
        model = JournalEntry
        fields = (
            "id",
            "entry_number",
            "posting_date",
            "memo",
            "reference",
            "source_type",
            "source_id",
            "reversal_of",
            "is_locked",
            "lines",
            "created_at",
        )
        read_only_fields = fields


class JournalLineInputSerializer(serializers.Serializer):
    account_id = serializers.IntegerField()
    side = serializers.ChoiceField(choices=SIDE_CHOICES)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    memo = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class JournalEntryWriteSerializer(serializers.Serializer):
    """
    Input for manual entries. Balance / amount rules are enforced by the
    posting engine so the API returns the same typed errors as services.
    """

    lines = JournalLineInputSerializer(many=True)
    memo = serializers.CharField(required=False, allow_blank=True, default="")
    posting_date = serializers.DateField(required=False, allow_null=True, default=None)
    reference = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True, default=None)

    def line_specs(self) -> list[LineSpec]:
        return [
            LineSpec(
                account_id=line["account_id"],
                side=line["side"],
                amount=line["amount"],
                memo=line.get("memo", ""),
            )
            for line in self.validated_data["lines"]
        ]


class ReverseEntrySerializer(serializers.Serializer):
    memo = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    posting_date = serializers.DateField(required=False, allow_null=True, default=None)
