# accounting/api/views/journal_entries.py

"""
JOURNAL ENTRY API

All writes go through the transaction orchestrator so the API gets
the same retry + typed-failure behaviour as any other caller.

    GET    /journal-entries/?account=<id>&date_from=&date_to=&search=
    POST   /journal-entries/                 manual entry
    PUT    /journal-entries/<id>/            replace lines (unlocked entries only)
    DELETE /journal-entries/<id>/            unlocked entries only
    POST   /journal-entries/<id>/reverse/
"""

from django.utils.dateparse import parse_date
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from accounting.api.serializers import (
    JournalEntrySerializer,
    JournalEntryWriteSerializer,
    ReverseEntrySerializer,
)
from accounting.models.journal import JournalEntry
from operations.responses import result_response
from operations.services.orchestrator import build_orchestrator


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="account", type=int, required=False, description="Entries touching this account"),
        OpenApiParameter(name="date_from", type=str, required=False, description="YYYY-MM-DD"),
        OpenApiParameter(name="date_to", type=str, required=False, description="YYYY-MM-DD"),
        OpenApiParameter(name="search", type=str, required=False, description="Number, memo or reference"),
    ],
)
class JournalEntryViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = JournalEntrySerializer
    queryset = JournalEntry.objects.all()
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        engine = build_orchestrator().engine
        params = self.request.query_params

        search = (params.get("search") or "").strip()
        if search:
            qs = engine.search(search)
        else:
            qs = engine.list_entries(
                account_id=params.get("account") or None,
                date_from=parse_date(params.get("date_from") or "") if params.get("date_from") else None,
                date_to=parse_date(params.get("date_to") or "") if params.get("date_to") else None,
            )
        return qs.prefetch_related("lines__account").order_by("-posting_date", "-id")

    @extend_schema(request=JournalEntryWriteSerializer, responses={201: JournalEntrySerializer})
    def create(self, request):
        s = JournalEntryWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        result = build_orchestrator().post_journal_entry(
            lines=s.line_specs(),
            memo=s.validated_data["memo"],
            posting_date=s.validated_data["posting_date"],
            reference=s.validated_data["reference"] or None,
        )
        return result_response(result, JournalEntrySerializer, status_code=status.HTTP_201_CREATED)

    @extend_schema(request=JournalEntryWriteSerializer, responses=JournalEntrySerializer)
    def update(self, request, pk=None):
        s = JournalEntryWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        result = build_orchestrator().update_journal_entry(
            entry_id=pk,
            lines=s.line_specs(),
            memo=s.validated_data["memo"],
            posting_date=s.validated_data["posting_date"],
        )
        return result_response(result, JournalEntrySerializer)

    def destroy(self, request, pk=None):
        result = build_orchestrator().delete_journal_entry(entry_id=pk)
        if not result.ok:
            return result_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=ReverseEntrySerializer, responses={201: JournalEntrySerializer})
    @action(detail=True, methods=["post"])
    def reverse(self, request, pk=None):
        s = ReverseEntrySerializer(data=request.data)
        s.is_valid(raise_exception=True)
        result = build_orchestrator().reverse_journal_entry(
            entry_id=pk,
            memo=s.validated_data["memo"],
            posting_date=s.validated_data["posting_date"],
        )
        return result_response(result, JournalEntrySerializer, status_code=status.HTTP_201_CREATED)
