# documents/api/views.py

"""
SALES / PURCHASE DOCUMENT API

    GET    /documents/?kind=SALE&status=DRAFT&partner=<uuid>&search=
    GET    /documents/outstanding/
    POST   /documents/sales/              invoice + stock deduction + posting
    POST   /documents/purchases/          receipt + stock intake + posting
    GET    /documents/<id>/
    DELETE /documents/<id>/               drafts only (compensating reversals)
    GET    /documents/<id>/payments/
    POST   /documents/<id>/payments/      Idempotency-Key header supported
    POST   /documents/<id>/cancel/
    POST   /documents/<id>/transition/
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from documents.api.filters import BusinessDocumentFilter
from documents.api.serializers import (
    BusinessDocumentSerializer,
    DocumentCreateSerializer,
    DocumentPaymentSerializer,
    PaymentCreateSerializer,
    PaymentReceiptSerializer,
    TransitionSerializer,
)
from documents.models import BusinessDocument
from documents.services import queries
from operations.responses import result_response
from operations.services.orchestrator import build_orchestrator

UUID_REGEX = r"[0-9a-fA-F-]{32,36}"


@extend_schema(
    tags=["documents"],
    parameters=[
        OpenApiParameter(name="search", type=str, required=False, description="Number, partner or memo"),
    ],
)
class BusinessDocumentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = BusinessDocumentSerializer
    filterset_class = BusinessDocumentFilter
    lookup_value_regex = UUID_REGEX

    def get_queryset(self):
        search = (self.request.query_params.get("search") or "").strip()
        qs = queries.search(search) if search else BusinessDocument.objects.select_related("partner")
        return qs.prefetch_related("lines__item", "payments", "entry_links__journal_entry").order_by(
            "-document_date", "-created_at"
        )

    def _create(self, request, operation):
        s = DocumentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data
        result = operation(
            partner_id=data["partner_id"],
            lines=s.line_inputs(),
            document_date=data["document_date"],
            due_date=data["due_date"],
            document_number=data["document_number"],
            memo=data["memo"],
        )
        return result_response(result, BusinessDocumentSerializer, status_code=status.HTTP_201_CREATED)

    @extend_schema(request=DocumentCreateSerializer, responses={201: BusinessDocumentSerializer})
    @action(detail=False, methods=["post"])
    def sales(self, request):
        return self._create(request, build_orchestrator().create_invoice_with_stock_deduction)

    @extend_schema(request=DocumentCreateSerializer, responses={201: BusinessDocumentSerializer})
    @action(detail=False, methods=["post"])
    def purchases(self, request):
        return self._create(request, build_orchestrator().create_purchase_receipt)

    @extend_schema(responses=BusinessDocumentSerializer(many=True))
    @action(detail=False, methods=["get"])
    def outstanding(self, request):
        kind = request.query_params.get("kind") or None
        qs = queries.outstanding(kind=kind).order_by("due_date", "document_date")
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(BusinessDocumentSerializer(page, many=True).data)
        return Response(BusinessDocumentSerializer(qs, many=True).data)

    def destroy(self, request, pk=None):
        result = build_orchestrator().delete_draft_document(document_id=pk)
        return result_response(result)

    @extend_schema(
        methods=["POST"],
        request=PaymentCreateSerializer,
        responses={201: PaymentReceiptSerializer},
        parameters=[OpenApiParameter(name="Idempotency-Key", location=OpenApiParameter.HEADER, required=False)],
    )
    @extend_schema(methods=["GET"], responses=DocumentPaymentSerializer(many=True))
    @action(detail=True, methods=["get", "post"])
    def payments(self, request, pk=None):
        if request.method == "GET":
            document = self.get_object()
            return Response(DocumentPaymentSerializer(document.payments.all(), many=True).data)

        s = PaymentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data
        key = data["idempotency_key"] or request.headers.get("Idempotency-Key")
        result = build_orchestrator().record_document_payment(
            document_id=pk,
            amount=data["amount"],
            settlement_account_id=data["settlement_account_id"],
            payment_date=data["payment_date"],
            idempotency_key=key,
            memo=data["memo"],
        )
        return result_response(result, PaymentReceiptSerializer, status_code=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses=BusinessDocumentSerializer)
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        result = build_orchestrator().cancel_document(document_id=pk)
        return result_response(result, BusinessDocumentSerializer)

    @extend_schema(request=TransitionSerializer, responses=BusinessDocumentSerializer)
    @action(detail=True, methods=["post"])
    def transition(self, request, pk=None):
        s = TransitionSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        result = build_orchestrator().transition_document(
            document_id=pk, target_status=s.validated_data["status"]
        )
        return result_response(result, BusinessDocumentSerializer)
