# inventory/api/views.py

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.api.serializers import (
    InventoryItemCreateSerializer,
    InventoryItemSerializer,
    StockMovementSerializer,
    UnitSerializer,
    ValuationClassSerializer,
)
from inventory.models import InventoryItem, Unit, ValuationClass
from operations.services.orchestrator import build_orchestrator


@extend_schema(
    tags=["inventory"],
    parameters=[
        OpenApiParameter(name="search", type=str, required=False, description="Code or name contains"),
    ],
)
class InventoryItemViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = InventoryItemSerializer
    queryset = InventoryItem.objects.select_related("unit", "valuation_class").order_by("name")
    filterset_fields = ("is_active", "valuation_class")

    def get_queryset(self):
        search = (self.request.query_params.get("search") or "").strip()
        if search:
            return build_orchestrator().guard.search(search)
        return super().get_queryset()

    @extend_schema(request=InventoryItemCreateSerializer, responses={201: InventoryItemSerializer})
    def create(self, request):
        s = InventoryItemCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        item = build_orchestrator().guard.create_item(**s.validated_data)
        return Response(InventoryItemSerializer(item).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses=StockMovementSerializer(many=True))
    @action(detail=True, methods=["get"])
    def movements(self, request, pk=None):
        item = self.get_object()
        qs = item.stock_movements.order_by("-created_at")
        return Response(StockMovementSerializer(qs, many=True).data)

    @extend_schema(
        parameters=[OpenApiParameter(name="threshold", type=int, required=False)],
        responses=InventoryItemSerializer(many=True),
    )
    @action(detail=False, methods=["get"], url_path="low-stock")
    def low_stock(self, request):
        try:
            threshold = int(request.query_params.get("threshold") or 5)
        except ValueError:
            threshold = 5
        qs = build_orchestrator().guard.low_stock(threshold)
        return Response(InventoryItemSerializer(qs, many=True).data)


@extend_schema(tags=["inventory"])
class ValuationClassViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = ValuationClassSerializer
    queryset = ValuationClass.objects.all().order_by("class_code")
    http_method_names = ["get", "post", "patch", "head", "options"]


@extend_schema(tags=["inventory"])
class UnitViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = UnitSerializer
    queryset = Unit.objects.all().order_by("name")
    http_method_names = ["get", "post", "patch", "head", "options"]
