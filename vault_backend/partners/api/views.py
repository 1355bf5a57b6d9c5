# partners/api/views.py

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from partners import services
from partners.api.serializers import BusinessPartnerCreateSerializer, BusinessPartnerSerializer
from partners.models import BusinessPartner


@extend_schema(
    tags=["partners"],
    parameters=[
        OpenApiParameter(name="search", type=str, required=False, description="Code, name, email or phone"),
    ],
)
class BusinessPartnerViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = BusinessPartnerSerializer
    queryset = BusinessPartner.objects.select_related("account").order_by("name")
    filterset_fields = ("partner_type", "is_active")

    def get_queryset(self):
        search = (self.request.query_params.get("search") or "").strip()
        if search:
            return services.search(search).select_related("account")
        return super().get_queryset()

    @extend_schema(request=BusinessPartnerCreateSerializer, responses={201: BusinessPartnerSerializer})
    def create(self, request):
        s = BusinessPartnerCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        partner = services.create_partner(**s.validated_data)
        return Response(BusinessPartnerSerializer(partner).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses=BusinessPartnerSerializer)
    @action(detail=True, methods=["post"])
    def reconcile(self, request, pk=None):
        services.reconcile_partner_balance(pk)
        partner = services.get_partner(pk)
        return Response(BusinessPartnerSerializer(partner).data)
