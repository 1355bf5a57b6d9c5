# accounting/api/views/accounts.py

"""
CHART OF ACCOUNTS API

- list / retrieve / create accounts
- deactivate / reactivate (zero balance only for deactivate)
- delete (zero balance, never posted to)
- initialize-chart: seed the standard chart (idempotent)

Filters:
    ?account_type=ASSET   ?is_active=true   ?search=cash
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from accounting.api.serializers import AccountCreateSerializer, AccountSerializer
from accounting.models.account import Account
from accounting.services.ledger_store import LedgerStore


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="search", type=str, required=False, description="Code or name contains"),
    ],
)
class AccountViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = AccountSerializer
    queryset = Account.objects.all().order_by("code")
    filterset_fields = ("account_type", "is_active")
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        search = (self.request.query_params.get("search") or "").strip()
        if search:
            return LedgerStore().search(search)
        return super().get_queryset()

    @extend_schema(request=AccountCreateSerializer, responses={201: AccountSerializer})
    def create(self, request):
        s = AccountCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        account = LedgerStore().create_account(**s.validated_data)
        return Response(AccountSerializer(account).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        LedgerStore().delete_account(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=None, responses=AccountSerializer)
    @action(detail=True, methods=["post"])
    def deactivate(self, request, pk=None):
        account = LedgerStore().deactivate_account(pk)
        return Response(AccountSerializer(account).data)

    @extend_schema(request=None, responses=AccountSerializer)
    @action(detail=True, methods=["post"])
    def reactivate(self, request, pk=None):
        account = LedgerStore().reactivate_account(pk)
        return Response(AccountSerializer(account).data)

    @extend_schema(request=None, responses=AccountSerializer(many=True))
    @action(detail=False, methods=["post"], url_path="initialize-chart")
    def initialize_chart(self, request):
        accounts = LedgerStore().initialize_default_chart()
        return Response(AccountSerializer(accounts, many=True).data)
