"""
PATH: accounting/api/views/trial_balance.py

TRIAL BALANCE + RECONCILIATION (READ-ONLY)
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.services.balance_service import (
    reconcile_accounts,
    totals_by_category,
    trial_balance,
)


def _decimals_to_str(value):
    if isinstance(value, dict):
        return {k: _decimals_to_str(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decimals_to_str(v) for v in value]
    if isinstance(value, bool) or value is None or isinstance(value, (int, str)):
        return value
    return str(value)


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(
            name="include_zero",
            type=bool,
            required=False,
            description="Include accounts with a zero balance",
        ),
    ],
    responses={200: dict},
)
class TrialBalanceView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        include_zero = (request.query_params.get("include_zero") or "").lower() in ("1", "true", "yes")
        report = trial_balance(include_zero=include_zero)
        report["totals_by_category"] = totals_by_category()
        return Response(_decimals_to_str(report))


@extend_schema(tags=["accounting"], responses={200: dict})
class ReconciliationView(APIView):
    """Accounts whose stored balance disagrees with their journal lines."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        mismatches = reconcile_accounts()
        return Response({"is_consistent": not mismatches, "mismatches": _decimals_to_str(mismatches)})
