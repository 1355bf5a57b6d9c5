# operations/responses.py

"""
HTTP MAPPING FOR TYPED FAILURES

validation  -> 400
state       -> 409 (lookups that found nothing -> 404)
concurrency -> 409
fatal       -> 503

Used by every app's API views, and installed as the DRF exception
handler so typed errors raised inside a view render the same way.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from accounting.services.exceptions import (
    AccountingServiceError,
    ErrorCategory,
    ErrorKind,
)
from operations.services.results import OperationResult

STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.STATE: status.HTTP_409_CONFLICT,
    ErrorCategory.CONCURRENCY: status.HTTP_409_CONFLICT,
    ErrorCategory.FATAL: status.HTTP_503_SERVICE_UNAVAILABLE,
}

NOT_FOUND_KINDS = {
    ErrorKind.ITEM_NOT_FOUND,
    ErrorKind.DOCUMENT_NOT_FOUND,
    ErrorKind.UNKNOWN_ACCOUNT,
    ErrorKind.ENTRY_NOT_FOUND,
    ErrorKind.PARTNER_NOT_FOUND,
}

REPLAY_HEADER = "Idempotent-Replayed"


def status_for(error: AccountingServiceError) -> int:
    if error.kind in NOT_FOUND_KINDS:
        return status.HTTP_404_NOT_FOUND
    return STATUS_BY_CATEGORY[error.category]


def error_response(error: AccountingServiceError) -> Response:
    return Response(error.as_dict(), status=status_for(error))


def result_response(
    result: OperationResult,
    serializer_class=None,
    *,
    status_code: int = status.HTTP_200_OK,
    context: dict | None = None,
) -> Response:
    if not result.ok:
        return error_response(result.error)

    if serializer_class is None:
        data = result.value
    else:
        data = serializer_class(result.value, context=context or {}).data

    if result.replayed:
        return Response(data, status=status.HTTP_200_OK, headers={REPLAY_HEADER: "true"})
    return Response(data, status=status_code)


def exception_handler(exc, context):
    if isinstance(exc, AccountingServiceError):
        return error_response(exc)
    return drf_exception_handler(exc, context)
