"""Mapping of errors to ``{error: string}`` HTTP responses.

Installed as ``REST_FRAMEWORK["EXCEPTION_HANDLER"]``.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from clubs.domain.errors import DomainError, ErrorCode

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CLUB_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.MEMBER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.BOOK_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.STALE_STATE: status.HTTP_409_CONFLICT,
    ErrorCode.UPSTREAM_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

INTERNAL_ERROR_MESSAGE = "Internal server error"


def _flatten(detail) -> str:
    if isinstance(detail, dict):
        if "detail" in detail:
            return _flatten(detail["detail"])
        return "; ".join(f"{field}: {_flatten(value)}" for field, value in detail.items())
    if isinstance(detail, list):
        return "; ".join(_flatten(item) for item in detail)
    return str(detail)


def api_exception_handler(exc, context):
    if isinstance(exc, DomainError):
        status_code = STATUS_BY_CODE[exc.code]
        if status_code >= 500:
            logger.error("Request failed upstream: %s", exc)
            return Response({"error": INTERNAL_ERROR_MESSAGE}, status=status_code)
        return Response({"error": exc.message, "code": exc.code.value}, status=status_code)

    response = drf_exception_handler(exc, context)
    if response is not None:
        response.data = {"error": _flatten(response.data)}
        return response

    view = context.get("view")
    logger.exception("Unhandled error in %s", type(view).__name__ if view else "view")
    return Response({"error": INTERNAL_ERROR_MESSAGE}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
