# core/exceptions.py
import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class Forbidden(APIException):
    """The caller acted outside what they own or participate in."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have access to this resource."
    default_code = "forbidden"


class NotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class InvalidPayload(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request payload."
    default_code = "invalid_payload"


def api_exception_handler(exc, context):
    """
    DRF exception handler: typed API errors render as usual, storage failures
    become a generic 503 so callers (or the transport layer) can retry.
    """
    response = exception_handler(exc, context)
    if response is not None:
        return response

    if isinstance(exc, DatabaseError):
        view = context.get("view")
        logger.exception(
            "Storage error while handling %s", view.__class__.__name__ if view else "request"
        )
        return Response(
            {"detail": "Service temporarily unavailable."},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return None
