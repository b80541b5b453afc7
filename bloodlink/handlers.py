import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from .exceptions import BloodLinkError

logger = logging.getLogger(__name__)


def exception_handler(exc, context):
    """Render core errors as ``{"error", "code", "retryable"}`` with a matching status."""
    if isinstance(exc, BloodLinkError):
        if exc.retryable:
            logger.warning("%s on %s: %s", exc.kind, context["request"].path, exc.reason)
        return Response(exc.as_dict(), status=exc.status_code)

    response = drf_exception_handler(exc, context)
    if response is None:
        logger.exception("Unhandled error on %s", context["request"].path)
        return Response(
            {"error": "Internal server error", "code": "SERVER_ERROR", "retryable": False},
            status=500,
        )
    return response
