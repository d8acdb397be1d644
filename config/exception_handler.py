"""DRF exception handler that renders engine errors with their stable codes."""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError  # type: ignore
from rest_framework import status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler  # type: ignore

from shared.domain.errors import DomainError, ErrorCode

logger = logging.getLogger(__name__)


def domain_exception_handler(exc, context):  # type: ignore
    """
    ``DomainError`` -> ``{"code", "detail", "details"}`` with the error's
    HTTP status; model ``clean()`` failures -> VALIDATION_ERROR 400.
    Everything else goes through DRF's default handler.
    """
    if isinstance(exc, DomainError):
        if exc.http_status >= 500:
            logger.error("%s: %s", exc.code.value, exc.message)
        return Response(exc.to_dict(), status=exc.http_status)

    if isinstance(exc, DjangoValidationError):
        return Response(
            {"code": ErrorCode.VALIDATION_ERROR.value, "detail": exc.messages},
            status=status.HTTP_400_BAD_REQUEST,
        )

    return exception_handler(exc, context)
