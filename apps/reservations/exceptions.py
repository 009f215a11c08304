"""DRF exception handling for reservation errors."""

from __future__ import annotations

import logging

from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler as drf_exception_handler  # type: ignore

from apps.reservations.domain.errors import ReservationError

logger = logging.getLogger(__name__)


def reservation_exception_handler(exc, context):
    """Render ReservationError as {"error": <class>, "detail": ..., ...fields}."""
    if isinstance(exc, ReservationError):
        if exc.status_code >= 500:
            logger.error(f"Reservation error in {context.get('view').__class__.__name__}: {exc.message}")
        return Response(exc.to_dict(), status=exc.status_code)
    return drf_exception_handler(exc, context)
