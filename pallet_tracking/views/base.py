"""
Shared view plumbing for pallet tracking.
"""

import logging

from rest_framework.response import Response

from ..exceptions import BusinessException

logger = logging.getLogger(__name__)


def success_response(data, status=200):
    return Response({'success': True, 'data': data}, status=status)


def business_error_response(exc: BusinessException):
    """Translate a domain rule violation into the API error envelope."""
    return Response({
        'success': False,
        'error': {
            'code': exc.code,
            'message': exc.message,
            'details': exc.details,
        }
    }, status=exc.status_code)


class BusinessErrorMixin:
    """Viewset mixin turning BusinessException into an error response."""

    def handle_exception(self, exc):
        if isinstance(exc, BusinessException):
            logger.warning(
                f"{self.__class__.__name__}.{getattr(self, 'action', None)} rejected: "
                f"{exc.code} {exc.message}"
            )
            return business_error_response(exc)
        return super().handle_exception(exc)
