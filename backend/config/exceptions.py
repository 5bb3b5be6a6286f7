"""
Domain exceptions raised by the service layer and the DRF handler that renders them.

Services raise these instead of returning error tuples; views let them
propagate and the handler turns them into {'error': ..., 'code': ...} bodies.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class DomainError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Bad request'
    default_code = 'BAD_REQUEST'

    def __init__(self, message=None, code=None, extra=None):
        self.message = message or self.default_detail
        self.error_code = code or self.default_code
        self.extra = extra or {}
        super().__init__(detail=self.message, code=self.error_code)


class UnauthorizedError(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Authentication failed'
    default_code = 'UNAUTHORIZED'


class ForbiddenError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Access denied'
    default_code = 'FORBIDDEN'


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found'
    default_code = 'NOT_FOUND'


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Conflict'
    default_code = 'CONFLICT'


class RateLimitError(DomainError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = 'Too many requests'
    default_code = 'RATE_LIMITED'


def exception_handler(exc, context):
    if isinstance(exc, DomainError):
        data = {'error': exc.message, 'code': exc.error_code}
        data.update(exc.extra)
        return Response(data, status=exc.status_code)

    response = drf_exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    logger.exception(f'Unhandled error in {view.__class__.__name__ if view else "unknown view"}: {exc}')
    return Response(
        {'error': 'Internal server error', 'code': 'INTERNAL_ERROR'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
