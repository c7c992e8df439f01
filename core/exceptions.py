"""
Error taxonomy shared by every app, and the DRF exception handler that maps
it onto the JSON response envelope.

Services raise these; views never catch them. The handler is registered via
REST_FRAMEWORK['EXCEPTION_HANDLER'].
"""
import logging
import traceback

from django.conf import settings
from django.db import IntegrityError
from django.db.models import ProtectedError, RestrictedError
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Base class for business-rule failures surfaced to API clients."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'An unexpected error occurred'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Resource not found'


class InvalidState(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Operation not allowed in the current state'


class InsufficientStock(StorefrontError):
    """Raised when an order line asks for more units than are in stock."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, product_name: str, available: int, requested: int):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {product_name}. "
            f"Available: {available}, Requested: {requested}"
        )


class Unauthorized(StorefrontError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = 'Authentication required'


class Forbidden(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'Forbidden'


class Conflict(StorefrontError):
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Duplicate entry'


def _flatten_errors(detail, prefix=''):
    """Turn DRF's nested validation detail into [{field, message}] pairs."""
    errors = []
    if isinstance(detail, dict):
        for key, value in detail.items():
            field = f"{prefix}.{key}" if prefix else str(key)
            errors.extend(_flatten_errors(value, field))
    elif isinstance(detail, list):
        for idx, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                errors.extend(_flatten_errors(value, f"{prefix}.{idx}" if prefix else str(idx)))
            else:
                errors.append({'field': prefix or 'non_field_errors', 'message': str(value)})
    else:
        errors.append({'field': prefix or 'non_field_errors', 'message': str(detail)})
    return errors


def api_exception_handler(exc, context):
    """
    Map any exception raised inside a DRF view to the response envelope.

    Returns a Response for every exception so that nothing reaches Django's
    default 500 page.
    """
    if isinstance(exc, StorefrontError):
        if exc.status_code >= 500:
            logger.error(f"Storefront error: {exc.message}")
        else:
            logger.info(f"Request rejected ({exc.status_code}): {exc.message}")
        return Response(
            {'success': False, 'message': exc.message},
            status=exc.status_code
        )

    if isinstance(exc, drf_exceptions.ValidationError):
        return Response(
            {
                'success': False,
                'message': 'Validation error',
                'errors': _flatten_errors(exc.detail),
            },
            status=status.HTTP_400_BAD_REQUEST
        )

    # Subclasses of IntegrityError raised by PROTECT / RESTRICT deletes
    if isinstance(exc, (ProtectedError, RestrictedError)):
        logger.info(f"Delete blocked by related records: {exc}")
        return Response(
            {'success': False, 'message': 'Record is still referenced by other records'},
            status=status.HTTP_409_CONFLICT
        )

    if isinstance(exc, IntegrityError):
        logger.warning(f"Integrity error: {exc}")
        return Response(
            {'success': False, 'message': 'Duplicate entry'},
            status=status.HTTP_409_CONFLICT
        )

    response = exception_handler(exc, context)
    if response is not None:
        if isinstance(exc, Http404):
            message = 'Record not found'
        else:
            detail = response.data.get('detail') if isinstance(response.data, dict) else response.data
            message = str(detail)
        response.data = {'success': False, 'message': message}
        return response

    logger.exception(f"Unexpected error: {exc}")
    body = {'success': False, 'message': 'Internal server error'}
    if settings.DEBUG:
        body['stack'] = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return Response(body, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
