"""
Business error taxonomy and the API exception handler.

Every service raises one of the exceptions below; the handler renders them (and
DRF's own errors) as a single JSON envelope:

    {"error": "<message>", "code": "<machine code>", ...extra}

Validation failures from serializers additionally carry the per-field errors
under "fields" so forms can show them inline.
"""
import logging

from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class RoasteryError(drf_exceptions.APIException):
    """Base class for business-rule failures"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Request could not be processed.'
    default_code = 'error'

    def __init__(self, detail=None, **extra):
        super().__init__(detail=detail)
        self.extra = extra


class ValidationError(RoasteryError):
    default_detail = 'Invalid input.'
    default_code = 'validation_error'


class InvalidTransition(RoasteryError):
    default_detail = 'Status change is not allowed.'
    default_code = 'invalid_transition'

    def __init__(self, detail=None, from_status=None, to_status=None, **extra):
        if detail is None and from_status is not None:
            detail = f'Cannot change status from {from_status} to {to_status}.'
        super().__init__(detail, from_status=from_status, to_status=to_status, **extra)


class InvalidPaymentAmount(RoasteryError):
    default_detail = 'Invalid payment amount.'
    default_code = 'invalid_payment_amount'


class Forbidden(RoasteryError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'forbidden'


class NotFound(RoasteryError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class Conflict(RoasteryError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The request conflicts with the current state.'
    default_code = 'conflict'


class InsufficientStock(RoasteryError):
    """A green coffee lot does not hold enough weight"""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Insufficient stock in lot.'
    default_code = 'insufficient_stock'


class InsufficientInventory(RoasteryError):
    """Roasted inventory cannot satisfy a reservation request"""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Insufficient roasted inventory.'
    default_code = 'insufficient_inventory'
    hint = 'Ensure roast batches for these SKUs have passed QC and have available quantity.'

    def __init__(self, shortages, detail=None):
        self.shortages = shortages
        if detail is None:
            parts = [
                f"{s['sku']} (requested {s['requested']} kg, available {s['available']} kg)"
                for s in shortages
            ]
            detail = 'Insufficient inventory for ' + ', '.join(parts) + '.'
        super().__init__(
            detail,
            shortages=[{k: str(v) if k != 'sku' else v for k, v in s.items()} for s in shortages],
            hint=self.hint,
        )


def _first_message(data):
    """Dig the first human readable message out of a DRF error structure"""
    if isinstance(data, dict):
        if 'detail' in data:
            return _first_message(data['detail'])
        for key, value in data.items():
            message = _first_message(value)
            if message:
                return message if key == 'non_field_errors' else f'{key}: {message}'
        return None
    if isinstance(data, (list, tuple)):
        for value in data:
            message = _first_message(value)
            if message:
                return message
        return None
    return str(data) if data is not None else None


def api_exception_handler(exc, context):
    """Render every error as {"error": ..., "code": ...}"""
    if isinstance(exc, RoasteryError):
        body = {'error': str(exc.detail), 'code': exc.default_code}
        body.update({k: v for k, v in exc.extra.items() if v is not None})
        request = context.get('request')
        logger.warning(
            "Request to %s rejected (%s): %s",
            getattr(request, 'path', '?'), body['code'], body['error']
        )
        return Response(body, status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        logger.exception("Unhandled error while processing request", exc_info=exc)
        return Response(
            {'error': 'Internal server error', 'code': 'server_error'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    data = response.data
    if isinstance(exc, drf_exceptions.ValidationError):
        response.data = {
            'error': _first_message(data) or 'Invalid input.',
            'code': 'validation_error',
            'fields': data,
        }
    else:
        codes = exc.get_codes() if isinstance(exc, drf_exceptions.APIException) else 'not_found'
        response.data = {
            'error': _first_message(data) or 'Request failed.',
            'code': codes if isinstance(codes, str) else 'error',
        }
    return response
