"""
API exceptions for business rule failures and the project-wide exception handler.

Every error response carries ``{"error": <message>, "code": <code>}`` and, when
the failure is tied to specific input fields, a ``fields`` mapping.
"""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class BusinessRuleViolation(APIException):
    """A request was well-formed but breaks an inventory or purchasing rule."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Business rule violation.'
    default_code = 'business_rule_violation'

    def __init__(self, detail=None, code=None, fields=None):
        super().__init__(detail=detail, code=code)
        self.fields = fields or {}


class InvalidStatusTransition(BusinessRuleViolation):
    default_detail = 'Invalid status transition.'
    default_code = 'invalid_status_transition'

    def __init__(self, current_status, new_status, detail=None):
        self.current_status = current_status
        self.new_status = new_status
        if detail is None:
            detail = f"Cannot change status from {current_status} to {new_status}"
        super().__init__(detail=detail, fields={'status': detail})


class InsufficientStock(BusinessRuleViolation):
    default_detail = 'Insufficient stock.'
    default_code = 'insufficient_stock'

    def __init__(self, product_name, available, requested):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        detail = f"Insufficient stock for {product_name}. Available: {available}, Requested: {requested}"
        super().__init__(detail=detail, fields={'quantity': detail})


def custom_exception_handler(exc, context):
    """Wrap DRF's handler so business errors render as ``{'error': ...}``."""
    if isinstance(exc, DjangoValidationError):
        if hasattr(exc, 'message_dict'):
            exc = ValidationError(detail=exc.message_dict)
        else:
            exc = ValidationError(detail=exc.messages)

    response = exception_handler(exc, context)
    if response is None:
        return None

    # Serializer validation errors keep DRF's field -> messages shape
    if isinstance(exc, ValidationError):
        return response

    if isinstance(exc, APIException):
        detail = exc.detail
        payload = {
            'error': str(detail) if not isinstance(detail, (list, dict)) else detail,
            'code': exc.get_codes() if isinstance(exc.get_codes(), str) else exc.default_code,
        }
        fields = getattr(exc, 'fields', None)
        if fields:
            payload['fields'] = fields
        if isinstance(exc, BusinessRuleViolation):
            request = context.get('request')
            logger.warning(f"Business rule violation on {getattr(request, 'path', '?')}: {payload['error']}")
        response.data = payload

    return response
