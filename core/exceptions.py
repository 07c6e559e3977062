"""
Exception types and API error handling for RescueLink Backend.

Domain code raises the DispatchAPIException family; the DRF exception
handler below renders those and the framework's own errors in one
envelope:

    {
        "success": false,
        "error": {
            "code": "ERROR_CODE",
            "message": "User-friendly message",
            "details": {}            (only for some domain errors)
        }
    }
"""

import logging
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status

logger = logging.getLogger(__name__)
security_logger = logging.getLogger('rescuelink.security')


class DispatchAPIException(Exception):
    """Base exception class for RescueLink domain errors."""

    default_code = 'ERROR'
    default_message = 'An error occurred.'
    default_status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message=None, code=None, status_code=None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.status_code = status_code or self.default_status_code
        super().__init__(self.message)

    def get_details(self):
        return None


class NotFound(DispatchAPIException):
    """Raised when the requested entity does not exist."""
    default_code = 'NOT_FOUND'
    default_message = 'The requested resource was not found.'
    default_status_code = status.HTTP_404_NOT_FOUND


class Forbidden(DispatchAPIException):
    """
    Raised when the actor may not read or act on an entity.

    The message is always the generic one so a denied actor learns
    nothing about the entity itself.
    """
    default_code = 'FORBIDDEN'
    default_message = 'You do not have permission to perform this action.'
    default_status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message=None):
        super().__init__(self.default_message)


class ValidationError(DispatchAPIException):
    """Raised for malformed payloads: missing fields, bad enums, bad coordinates."""
    default_code = 'VALIDATION_ERROR'
    default_message = 'Invalid request. Please check your input.'
    default_status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message=None, field=None):
        self.field = field
        super().__init__(message)

    def get_details(self):
        if self.field:
            return {'field': self.field}
        return None


class InvalidTransition(DispatchAPIException):
    """Raised when the current state does not permit the requested transition."""
    default_code = 'INVALID_TRANSITION'
    default_status_code = status.HTTP_409_CONFLICT

    def __init__(self, from_state, to_state):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid status transition from {from_state} to {to_state}")

    def get_details(self):
        return {'from': self.from_state, 'to': self.to_state}


def custom_exception_handler(exc, context):
    """
    Render every API error in the RescueLink envelope.

    1. Domain errors map to their own code/status
    2. DRF errors keep their status with a sanitized message
    3. Anything else is logged and becomes a generic 500
    """
    request = context.get('request')
    view = context.get('view')

    if isinstance(exc, DispatchAPIException):
        error = {'code': exc.code, 'message': exc.message}
        details = exc.get_details()
        if details:
            error['details'] = details
        if exc.status_code in [401, 403, 429]:
            _log_security_event(exc, request, view, exc.status_code)
        return Response({'success': False, 'error': error}, status=exc.status_code)

    response = exception_handler(exc, context)

    if response is None:
        logger.error(
            f"Unhandled exception in {view.__class__.__name__ if view else 'unknown'}: {exc}",
            exc_info=exc,
        )
        return Response(
            {
                'success': False,
                'error': {
                    'code': _get_error_code(500),
                    'message': _get_safe_message(exc, 500),
                }
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if response.status_code in [401, 403, 429]:
        _log_security_event(exc, request, view, response.status_code)

    response.data = {
        'success': False,
        'error': {
            'code': _get_error_code(response.status_code),
            'message': _get_safe_message(exc, response.status_code),
        }
    }
    return response


def _get_error_code(status_code):
    """Map HTTP status codes to error codes."""
    error_codes = {
        400: 'VALIDATION_ERROR',
        401: 'UNAUTHORIZED',
        403: 'FORBIDDEN',
        404: 'NOT_FOUND',
        405: 'METHOD_NOT_ALLOWED',
        409: 'CONFLICT',
        415: 'UNSUPPORTED_MEDIA_TYPE',
        429: 'RATE_LIMIT_EXCEEDED',
        500: 'INTERNAL_ERROR',
        503: 'SERVICE_UNAVAILABLE',
    }
    return error_codes.get(status_code, 'UNKNOWN_ERROR')


def _get_safe_message(exc, status_code):
    """
    Get a safe, user-friendly error message.
    Never expose internal details or stack traces.
    """
    safe_messages = {
        400: 'Invalid request. Please check your input.',
        401: 'Authentication required.',
        403: 'You do not have permission to perform this action.',
        404: 'The requested resource was not found.',
        405: 'This method is not allowed.',
        409: 'Request conflicts with current state.',
        415: 'Unsupported media type.',
        429: 'Too many requests. Please try again later.',
        500: 'An internal error occurred. Please try again later.',
        503: 'Service temporarily unavailable.',
    }

    # Validation errors name the first offending field
    if status_code == 400 and hasattr(exc, 'detail'):
        detail = exc.detail
        if isinstance(detail, dict):
            for field, errors in detail.items():
                if isinstance(errors, list) and errors:
                    return f"Validation error: {field} - {errors[0]}"
                if isinstance(errors, str):
                    return f"Validation error: {field} - {errors}"
        elif isinstance(detail, list) and detail:
            return str(detail[0])
        elif isinstance(detail, str):
            return detail

    return safe_messages.get(status_code, 'An error occurred.')


def _log_security_event(exc, request, view, status_code):
    """Log denied/unauthenticated/throttled requests."""
    user_info = 'anonymous'
    if request and hasattr(request, 'user') and request.user.is_authenticated:
        user_info = str(request.user.id)

    ip_address = get_client_ip(request)
    view_name = view.__class__.__name__ if view else 'unknown'

    security_logger.warning(
        f"Security event: status={status_code}, "
        f"user={user_info}, ip={ip_address}, "
        f"view={view_name}, exception={exc.__class__.__name__}"
    )


def get_client_ip(request):
    """Client IP, honouring X-Forwarded-For from the proxy."""
    if not request:
        return 'unknown'

    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', 'unknown')
