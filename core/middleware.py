"""
Request logging middleware for RescueLink Backend.

Writes one line per API request to the 'rescuelink.audit' logger.
Per-incident history lives in the incident action log, not here.
"""

import logging
import time

from .exceptions import get_client_ip

audit_logger = logging.getLogger('rescuelink.audit')


class AuditLoggingMiddleware:
    """
    Logs method, path, actor, status and duration for every request.

    Static files, media and health checks are skipped.
    """

    SKIP_PREFIXES = (
        '/static/',
        '/media/',
        '/health/',
        '/favicon.ico',
    )

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        start_time = time.monotonic()
        response = self.get_response(request)
        duration = time.monotonic() - start_time

        if not request.path.startswith(self.SKIP_PREFIXES):
            self._log_request(request, response, duration)

        return response

    def _log_request(self, request, response, duration):
        user_id = 'anonymous'
        user_role = 'none'

        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            user_id = str(user.id)
            user_role = user.role

        log_data = {
            'method': request.method,
            'path': request.path,
            'user_id': user_id,
            'user_role': user_role,
            'status_code': response.status_code,
            'duration_ms': round(duration * 1000, 2),
            'ip_address': get_client_ip(request),
        }

        if response.status_code >= 500:
            audit_logger.error(f"API Request: {log_data}")
        elif response.status_code >= 400:
            audit_logger.warning(f"API Request: {log_data}")
        else:
            audit_logger.info(f"API Request: {log_data}")
