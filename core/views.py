"""
Service-level endpoints: health check and API root.
"""

from django.http import JsonResponse


def health_check(request):
    """Health check endpoint for load balancers."""
    return JsonResponse({
        'status': 'healthy',
        'service': 'rescuelink-backend'
    })


def api_root(request):
    """API root endpoint with version info."""
    return JsonResponse({
        'name': 'RescueLink API',
        'version': 'v1',
        'endpoints': {
            'auth': '/api/v1/auth/',
            'incidents': '/api/v1/incidents/',
            'notifications': '/api/v1/notifications/',
        }
    })
