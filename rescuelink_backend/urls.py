"""
URL configuration for RescueLink Backend.

API Structure:
- /api/v1/auth/          - Authentication endpoints
- /api/v1/incidents/     - Incident reporting and dispatch workflow
- /api/v1/notifications/ - In-app notifications
- /admin/                - Django admin (restricted)
"""

from django.contrib import admin
from django.urls import path, include

from core.views import api_root, health_check

urlpatterns = [
    # Health check (public) - accessible at /health/ and /api/health/
    path('health/', health_check, name='health-check'),
    path('api/health/', health_check, name='api-health-check'),

    # API root
    path('api/v1/', api_root, name='api-root'),

    path('api/v1/auth/', include('authentication.urls', namespace='auth')),
    path('api/v1/incidents/', include('incidents.urls', namespace='incidents')),
    path('api/v1/notifications/', include('notifications.urls', namespace='notifications')),

    # Django admin (restricted access)
    path('admin/', admin.site.urls),
]
