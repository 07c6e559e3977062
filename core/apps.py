import logging

from django.apps import AppConfig
from django.conf import settings


class CoreConfig(AppConfig):
    name = 'core'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        """Log dispatch configuration on startup."""
        logger = logging.getLogger(__name__)
        logger.info(f"ACCESS TOKEN LIFETIME: {settings.SIMPLE_JWT.get('ACCESS_TOKEN_LIFETIME')}")
        logger.info(f"DISPATCH DEPARTMENTS: {settings.DISPATCH_DEPARTMENTS}")
        logger.info(f"GEOCODING ENABLED: {settings.GEOCODING_ENABLED}")
