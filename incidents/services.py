"""
Services for incident handling.

Includes:
- GeocodingService: reverse geocoding via OpenStreetMap Nominatim
- IncidentService: citizen report intake
"""

import logging

import requests
from django.conf import settings

from notifications.services import NotificationService
from . import store

logger = logging.getLogger(__name__)


class GeocodingService:
    """
    Resolves a street address from coordinates using Nominatim.

    Never raises: any failure (timeout, HTTP error, empty answer)
    returns None and the caller falls back to its own address.
    """

    ZOOM_LEVEL = 18
    ADDRESS_KEYS = ['road', 'neighbourhood', 'suburb', 'city', 'state', 'country']

    @staticmethod
    def reverse_geocode(latitude, longitude):
        if not settings.GEOCODING_ENABLED:
            return None

        params = {
            'format': 'json',
            'lat': latitude,
            'lon': longitude,
            'zoom': GeocodingService.ZOOM_LEVEL,
            'addressdetails': 1,
        }

        try:
            response = requests.get(
                settings.GEOCODING_URL,
                params=params,
                timeout=settings.GEOCODING_TIMEOUT_SECONDS,
                headers={'User-Agent': settings.GEOCODING_USER_AGENT},
            )
            response.raise_for_status()
            data = response.json()
        except requests.Timeout:
            logger.warning(f"[Geocoding] Nominatim timeout for {latitude}, {longitude}")
            return None
        except requests.RequestException as e:
            logger.warning(f"[Geocoding] Nominatim request failed: {e}")
            return None
        except ValueError as e:
            logger.warning(f"[Geocoding] Invalid Nominatim response: {e}")
            return None

        address = data.get('address') or {}
        parts = [address[key] for key in GeocodingService.ADDRESS_KEYS if address.get(key)]
        if parts:
            return ', '.join(parts)

        display_name = data.get('display_name')
        if display_name:
            return display_name

        logger.warning(f"[Geocoding] No address found for {latitude}, {longitude}")
        return None

    @staticmethod
    def fallback_address(latitude, longitude):
        return f"{latitude:.6f}, {longitude:.6f}"


class IncidentService:
    """
    Citizen report intake.

    Geocodes once, stores the incident, then alerts admins. The admin
    alert is best-effort.
    """

    @classmethod
    def create_incident(cls, reporter, location, description=None, priority=None,
                        category=None, photos=None):
        location = location or {}
        coordinates = location.get('coordinates')
        longitude, latitude = store.validate_coordinates(coordinates)

        address = GeocodingService.reverse_geocode(latitude, longitude)
        if not address:
            address = (location.get('address') or '').strip() or \
                GeocodingService.fallback_address(latitude, longitude)

        incident = store.create_incident(
            reported_by=reporter,
            coordinates=[longitude, latitude],
            address=address,
            description=description,
            priority=priority,
            category=category,
            photos=photos,
        )

        try:
            NotificationService.notify_incident_created(incident)
        except Exception:
            logger.exception(f"Admin alert for incident {incident.id} failed")

        return incident
