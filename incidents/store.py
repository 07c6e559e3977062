"""
Incident persistence.

Thin data-access layer over the Incident model:

    create_incident(...)        validated insert with default status axes
    find_by_id(id)              one incident or NotFound
    find(queryset, filters...)  structured listing; role scoping is the caller's
    update_by_id(id, patch)     locked partial update
    apply_patch(incident, patch)  partial update of an already locked row

Only incidents.workflow and incidents.assignment write status fields.
"""

import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from core.exceptions import NotFound, ValidationError
from .models import Incident, IncidentCategory, IncidentPhoto

logger = logging.getLogger(__name__)

# Fields a patch may never touch
IMMUTABLE_FIELDS = {'id', 'reported_by', 'reported_by_id', 'longitude', 'latitude', 'created_at', 'reported_at'}


def _raise_validation(exc):
    """Translate a Django ValidationError into the domain one."""
    if hasattr(exc, 'message_dict'):
        for field, messages in exc.message_dict.items():
            raise ValidationError(f"{field}: {messages[0]}", field=field)
    raise ValidationError('; '.join(exc.messages))


def validate_coordinates(coordinates):
    """
    Validate a [longitude, latitude] pair and return it as floats.
    """
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) != 2:
        raise ValidationError(
            'location.coordinates must be a [longitude, latitude] pair',
            field='location.coordinates',
        )

    for value in coordinates:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError('location.coordinates must be numbers', field='location.coordinates')

    longitude, latitude = float(coordinates[0]), float(coordinates[1])
    if not -180 <= longitude <= 180:
        raise ValidationError('Longitude must be between -180 and 180', field='location.coordinates')
    if not -90 <= latitude <= 90:
        raise ValidationError('Latitude must be between -90 and 90', field='location.coordinates')

    return longitude, latitude


def create_incident(reported_by, coordinates, address='', description=None,
                    priority=None, category=None, photos=None):
    """
    Validate and persist a new incident.

    Status axes start at pending / assigned / pending. Photos, when
    given, are attached in the same transaction.
    """
    longitude, latitude = validate_coordinates(coordinates)

    if category is not None and category != IncidentCategory.ACCIDENT:
        raise ValidationError(f"category must be '{IncidentCategory.ACCIDENT}'", field='category')

    incident = Incident(
        reported_by=reported_by,
        description=(description or '').strip() or Incident.DEFAULT_DESCRIPTION,
        longitude=longitude,
        latitude=latitude,
        address=(address or '')[:500],
    )
    if priority is not None:
        incident.priority = priority

    try:
        incident.full_clean(exclude=['reported_by'])
    except DjangoValidationError as exc:
        _raise_validation(exc)

    with transaction.atomic():
        incident.save()
        if photos:
            add_photos(incident, photos, uploaded_by=reported_by)

    logger.info(f"Incident {incident.id} created by {reported_by.id} at ({latitude}, {longitude})")
    return incident


def find_by_id(incident_id, for_update=False):
    """Return the live incident with this id or raise NotFound."""
    queryset = Incident.objects.all()
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=incident_id)
    except (Incident.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFound('Incident not found.')


def find(queryset=None, filters=None, ordering=None, page=None, page_size=20):
    """
    Structured listing.

    queryset is the caller's role-scoped base; filters are exact-match
    field lookups. page is 1-based; None returns the whole queryset.
    """
    if queryset is None:
        queryset = Incident.objects.all()
    if filters:
        queryset = queryset.filter(**filters)
    if ordering:
        queryset = queryset.order_by(*ordering)
    if page is not None:
        start = (max(int(page), 1) - 1) * page_size
        queryset = queryset[start:start + page_size]
    return queryset


def apply_patch(incident, patch):
    """Write patch onto an incident the caller already holds locked."""
    if not patch:
        return incident

    illegal = IMMUTABLE_FIELDS.intersection(patch)
    if illegal:
        raise ValidationError(f"Cannot modify immutable fields: {', '.join(sorted(illegal))}")

    update_fields = []
    for field, value in patch.items():
        setattr(incident, field, value)
        update_fields.append(field)

    try:
        incident.full_clean(exclude=['reported_by', 'assigned_driver', 'assigned_by'])
    except DjangoValidationError as exc:
        _raise_validation(exc)

    incident.save(update_fields=update_fields + ['updated_at'])
    return incident


def update_by_id(incident_id, patch):
    """Lock, patch and save one incident."""
    with transaction.atomic():
        incident = find_by_id(incident_id, for_update=True)
        return apply_patch(incident, patch)


def add_photos(incident, photos, uploaded_by=None):
    """
    Append photo references to an incident.

    Each photo is a dict with filename, original_name, size and
    mime_type. Count, size and type limits come from settings.
    """
    if not isinstance(photos, (list, tuple)):
        raise ValidationError('photos must be a list', field='photos')

    existing = IncidentPhoto.objects.filter(incident=incident).count()
    if existing + len(photos) > settings.INCIDENT_MAX_PHOTOS:
        raise ValidationError(
            f"An incident can have at most {settings.INCIDENT_MAX_PHOTOS} photos",
            field='photos',
        )

    records = []
    for photo in photos:
        size = photo.get('size') or 0
        mime_type = photo.get('mime_type') or ''
        if not photo.get('filename'):
            raise ValidationError('Each photo needs a filename', field='photos')
        if size > settings.INCIDENT_PHOTO_MAX_BYTES:
            raise ValidationError(f"Photo {photo['filename']} exceeds the size limit", field='photos')
        if mime_type not in settings.INCIDENT_PHOTO_MIME_TYPES:
            raise ValidationError(f"Photo {photo['filename']} is not an allowed image type", field='photos')

        records.append(IncidentPhoto(
            incident=incident,
            filename=photo['filename'],
            original_name=photo.get('original_name') or photo['filename'],
            size=size,
            mime_type=mime_type,
            uploaded_by=uploaded_by,
        ))

    IncidentPhoto.objects.bulk_create(records)
    return records
