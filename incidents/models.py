"""
Incident models for RescueLink Backend.

Contains:
- Incident: an accident report and its three status axes
- IncidentPhoto: append-only photo attachment references
- IncidentAction: append-only action log, one row per applied transition

The status axes are only written through incidents.workflow; nothing
else should assign status, driver_status or hospital_status directly.
"""

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from core.models import BaseModel


class IncidentStatus:
    """Overall incident lifecycle."""
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    ASSIGNED = 'assigned'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    CHOICES = [
        (PENDING, 'Pending'),
        (APPROVED, 'Approved'),
        (REJECTED, 'Rejected'),
        (ASSIGNED, 'Assigned'),
        (IN_PROGRESS, 'In Progress'),
        (COMPLETED, 'Completed'),
        (CANCELLED, 'Cancelled'),
    ]

    TERMINAL = [COMPLETED, REJECTED, CANCELLED]


class DriverStatus:
    """Driver-owned phase of the incident."""
    ASSIGNED = 'assigned'
    ARRIVED = 'arrived'
    TRANSPORTING = 'transporting'
    DELIVERED = 'delivered'
    COMPLETED = 'completed'

    CHOICES = [
        (ASSIGNED, 'Assigned'),
        (ARRIVED, 'Arrived'),
        (TRANSPORTING, 'Transporting'),
        (DELIVERED, 'Delivered'),
        (COMPLETED, 'Completed'),
    ]


class HospitalStatus:
    """Hospital-owned phase of the incident."""
    PENDING = 'pending'
    INCOMING = 'incoming'
    ADMITTED = 'admitted'
    DISCHARGED = 'discharged'
    CANCELLED = 'cancelled'

    CHOICES = [
        (PENDING, 'Pending'),
        (INCOMING, 'Incoming'),
        (ADMITTED, 'Admitted'),
        (DISCHARGED, 'Discharged'),
        (CANCELLED, 'Cancelled'),
    ]


class IncidentPriority:
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    URGENT = 'urgent'

    CHOICES = [
        (LOW, 'Low'),
        (MEDIUM, 'Medium'),
        (HIGH, 'High'),
        (URGENT, 'Urgent'),
    ]


class IncidentCategory:
    ACCIDENT = 'Accident'

    CHOICES = [
        (ACCIDENT, 'Accident'),
    ]


class PatientPickupStatus:
    """Outcome reported by the driver when no hospital handoff happens."""
    PICKED_UP = 'picked_up'
    TAKEN_BY_SOMEONE = 'taken_by_someone'
    EXPIRED = 'expired'

    CHOICES = [
        (PICKED_UP, 'Picked Up'),
        (TAKEN_BY_SOMEONE, 'Taken By Someone'),
        (EXPIRED, 'Expired'),
    ]


def validate_department(value):
    if value and value not in settings.DISPATCH_DEPARTMENTS:
        raise ValidationError(f"Department must be one of: {', '.join(settings.DISPATCH_DEPARTMENTS)}")


class Incident(BaseModel):
    """
    An accident report moving through the dispatch lifecycle.

    Three status axes are tracked independently:
    - status: coarse lifecycle, what lists and dashboards key off
    - driver_status: owned by the assigned driver
    - hospital_status: owned by the receiving hospital

    assigned_driver_name is a snapshot taken at assignment time and is
    not refreshed when the driver's profile changes.
    """

    DEFAULT_DESCRIPTION = 'Accident reported'

    reported_by = models.ForeignKey(
        'authentication.User',
        on_delete=models.PROTECT,
        related_name='reported_incidents',
        help_text="Citizen who reported this incident"
    )

    description = models.TextField(
        default=DEFAULT_DESCRIPTION,
        help_text="Free-text description"
    )

    category = models.CharField(
        max_length=30,
        choices=IncidentCategory.CHOICES,
        default=IncidentCategory.ACCIDENT,
        help_text="Incident category"
    )

    priority = models.CharField(
        max_length=10,
        choices=IncidentPriority.CHOICES,
        default=IncidentPriority.HIGH,
        db_index=True,
        help_text="Triage priority"
    )

    # Location (immutable after creation)
    longitude = models.FloatField(
        validators=[MinValueValidator(-180.0), MaxValueValidator(180.0)],
        help_text="Longitude coordinate"
    )

    latitude = models.FloatField(
        validators=[MinValueValidator(-90.0), MaxValueValidator(90.0)],
        help_text="Latitude coordinate"
    )

    address = models.CharField(
        max_length=500,
        blank=True,
        help_text="Resolved address"
    )

    # Status axes
    status = models.CharField(
        max_length=20,
        choices=IncidentStatus.CHOICES,
        default=IncidentStatus.PENDING,
        db_index=True
    )

    driver_status = models.CharField(
        max_length=20,
        choices=DriverStatus.CHOICES,
        default=DriverStatus.ASSIGNED,
        db_index=True
    )

    hospital_status = models.CharField(
        max_length=20,
        choices=HospitalStatus.CHOICES,
        default=HospitalStatus.PENDING,
        db_index=True
    )

    # Assignment
    assigned_department = models.CharField(
        max_length=100,
        blank=True,
        db_index=True,
        validators=[validate_department],
        help_text="Ambulance department handling the incident"
    )

    assigned_driver = models.ForeignKey(
        'authentication.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='driver_incidents',
        help_text="Driver bound to the incident"
    )

    assigned_driver_name = models.CharField(
        max_length=100,
        blank=True,
        help_text="Driver name at assignment time"
    )

    assigned_at = models.DateTimeField(null=True, blank=True)

    assigned_by = models.ForeignKey(
        'authentication.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        help_text="Admin or dispatcher who made the last assignment"
    )

    # Patient status (hospital-writable)
    patient_condition = models.CharField(max_length=255, blank=True)
    patient_hospital = models.CharField(
        max_length=200,
        blank=True,
        db_index=True,
        help_text="Receiving hospital name"
    )
    medical_notes = models.TextField(blank=True)
    treatment = models.TextField(blank=True)
    doctor = models.CharField(max_length=100, blank=True)
    bed_number = models.CharField(max_length=20, blank=True)
    patient_status_updated_at = models.DateTimeField(null=True, blank=True)

    patient_pickup_status = models.CharField(
        max_length=20,
        choices=PatientPickupStatus.CHOICES,
        blank=True
    )
    patient_pickup_notes = models.TextField(blank=True)

    rejection_reason = models.TextField(blank=True)

    # Lifecycle instants, each written once
    reported_at = models.DateTimeField(default=timezone.now)
    first_assigned_at = models.DateTimeField(null=True, blank=True)
    arrived_at = models.DateTimeField(null=True, blank=True)
    transporting_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    admitted_at = models.DateTimeField(null=True, blank=True)
    discharged_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'incidents'
        verbose_name = 'Incident'
        verbose_name_plural = 'Incidents'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='incidents_status_created_idx'),
            models.Index(fields=['assigned_department', 'status'], name='incidents_dept_status_idx'),
        ]

    def __str__(self):
        return f"Incident {self.id} - {self.status}"

    @property
    def is_terminal(self):
        return self.status in IncidentStatus.TERMINAL

    @property
    def coordinates(self):
        """[longitude, latitude] pair."""
        return [self.longitude, self.latitude]


class IncidentPhoto(BaseModel):
    """
    Reference to a photo stored in the external blob store.

    Photos are appended, never edited or removed.
    """

    incident = models.ForeignKey(
        Incident,
        on_delete=models.CASCADE,
        related_name='photos'
    )

    filename = models.CharField(max_length=255, help_text="Stored object name")
    original_name = models.CharField(max_length=255, blank=True)
    size = models.PositiveIntegerField(help_text="Size in bytes")
    mime_type = models.CharField(max_length=100)
    uploaded_at = models.DateTimeField(default=timezone.now)

    uploaded_by = models.ForeignKey(
        'authentication.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    class Meta:
        db_table = 'incident_photos'
        ordering = ['uploaded_at', 'created_at']

    def __str__(self):
        return f"{self.original_name or self.filename} ({self.size} bytes)"


class IncidentActionQuerySet(models.QuerySet):
    """Queryset that refuses bulk modification of the action log."""

    def update(self, *args, **kwargs):
        raise PermissionError("Incident actions are immutable and cannot be updated.")

    def delete(self, *args, **kwargs):
        raise PermissionError("Incident actions are immutable and cannot be deleted.")


class IncidentAction(models.Model):
    """
    Immutable action log entry.

    Exactly one row is appended per applied transition; sequence orders
    entries within an incident. Rows are never updated or deleted.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    incident = models.ForeignKey(
        Incident,
        on_delete=models.PROTECT,
        related_name='actions'
    )

    sequence = models.PositiveIntegerField(help_text="Position within the incident's log")

    action = models.CharField(
        max_length=64,
        db_index=True,
        help_text="Transition tag, e.g. driver_arrived"
    )

    performed_by = models.ForeignKey(
        'authentication.User',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='incident_actions'
    )

    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    details = models.JSONField(default=dict, blank=True)

    objects = IncidentActionQuerySet.as_manager()

    class Meta:
        db_table = 'incident_actions'
        ordering = ['incident', 'sequence']
        constraints = [
            models.UniqueConstraint(fields=['incident', 'sequence'], name='unique_incident_action_sequence'),
        ]

    def __str__(self):
        return f"{self.incident_id} #{self.sequence} {self.action}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PermissionError("Incident actions are immutable and cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionError("Incident actions are immutable and cannot be deleted.")
