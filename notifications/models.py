"""
Notification models for RescueLink Backend.

In-app inbox entries created as side effects of incident transitions.
Notifications are never deleted, only marked as read.
"""

from django.db import models
from django.utils import timezone

from core.models import BaseModel


class NotificationType:
    """Notification type constants."""
    INCIDENT_ALERT = 'incident_alert'
    ASSIGNMENT = 'assignment'
    STATUS_UPDATE = 'status_update'
    HOSPITAL_ALERT = 'hospital_alert'
    GENERAL = 'general'

    CHOICES = [
        (INCIDENT_ALERT, 'New Incident'),
        (ASSIGNMENT, 'Assignment'),
        (STATUS_UPDATE, 'Status Update'),
        (HOSPITAL_ALERT, 'Incoming Patient'),
        (GENERAL, 'General'),
    ]


class NotificationManager(models.Manager):
    """Hides soft-deleted notifications."""

    def get_queryset(self):
        return super().get_queryset().filter(is_deleted=False)


class Notification(BaseModel):
    """
    Inbox entry for one user, optionally linked to an incident.
    """

    recipient = models.ForeignKey(
        'authentication.User',
        on_delete=models.CASCADE,
        related_name='notifications',
        help_text="User who receives this notification"
    )

    title = models.CharField(
        max_length=200,
        help_text="Short notification title"
    )

    message = models.TextField(
        help_text="Notification message body"
    )

    notification_type = models.CharField(
        max_length=30,
        choices=NotificationType.CHOICES,
        default=NotificationType.GENERAL,
        db_index=True,
        help_text="Type of notification"
    )

    incident = models.ForeignKey(
        'incidents.Incident',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications',
        help_text="Related incident (if applicable)"
    )

    is_read = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether the notification has been read"
    )

    read_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the notification was read"
    )

    objects = NotificationManager()
    all_objects = models.Manager()

    class Meta:
        db_table = 'notifications'
        verbose_name = 'Notification'
        verbose_name_plural = 'Notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'is_read', '-created_at'], name='notif_recipient_read_idx'),
            models.Index(fields=['recipient', '-created_at'], name='notif_recipient_created_idx'),
        ]

    def __str__(self):
        return f"[{self.recipient.email}] {self.title}"

    def mark_as_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at', 'updated_at'])
