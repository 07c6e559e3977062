"""
Notification service for RescueLink Backend.

Central place for creating in-app notifications. The incident workflow
calls notify_transition after every applied transition and
notify_incident_created after intake; recipient selection lives here.

Usage:
    from notifications.services import NotificationService

    NotificationService.notify(user.id, 'Title', 'Body', NotificationType.GENERAL)
    NotificationService.notify_transition('driver_arrived', incident, actor, details)
"""

import logging

from django.utils import timezone

from authentication.models import User
from .models import Notification, NotificationType

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Creates and manages notifications.

    Delivery beyond the in-app inbox (push, SMS) is not handled here.
    """

    @classmethod
    def notify(cls, recipient_id, title, message, notification_type=NotificationType.GENERAL,
               related_incident_id=None):
        """Send one notification to one user."""
        return Notification.objects.create(
            recipient_id=recipient_id,
            title=title,
            message=message,
            notification_type=notification_type,
            incident_id=related_incident_id,
        )

    @classmethod
    def _bulk_notify(cls, recipients, title, message, notification_type, incident):
        """Create notifications for several users, skipping duplicates."""
        notifications = []
        seen = set()
        for recipient in recipients:
            if recipient is None or recipient.id in seen:
                continue
            seen.add(recipient.id)
            notifications.append(
                Notification(
                    recipient=recipient,
                    title=title,
                    message=message,
                    notification_type=notification_type,
                    incident=incident,
                )
            )

        if notifications:
            Notification.objects.bulk_create(notifications)

        return len(notifications)

    # =========================================================================
    # INCIDENT EVENTS
    # =========================================================================

    @classmethod
    def notify_incident_created(cls, incident):
        """
        Alert admins about a new citizen report.

        Recipients: all active admin and superadmin users.
        """
        return cls._bulk_notify(
            recipients=User.objects.admins(),
            title='New Incident Reported',
            message=f"New accident reported at {incident.address}. Priority: {incident.priority}.",
            notification_type=NotificationType.INCIDENT_ALERT,
            incident=incident,
        )

    @classmethod
    def notify_transition(cls, transition_name, incident, actor, details=None):
        """Route an applied transition to its recipients."""
        details = details or {}

        if transition_name == 'approved_and_assigned':
            return cls._notify_department_assigned(incident)
        if transition_name == 'rejected':
            return cls._notify_reporter(
                incident,
                'Incident Rejected',
                f"Your incident report was rejected. Reason: {details.get('reason', '')}",
            )
        if transition_name == 'driver_assigned':
            return cls._notify_driver_assigned(incident)
        if transition_name == 'driver_arrived':
            return cls._notify_reporter(
                incident,
                'Ambulance Arrived',
                f"{incident.assigned_driver_name or 'The driver'} has arrived at the incident location.",
            )
        if transition_name == 'patient_pickup_picked_up':
            return cls._notify_reporter(
                incident,
                'Patient Picked Up',
                f"{incident.assigned_driver_name or 'The driver'} has picked up the patient.",
            )
        if transition_name in ('driver_transporting', 'driver_delivered'):
            return cls._notify_hospital_handoff(transition_name, incident)
        if transition_name == 'driver_completed' or transition_name.startswith('patient_pickup_'):
            return cls._notify_driver_finished(transition_name, incident)
        if transition_name in ('hospital_admitted', 'hospital_discharged'):
            return cls._notify_hospital_update(transition_name, incident)

        logger.debug(f"No notification route for {transition_name}")
        return 0

    @classmethod
    def _notify_reporter(cls, incident, title, message):
        return cls._bulk_notify(
            recipients=[incident.reported_by],
            title=title,
            message=message,
            notification_type=NotificationType.STATUS_UPDATE,
            incident=incident,
        )

    @classmethod
    def _notify_department_assigned(cls, incident):
        """Recipients: active dispatchers of the assigned department."""
        return cls._bulk_notify(
            recipients=User.objects.department_users(incident.assigned_department),
            title='New Incident Assigned',
            message=(
                f"A new accident has been assigned to {incident.assigned_department}. "
                f"Location: {incident.address}. Priority: {incident.priority}."
            ),
            notification_type=NotificationType.ASSIGNMENT,
            incident=incident,
        )

    @classmethod
    def _notify_driver_assigned(cls, incident):
        if incident.assigned_driver_id is None:
            return 0
        cls.notify(
            incident.assigned_driver_id,
            'New Assignment',
            f"You have been assigned to an accident at {incident.address}.",
            NotificationType.ASSIGNMENT,
            incident.id,
        )
        return 1

    @classmethod
    def _notify_hospital_handoff(cls, transition_name, incident):
        """Reporter gets a status update; the receiving hospital gets an alert."""
        if transition_name == 'driver_transporting':
            reporter_message = f"Patient is being transported to {incident.patient_hospital}."
            hospital_title = 'Incoming Patient'
            hospital_message = (
                f"An ambulance is transporting a patient to {incident.patient_hospital}. "
                f"Condition: {incident.patient_condition}."
            )
        else:
            reporter_message = f"Patient has been delivered to {incident.patient_hospital}."
            hospital_title = 'Patient Delivered'
            hospital_message = f"A patient has been delivered to {incident.patient_hospital}."

        count = cls._notify_reporter(incident, 'Incident Update', reporter_message)
        count += cls._bulk_notify(
            recipients=User.objects.hospital_users(incident.patient_hospital),
            title=hospital_title,
            message=hospital_message,
            notification_type=NotificationType.HOSPITAL_ALERT,
            incident=incident,
        )
        return count

    @classmethod
    def _notify_driver_finished(cls, transition_name, incident):
        if transition_name == 'driver_completed':
            message = 'The ambulance service for your incident has been completed.'
        else:
            pickup = transition_name.replace('patient_pickup_', '').replace('_', ' ')
            message = f"Patient pickup update: {pickup}."

        recipients = [incident.reported_by]
        recipients.extend(User.objects.department_users(incident.assigned_department))
        return cls._bulk_notify(
            recipients=recipients,
            title='Incident Update',
            message=message,
            notification_type=NotificationType.STATUS_UPDATE,
            incident=incident,
        )

    @classmethod
    def _notify_hospital_update(cls, transition_name, incident):
        if transition_name == 'hospital_admitted':
            message = f"Patient has been admitted to {incident.patient_hospital}."
            if incident.bed_number:
                message += f" Bed: {incident.bed_number}."
        else:
            message = f"Patient has been discharged from {incident.patient_hospital}."

        return cls._bulk_notify(
            recipients=[incident.reported_by, incident.assigned_driver],
            title='Patient Status Update',
            message=message,
            notification_type=NotificationType.STATUS_UPDATE,
            incident=incident,
        )

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    @classmethod
    def get_unread_count(cls, user):
        return Notification.objects.filter(recipient=user, is_read=False).count()

    @classmethod
    def mark_all_read(cls, user):
        return Notification.objects.filter(recipient=user, is_read=False).update(
            is_read=True,
            read_at=timezone.now(),
            updated_at=timezone.now(),
        )
