"""
Assignment resolver.

Binds an incident to an ambulance department and then to one of that
department's drivers. Both operations return a (patch, details) pair;
incidents.workflow applies the patch under the incident lock and
records the action.
"""

import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError

from authentication.models import User
from core.exceptions import NotFound, ValidationError
from .models import DriverStatus, IncidentStatus

logger = logging.getLogger(__name__)


class AssignmentResolver:
    """
    Department and driver assignment rules.

    - the department must be one of settings.DISPATCH_DEPARTMENTS
    - the driver must exist, hold the driver role, be active and
      belong to the incident's department
    """

    @staticmethod
    def validate_department(department):
        if not department or department not in settings.DISPATCH_DEPARTMENTS:
            raise ValidationError(
                f"Department must be one of: {', '.join(settings.DISPATCH_DEPARTMENTS)}",
                field='department',
            )
        return department

    @staticmethod
    def is_same_department(incident, department):
        """True when the incident already sits with this department and no driver yet."""
        return (
            incident.status == IncidentStatus.ASSIGNED
            and incident.assigned_department == department
            and incident.assigned_driver_id is None
        )

    @classmethod
    def approve_and_assign_department(cls, incident, department, actor, now):
        cls.validate_department(department)

        patch = {
            'status': IncidentStatus.ASSIGNED,
            'assigned_department': department,
            'assigned_at': now,
            'assigned_by': actor,
        }
        if incident.first_assigned_at is None:
            patch['first_assigned_at'] = now

        return patch, {'department': department}

    @staticmethod
    def lookup_driver(driver_id):
        """Fetch the driver account or raise NotFound."""
        try:
            return User.objects.get(pk=driver_id)
        except (User.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound('Driver not found.')

    @classmethod
    def assign_driver(cls, incident, driver_id, actor, now):
        if not driver_id:
            raise ValidationError('driver_id is required', field='driver_id')

        driver = cls.lookup_driver(driver_id)

        if not driver.is_driver:
            raise ValidationError('Selected user is not a driver', field='driver_id')
        if not driver.is_active or driver.is_suspended:
            raise ValidationError('Selected driver is not active', field='driver_id')
        if driver.department != incident.assigned_department:
            raise ValidationError(
                f"Driver does not belong to {incident.assigned_department}",
                field='driver_id',
            )

        patch = {
            'assigned_driver': driver,
            'assigned_driver_name': driver.name,
            'assigned_at': now,
            'assigned_by': actor,
            'status': IncidentStatus.ASSIGNED,
            'driver_status': DriverStatus.ASSIGNED,
        }
        if incident.first_assigned_at is None:
            patch['first_assigned_at'] = now

        logger.info(f"Driver {driver.id} assigned to incident {incident.id} by {actor.id}")
        return patch, {'driver_id': str(driver.id), 'driver_name': driver.name}
