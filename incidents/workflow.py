"""
Incident workflow engine.

Exposes the state-changing verbs used by the API:

    approve, reject, assign_driver,
    update_driver_status, update_patient_pickup_status, update_hospital_status

Each verb runs the same pipeline inside one transaction with the
incident row locked:

    1. load the incident                  -> NotFound
    2. check the actor against the axis   -> Forbidden
    3. resolve the requested transition   -> ValidationError
    4. check the current state            -> InvalidTransition
    5. run the effect (payload checks)    -> ValidationError
    6. write the patch and append one IncidentAction

Notifications are sent after the transaction commits. A failing
notifier is logged and never affects the stored transition.
"""

import logging

from django.db import transaction
from django.utils import timezone

from core.exceptions import Forbidden, InvalidTransition, ValidationError
from notifications.services import NotificationService
from . import store
from .assignment import AssignmentResolver
from .models import HospitalStatus, IncidentAction
from .permissions import can_access, can_act_on
from .transitions import (
    APPROVE,
    ASSIGN_DRIVER,
    REJECT,
    TRANSITIONS,
    Axis,
    driver_transition,
    hospital_transition,
    pickup_transition,
)

logger = logging.getLogger(__name__)
workflow_logger = logging.getLogger('rescuelink.workflow')

HOSPITAL_STATES = {value for value, _ in HospitalStatus.CHOICES}


class WorkflowEngine:
    """
    Applies named transitions to incidents.

    notifier defaults to NotificationService; anything exposing
    notify_transition(name, incident, actor, details) will do.
    """

    def __init__(self, notifier=None):
        self.notifier = notifier or NotificationService

    # =========================================================================
    # VERBS
    # =========================================================================

    def approve(self, incident_id, actor, payload):
        """
        Admin approval: pending -> assigned to a department.

        Re-approving an incident already sitting with the same
        department (no driver yet) returns it unchanged.
        """
        department = payload.get('department')

        def already_applied(incident):
            return AssignmentResolver.is_same_department(incident, department)

        return self._run(incident_id, actor, Axis.TRIAGE, TRANSITIONS[APPROVE], payload,
                         already_applied=already_applied)

    def reject(self, incident_id, actor, payload):
        return self._run(incident_id, actor, Axis.TRIAGE, TRANSITIONS[REJECT], payload)

    def assign_driver(self, incident_id, actor, payload):
        return self._run(incident_id, actor, Axis.ASSIGNMENT, TRANSITIONS[ASSIGN_DRIVER], payload)

    def update_driver_status(self, incident_id, actor, payload):
        requested = payload.get('status')
        return self._run(incident_id, actor, Axis.DRIVER, driver_transition(requested), payload,
                         requested=requested)

    def update_patient_pickup_status(self, incident_id, actor, payload):
        requested = payload.get('status')
        return self._run(incident_id, actor, Axis.DRIVER, pickup_transition(requested), payload,
                         requested=requested)

    def update_hospital_status(self, incident_id, actor, payload):
        """
        Hospital phase change. Known hospital statuses with no table row
        (pending, incoming, cancelled) are refused as invalid transitions.
        """
        requested = payload.get('status')
        return self._run(incident_id, actor, Axis.HOSPITAL, hospital_transition(requested), payload,
                         requested=requested, known_field=('hospital_status', HOSPITAL_STATES))

    # =========================================================================
    # PIPELINE
    # =========================================================================

    def _run(self, incident_id, actor, axis, transition, payload, requested=None,
             already_applied=None, known_field=None):
        payload = payload or {}

        with transaction.atomic():
            incident = store.find_by_id(incident_id, for_update=True)

            if not can_act_on(actor, incident, axis):
                workflow_logger.warning(
                    f"Denied {axis} transition on incident {incident.id} for user {getattr(actor, 'id', None)}"
                )
                raise Forbidden()

            if transition is None:
                if not requested:
                    raise ValidationError('status is required', field='status')
                if known_field is not None and requested in known_field[1]:
                    raise InvalidTransition(getattr(incident, known_field[0]), requested)
                raise ValidationError(f"Unknown status: {requested}", field='status')

            if already_applied is not None and already_applied(incident):
                logger.info(f"{transition.name} already applied to incident {incident.id}; no change")
                return incident

            if not transition.allows(incident):
                raise InvalidTransition(getattr(incident, transition.field), transition.requested)

            now = timezone.now()
            patch, details = transition.effect(incident, actor, payload, now)
            store.apply_patch(incident, patch)

            sequence = IncidentAction.objects.filter(incident=incident).count() + 1
            IncidentAction.objects.create(
                incident=incident,
                sequence=sequence,
                action=transition.name,
                performed_by=actor,
                timestamp=now,
                details=details,
            )

        workflow_logger.info(
            f"Incident {incident.id}: {transition.name} by {actor.id} "
            f"(status={incident.status}, driver={incident.driver_status}, hospital={incident.hospital_status})"
        )
        self._emit(transition.name, incident, actor, details)
        return incident

    def _emit(self, transition_name, incident, actor, details):
        """Fire-and-forget notification fan-out."""
        try:
            self.notifier.notify_transition(transition_name, incident, actor, details)
        except Exception:
            logger.exception(f"Notification for {transition_name} on incident {incident.id} failed")


def get_incident_for(actor, incident_id):
    """Read path: NotFound when absent, Forbidden when not visible to the actor."""
    incident = store.find_by_id(incident_id)
    if not can_access(actor, incident):
        raise Forbidden()
    return incident


workflow = WorkflowEngine()
