"""
Incident authorization gate.

Single place deciding whether an actor may see or act on an incident:

- superadmin/admin: everything readable; approve, reject, assign
- citizen: read-only, own reports
- driver: incidents bound to them; driver-axis transitions only
- department: incidents of their department; driver assignment
- hospital: incidents headed to their hospital; hospital-axis transitions

can_access / can_transition are pure functions of the actor and the
incident row. visible_incidents_for is the same rule as a queryset.
"""

from rest_framework import permissions

from .models import Incident
from .transitions import TRANSITIONS, Axis


def _usable(actor):
    return bool(
        actor is not None
        and getattr(actor, 'is_authenticated', False)
        and actor.is_active
        and not actor.is_suspended
    )


def _owns_as_driver(actor, incident):
    return actor.is_driver and incident.assigned_driver_id is not None and incident.assigned_driver_id == actor.id


def _owns_as_department(actor, incident):
    return actor.is_department and bool(actor.department) and incident.assigned_department == actor.department


def _owns_as_hospital(actor, incident):
    return actor.is_hospital and bool(actor.hospital) and incident.patient_hospital == actor.hospital


def can_access(actor, incident):
    """May the actor read this incident?"""
    if not _usable(actor):
        return False
    if actor.is_admin_role:
        return True
    if actor.is_citizen:
        return incident.reported_by_id == actor.id
    return (
        _owns_as_driver(actor, incident)
        or _owns_as_department(actor, incident)
        or _owns_as_hospital(actor, incident)
    )


def can_act_on(actor, incident, axis):
    """May the actor invoke transitions on this axis of the incident?"""
    if not _usable(actor):
        return False
    if axis == Axis.TRIAGE:
        return actor.is_admin_role
    if axis == Axis.ASSIGNMENT:
        return actor.is_admin_role or _owns_as_department(actor, incident)
    if axis == Axis.DRIVER:
        return _owns_as_driver(actor, incident)
    if axis == Axis.HOSPITAL:
        return _owns_as_hospital(actor, incident)
    return False


def can_transition(actor, incident, transition_name):
    transition = TRANSITIONS.get(transition_name)
    if transition is None:
        return False
    return can_act_on(actor, incident, transition.axis)


def visible_incidents_for(actor):
    """Queryset of incidents the actor may read."""
    queryset = Incident.objects.all()
    if not _usable(actor):
        return queryset.none()
    if actor.is_admin_role:
        return queryset
    if actor.is_citizen:
        return queryset.filter(reported_by=actor)
    if actor.is_driver:
        return queryset.filter(assigned_driver=actor)
    if actor.is_department and actor.department:
        return queryset.filter(assigned_department=actor.department)
    if actor.is_hospital and actor.hospital:
        return queryset.filter(patient_hospital=actor.hospital)
    return queryset.none()


class IsIncidentReporterOrAdmin(permissions.BasePermission):
    """Photo uploads: the reporting citizen or an admin."""

    message = "You do not have permission to perform this action."

    def has_object_permission(self, request, view, obj):
        user = request.user
        if not _usable(user):
            return False
        return user.is_admin_role or obj.reported_by_id == user.id
