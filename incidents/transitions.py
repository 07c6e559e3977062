"""
Incident transition table.

Every state change an incident can undergo is one entry in TRANSITIONS.
An entry names the axis it belongs to (which decides who may invoke it),
the field it guards, the states it may start from, and an effect that
builds the patch to write. Cross-axis coupling lives in the effects:

    driver_transporting   hospital_status -> incoming
    driver_delivered      hospital_status -> incoming, status -> completed,
                          driver_status stored as completed
    hospital_discharged   status -> completed, driver_status -> completed

Effects validate their payload before building the patch, so a failed
request never leaves partial writes.
"""

from core.exceptions import InvalidTransition, ValidationError
from .assignment import AssignmentResolver
from .models import (
    DriverStatus,
    HospitalStatus,
    IncidentStatus,
    PatientPickupStatus,
)

DEFAULT_TRANSPORT_CONDITION = 'Being transported to hospital'


class Axis:
    """Who owns a transition."""
    TRIAGE = 'triage'            # admin approve/reject
    ASSIGNMENT = 'assignment'    # department or admin binds a driver
    DRIVER = 'driver'
    HOSPITAL = 'hospital'


class Transition:
    """
    One named state change.

    field is the status field whose current value is checked against
    from_states; requested is the sub-status reported in InvalidTransition.
    """

    def __init__(self, name, axis, field, from_states, requested, effect):
        self.name = name
        self.axis = axis
        self.field = field
        self.from_states = frozenset(from_states)
        self.requested = requested
        self.effect = effect

    def __repr__(self):
        return f"<Transition {self.name}>"

    def allows(self, incident):
        return getattr(incident, self.field) in self.from_states


def _stamp(incident, patch, field, now):
    """Lifecycle instants are written the first time only."""
    if getattr(incident, field) is None:
        patch[field] = now


def _text(payload, key):
    value = payload.get(key)
    if value is None:
        return ''
    return str(value).strip()


def _patient_fields(payload):
    """Optional patient status fields supplied by driver or hospital."""
    mapping = {
        'condition': 'patient_condition',
        'medical_notes': 'medical_notes',
        'treatment': 'treatment',
        'doctor': 'doctor',
        'bed_number': 'bed_number',
    }
    patch = {}
    for key, field in mapping.items():
        value = _text(payload, key)
        if value:
            patch[field] = value
    return patch


# =============================================================================
# TRIAGE
# =============================================================================

def _approve(incident, actor, payload, now):
    return AssignmentResolver.approve_and_assign_department(
        incident, payload.get('department'), actor, now
    )


def _reject(incident, actor, payload, now):
    reason = _text(payload, 'reason')
    if not reason:
        raise ValidationError('A rejection reason is required', field='reason')
    return {'status': IncidentStatus.REJECTED, 'rejection_reason': reason}, {'reason': reason}


def _assign_driver(incident, actor, payload, now):
    # drivers can only be (re)bound before the current one has acted
    if incident.driver_status != DriverStatus.ASSIGNED:
        raise InvalidTransition(incident.driver_status, DriverStatus.ASSIGNED)
    return AssignmentResolver.assign_driver(incident, payload.get('driver_id'), actor, now)


# =============================================================================
# DRIVER
# =============================================================================

def _driver_arrived(incident, actor, payload, now):
    patch = {
        'driver_status': DriverStatus.ARRIVED,
        'status': IncidentStatus.IN_PROGRESS,
    }
    _stamp(incident, patch, 'arrived_at', now)
    return patch, {}


def _driver_transporting(incident, actor, payload, now):
    hospital = _text(payload, 'hospital')
    if not hospital:
        raise ValidationError('hospital is required when transporting', field='hospital')

    patch = {
        'driver_status': DriverStatus.TRANSPORTING,
        'hospital_status': HospitalStatus.INCOMING,
        'status': IncidentStatus.IN_PROGRESS,
        'patient_hospital': hospital,
        'patient_condition': _text(payload, 'condition') or DEFAULT_TRANSPORT_CONDITION,
        'patient_status_updated_at': now,
    }
    _stamp(incident, patch, 'transporting_at', now)
    return patch, {'hospital': hospital, 'condition': patch['patient_condition']}


def _driver_delivered(incident, actor, payload, now):
    hospital = _text(payload, 'hospital') or incident.patient_hospital
    if not hospital:
        raise ValidationError('hospital is required when delivering', field='hospital')

    # delivered is folded into completed on the driver axis
    patch = {
        'driver_status': DriverStatus.COMPLETED,
        'hospital_status': HospitalStatus.INCOMING,
        'status': IncidentStatus.COMPLETED,
        'patient_hospital': hospital,
        'patient_status_updated_at': now,
    }
    condition = _text(payload, 'condition')
    if condition:
        patch['patient_condition'] = condition
    _stamp(incident, patch, 'delivered_at', now)
    _stamp(incident, patch, 'completed_at', now)
    return patch, {'hospital': hospital}


def _driver_completed(incident, actor, payload, now):
    patch = {
        'driver_status': DriverStatus.COMPLETED,
        'status': IncidentStatus.COMPLETED,
    }
    _stamp(incident, patch, 'completed_at', now)
    return patch, {}


def _pickup(pickup_status):
    def effect(incident, actor, payload, now):
        notes = _text(payload, 'notes')
        patch = {
            'patient_pickup_status': pickup_status,
            'patient_pickup_notes': notes,
        }
        if pickup_status == PatientPickupStatus.PICKED_UP:
            patch['driver_status'] = DriverStatus.TRANSPORTING
            patch['status'] = IncidentStatus.IN_PROGRESS
            _stamp(incident, patch, 'transporting_at', now)
        else:
            patch['driver_status'] = DriverStatus.COMPLETED
            patch['status'] = IncidentStatus.COMPLETED
            _stamp(incident, patch, 'completed_at', now)
        return patch, {'pickup_status': pickup_status, 'notes': notes}
    return effect


# =============================================================================
# HOSPITAL
# =============================================================================

def _hospital_admitted(incident, actor, payload, now):
    patch = {'hospital_status': HospitalStatus.ADMITTED, 'patient_status_updated_at': now}
    patch.update(_patient_fields(payload))
    _stamp(incident, patch, 'admitted_at', now)
    return patch, {
        'bed_number': patch.get('bed_number', incident.bed_number),
        'doctor': patch.get('doctor', incident.doctor),
    }


def _hospital_discharged(incident, actor, payload, now):
    patch = {
        'hospital_status': HospitalStatus.DISCHARGED,
        'status': IncidentStatus.COMPLETED,
        'driver_status': DriverStatus.COMPLETED,
        'patient_status_updated_at': now,
    }
    patch.update(_patient_fields(payload))
    _stamp(incident, patch, 'discharged_at', now)
    _stamp(incident, patch, 'completed_at', now)
    return patch, {}


# =============================================================================
# TABLE
# =============================================================================

APPROVE = 'approved_and_assigned'
REJECT = 'rejected'
ASSIGN_DRIVER = 'driver_assigned'

_NOT_COMPLETED_DRIVER = [
    DriverStatus.ASSIGNED,
    DriverStatus.ARRIVED,
    DriverStatus.TRANSPORTING,
    DriverStatus.DELIVERED,
]

TRANSITIONS = {
    t.name: t for t in [
        Transition(APPROVE, Axis.TRIAGE, 'status',
                   [IncidentStatus.PENDING], IncidentStatus.ASSIGNED, _approve),
        Transition(REJECT, Axis.TRIAGE, 'status',
                   [IncidentStatus.PENDING], IncidentStatus.REJECTED, _reject),
        Transition(ASSIGN_DRIVER, Axis.ASSIGNMENT, 'status',
                   [IncidentStatus.APPROVED, IncidentStatus.ASSIGNED], IncidentStatus.ASSIGNED,
                   _assign_driver),

        Transition('driver_arrived', Axis.DRIVER, 'driver_status',
                   [DriverStatus.ASSIGNED], DriverStatus.ARRIVED, _driver_arrived),
        Transition('driver_transporting', Axis.DRIVER, 'driver_status',
                   [DriverStatus.ARRIVED], DriverStatus.TRANSPORTING, _driver_transporting),
        Transition('driver_delivered', Axis.DRIVER, 'driver_status',
                   [DriverStatus.TRANSPORTING], DriverStatus.DELIVERED, _driver_delivered),
        Transition('driver_completed', Axis.DRIVER, 'driver_status',
                   _NOT_COMPLETED_DRIVER, DriverStatus.COMPLETED, _driver_completed),

        Transition('patient_pickup_picked_up', Axis.DRIVER, 'driver_status',
                   [DriverStatus.ASSIGNED, DriverStatus.ARRIVED],
                   PatientPickupStatus.PICKED_UP, _pickup(PatientPickupStatus.PICKED_UP)),
        Transition('patient_pickup_taken_by_someone', Axis.DRIVER, 'driver_status',
                   [DriverStatus.ASSIGNED, DriverStatus.ARRIVED, DriverStatus.TRANSPORTING],
                   PatientPickupStatus.TAKEN_BY_SOMEONE, _pickup(PatientPickupStatus.TAKEN_BY_SOMEONE)),
        Transition('patient_pickup_expired', Axis.DRIVER, 'driver_status',
                   [DriverStatus.ASSIGNED, DriverStatus.ARRIVED, DriverStatus.TRANSPORTING],
                   PatientPickupStatus.EXPIRED, _pickup(PatientPickupStatus.EXPIRED)),

        Transition('hospital_admitted', Axis.HOSPITAL, 'hospital_status',
                   [HospitalStatus.INCOMING], HospitalStatus.ADMITTED, _hospital_admitted),
        Transition('hospital_discharged', Axis.HOSPITAL, 'hospital_status',
                   [HospitalStatus.ADMITTED], HospitalStatus.DISCHARGED, _hospital_discharged),
    ]
}


def _resolve(prefix, requested, axis):
    transition = TRANSITIONS.get(f"{prefix}{requested}")
    if transition is not None and transition.axis == axis:
        return transition
    return None


def driver_transition(requested):
    return _resolve('driver_', requested, Axis.DRIVER)


def pickup_transition(requested):
    return _resolve('patient_pickup_', requested, Axis.DRIVER)


def hospital_transition(requested):
    return _resolve('hospital_', requested, Axis.HOSPITAL)
