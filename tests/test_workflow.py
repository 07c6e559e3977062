import pytest
from django.db import IntegrityError, transaction

from core.exceptions import Forbidden, InvalidTransition, NotFound, ValidationError
from incidents.models import (
    DriverStatus,
    HospitalStatus,
    IncidentAction,
    IncidentStatus,
    PatientPickupStatus,
)
from incidents.workflow import WorkflowEngine, workflow
from notifications.models import Notification
from tests.conftest import CHIPPA, EDHI, JINNAH


def _actions(incident):
    return list(
        IncidentAction.objects.filter(incident=incident)
        .order_by('sequence')
        .values_list('action', flat=True)
    )


class TestApprove:

    def test_assigns_department(self, incident, admin):
        result = workflow.approve(incident.id, admin, {'department': EDHI})

        incident.refresh_from_db()
        assert result.status == IncidentStatus.ASSIGNED
        assert incident.status == IncidentStatus.ASSIGNED
        assert incident.assigned_department == EDHI
        assert incident.assigned_by_id == admin.id
        assert incident.assigned_at is not None
        assert incident.first_assigned_at == incident.assigned_at
        assert _actions(incident) == ['approved_and_assigned']

        action = IncidentAction.objects.get(incident=incident)
        assert action.performed_by_id == admin.id
        assert action.sequence == 1
        assert action.details == {'department': EDHI}

    def test_superadmin_may_approve(self, incident, superadmin):
        workflow.approve(incident.id, superadmin, {'department': CHIPPA})
        incident.refresh_from_db()
        assert incident.assigned_department == CHIPPA

    def test_unknown_department(self, incident, admin):
        with pytest.raises(ValidationError) as excinfo:
            workflow.approve(incident.id, admin, {'department': 'Rescue 1122'})

        assert excinfo.value.field == 'department'
        incident.refresh_from_db()
        assert incident.status == IncidentStatus.PENDING
        assert _actions(incident) == []

    def test_missing_department(self, incident, admin):
        with pytest.raises(ValidationError):
            workflow.approve(incident.id, admin, {})

    def test_reapprove_same_department_is_noop(self, incident, admin):
        workflow.approve(incident.id, admin, {'department': EDHI})
        before = Notification.objects.count()

        result = workflow.approve(incident.id, admin, {'department': EDHI})

        assert result.status == IncidentStatus.ASSIGNED
        assert _actions(incident) == ['approved_and_assigned']
        assert Notification.objects.count() == before

    def test_reapprove_other_department_rejected(self, incident, admin):
        workflow.approve(incident.id, admin, {'department': EDHI})

        with pytest.raises(InvalidTransition) as excinfo:
            workflow.approve(incident.id, admin, {'department': CHIPPA})

        assert excinfo.value.from_state == IncidentStatus.ASSIGNED
        incident.refresh_from_db()
        assert incident.assigned_department == EDHI

    def test_non_admin_forbidden(self, incident, dept_user, citizen):
        for actor in (dept_user, citizen):
            with pytest.raises(Forbidden):
                workflow.approve(incident.id, actor, {'department': EDHI})

    def test_missing_incident(self, admin):
        with pytest.raises(NotFound):
            workflow.approve('4f8c6a9e-0d47-4b8e-9a55-3d2f1c0b7e61', admin, {'department': EDHI})


class TestReject:

    def test_reject(self, incident, admin):
        workflow.reject(incident.id, admin, {'reason': 'Duplicate report'})

        incident.refresh_from_db()
        assert incident.status == IncidentStatus.REJECTED
        assert incident.rejection_reason == 'Duplicate report'
        assert incident.is_terminal
        assert _actions(incident) == ['rejected']

    def test_reason_required(self, incident, admin):
        with pytest.raises(ValidationError) as excinfo:
            workflow.reject(incident.id, admin, {'reason': '   '})
        assert excinfo.value.field == 'reason'

    def test_only_from_pending(self, incident, admin):
        workflow.approve(incident.id, admin, {'department': EDHI})
        with pytest.raises(InvalidTransition) as excinfo:
            workflow.reject(incident.id, admin, {'reason': 'Late'})
        assert excinfo.value.from_state == IncidentStatus.ASSIGNED
        assert excinfo.value.to_state == IncidentStatus.REJECTED

    def test_rejected_cannot_be_approved(self, incident, admin):
        workflow.reject(incident.id, admin, {'reason': 'Prank call'})
        with pytest.raises(InvalidTransition):
            workflow.approve(incident.id, admin, {'department': EDHI})


class TestAssignDriver:

    def test_department_assigns_own_driver(self, incident, admin, dept_user, driver):
        workflow.approve(incident.id, admin, {'department': EDHI})
        workflow.assign_driver(incident.id, dept_user, {'driver_id': str(driver.id)})

        incident.refresh_from_db()
        assert incident.status == IncidentStatus.ASSIGNED
        assert incident.driver_status == DriverStatus.ASSIGNED
        assert incident.assigned_driver_id == driver.id
        assert incident.assigned_driver_name == 'Aslam Khan'
        assert incident.assigned_by_id == dept_user.id
        assert _actions(incident) == ['approved_and_assigned', 'driver_assigned']

    def test_admin_may_assign(self, incident, admin, driver):
        workflow.approve(incident.id, admin, {'department': EDHI})
        workflow.assign_driver(incident.id, admin, {'driver_id': str(driver.id)})
        incident.refresh_from_db()
        assert incident.assigned_driver_id == driver.id

    def test_driver_name_is_a_snapshot(self, assigned_incident, driver):
        driver.name = 'Renamed Driver'
        driver.save()
        assigned_incident.refresh_from_db()
        assert assigned_incident.assigned_driver_name == 'Aslam Khan'

    def test_other_department_forbidden(self, incident, admin, other_dept_user, driver):
        workflow.approve(incident.id, admin, {'department': EDHI})
        with pytest.raises(Forbidden):
            workflow.assign_driver(incident.id, other_dept_user, {'driver_id': str(driver.id)})

    def test_not_yet_approved(self, incident, admin, driver):
        with pytest.raises(InvalidTransition) as excinfo:
            workflow.assign_driver(incident.id, admin, {'driver_id': str(driver.id)})
        assert excinfo.value.from_state == IncidentStatus.PENDING

    def test_unknown_driver(self, incident, admin):
        workflow.approve(incident.id, admin, {'department': EDHI})
        with pytest.raises(NotFound):
            workflow.assign_driver(incident.id, admin, {'driver_id': '4f8c6a9e-0d47-4b8e-9a55-3d2f1c0b7e61'})

    def test_missing_driver_id(self, incident, admin):
        workflow.approve(incident.id, admin, {'department': EDHI})
        with pytest.raises(ValidationError):
            workflow.assign_driver(incident.id, admin, {})

    def test_reassign_before_arrival(self, assigned_incident, dept_user, other_driver):
        workflow.assign_driver(assigned_incident.id, dept_user, {'driver_id': str(other_driver.id)})
        assigned_incident.refresh_from_db()
        assert assigned_incident.assigned_driver_id == other_driver.id
        assert len(_actions(assigned_incident)) == 3

    def test_no_reassign_after_arrival(self, assigned_incident, dept_user, driver, other_driver):
        workflow.update_driver_status(assigned_incident.id, driver, {'status': 'arrived'})
        with pytest.raises(InvalidTransition):
            workflow.assign_driver(assigned_incident.id, dept_user, {'driver_id': str(other_driver.id)})
        assigned_incident.refresh_from_db()
        assert assigned_incident.assigned_driver_id == driver.id


class TestDriverStatus:

    def test_full_transport_path(self, assigned_incident, driver):
        workflow.update_driver_status(assigned_incident.id, driver, {'status': 'arrived'})
        incident = assigned_incident
        incident.refresh_from_db()
        assert incident.driver_status == DriverStatus.ARRIVED
        assert incident.status == IncidentStatus.IN_PROGRESS
        assert incident.arrived_at is not None

        workflow.update_driver_status(
            incident.id, driver, {'status': 'transporting', 'hospital': JINNAH, 'condition': 'Critical'}
        )
        incident.refresh_from_db()
        assert incident.driver_status == DriverStatus.TRANSPORTING
        assert incident.hospital_status == HospitalStatus.INCOMING
        assert incident.patient_hospital == JINNAH
        assert incident.patient_condition == 'Critical'
        assert incident.transporting_at is not None

        workflow.update_driver_status(incident.id, driver, {'status': 'delivered', 'hospital': JINNAH})
        incident.refresh_from_db()
        assert incident.status == IncidentStatus.COMPLETED
        assert incident.driver_status == DriverStatus.COMPLETED
        assert incident.hospital_status == HospitalStatus.INCOMING
        assert incident.delivered_at is not None
        assert incident.completed_at is not None
        assert _actions(incident)[-3:] == ['driver_arrived', 'driver_transporting', 'driver_delivered']

    def test_default_transport_condition(self, assigned_incident, driver):
        workflow.update_driver_status(assigned_incident.id, driver, {'status': 'arrived'})
        workflow.update_driver_status(assigned_incident.id, driver, {'status': 'transporting', 'hospital': JINNAH})
        assigned_incident.refresh_from_db()
        assert assigned_incident.patient_condition == 'Being transported to hospital'

    def test_skipping_arrived(self, assigned_incident, driver):
        before = len(_actions(assigned_incident))

        with pytest.raises(InvalidTransition) as excinfo:
            workflow.update_driver_status(
                assigned_incident.id, driver, {'status': 'transporting', 'hospital': JINNAH}
            )

        assert excinfo.value.from_state == 'assigned'
        assert excinfo.value.to_state == 'transporting'
        assert str(excinfo.value) == 'Invalid status transition from assigned to transporting'
        assigned_incident.refresh_from_db()
        assert assigned_incident.driver_status == DriverStatus.ASSIGNED
        assert assigned_incident.patient_hospital == ''
        assert assigned_incident.hospital_status == HospitalStatus.PENDING
        assert len(_actions(assigned_incident)) == before

    def test_transporting_requires_hospital(self, assigned_incident, driver):
        workflow.update_driver_status(assigned_incident.id, driver, {'status': 'arrived'})
        with pytest.raises(ValidationError) as excinfo:
            workflow.update_driver_status(assigned_incident.id, driver, {'status': 'transporting'})
        assert excinfo.value.field == 'hospital'
        assigned_incident.refresh_from_db()
        assert assigned_incident.driver_status == DriverStatus.ARRIVED

    def test_delivered_falls_back_to_recorded_hospital(self, transporting_incident, driver):
        workflow.update_driver_status(transporting_incident.id, driver, {'status': 'delivered'})
        transporting_incident.refresh_from_db()
        assert transporting_incident.patient_hospital == JINNAH
        assert transporting_incident.status == IncidentStatus.COMPLETED

    def test_completed_from_any_state(self, assigned_incident, driver):
        workflow.update_driver_status(assigned_incident.id, driver, {'status': 'completed'})
        assigned_incident.refresh_from_db()
        assert assigned_incident.driver_status == DriverStatus.COMPLETED
        assert assigned_incident.status == IncidentStatus.COMPLETED
        assert assigned_incident.completed_at is not None

    def test_completed_twice_rejected(self, assigned_incident, driver):
        workflow.update_driver_status(assigned_incident.id, driver, {'status': 'completed'})
        with pytest.raises(InvalidTransition):
            workflow.update_driver_status(assigned_incident.id, driver, {'status': 'completed'})
        assert _actions(assigned_incident).count('driver_completed') == 1

    def test_repeated_arrived_rejected(self, assigned_incident, driver):
        workflow.update_driver_status(assigned_incident.id, driver, {'status': 'arrived'})
        with pytest.raises(InvalidTransition):
            workflow.update_driver_status(assigned_incident.id, driver, {'status': 'arrived'})

    def test_unknown_status(self, assigned_incident, driver):
        with pytest.raises(ValidationError) as excinfo:
            workflow.update_driver_status(assigned_incident.id, driver, {'status': 'flying'})
        assert excinfo.value.field == 'status'

    def test_assigned_is_not_a_driver_transition(self, assigned_incident, driver):
        with pytest.raises(ValidationError):
            workflow.update_driver_status(assigned_incident.id, driver, {'status': 'assigned'})

    def test_missing_status(self, assigned_incident, driver):
        with pytest.raises(ValidationError):
            workflow.update_driver_status(assigned_incident.id, driver, {})

    def test_other_driver_forbidden(self, assigned_incident, other_driver):
        with pytest.raises(Forbidden):
            workflow.update_driver_status(assigned_incident.id, other_driver, {'status': 'arrived'})

    def test_forbidden_before_state_check(self, assigned_incident, admin):
        # an invalid request from an unauthorized actor is still Forbidden
        with pytest.raises(Forbidden):
            workflow.update_driver_status(assigned_incident.id, admin, {'status': 'delivered'})


class TestPatientPickup:

    def test_picked_up(self, assigned_incident, driver):
        workflow.update_patient_pickup_status(assigned_incident.id, driver, {'status': 'picked_up'})
        assigned_incident.refresh_from_db()
        assert assigned_incident.patient_pickup_status == PatientPickupStatus.PICKED_UP
        assert assigned_incident.driver_status == DriverStatus.TRANSPORTING
        assert assigned_incident.status == IncidentStatus.IN_PROGRESS

    @pytest.mark.parametrize('outcome', ['taken_by_someone', 'expired'])
    def test_terminal_outcomes(self, assigned_incident, driver, outcome):
        workflow.update_driver_status(assigned_incident.id, driver, {'status': 'arrived'})
        workflow.update_patient_pickup_status(
            assigned_incident.id, driver, {'status': outcome, 'notes': 'Family took the patient'}
        )
        assigned_incident.refresh_from_db()
        assert assigned_incident.driver_status == DriverStatus.COMPLETED
        assert assigned_incident.status == IncidentStatus.COMPLETED
        assert assigned_incident.completed_at is not None
        assert assigned_incident.hospital_status == HospitalStatus.PENDING
        assert assigned_incident.patient_pickup_notes == 'Family took the patient'
        assert _actions(assigned_incident)[-1] == f'patient_pickup_{outcome}'

    def test_after_completion_rejected(self, assigned_incident, driver):
        workflow.update_patient_pickup_status(assigned_incident.id, driver, {'status': 'expired'})
        with pytest.raises(InvalidTransition):
            workflow.update_patient_pickup_status(assigned_incident.id, driver, {'status': 'picked_up'})

    def test_unknown_pickup_status(self, assigned_incident, driver):
        with pytest.raises(ValidationError):
            workflow.update_patient_pickup_status(assigned_incident.id, driver, {'status': 'lost'})


class TestHospitalStatus:

    def test_admit_and_discharge(self, transporting_incident, driver, hospital_user):
        workflow.update_driver_status(transporting_incident.id, driver, {'status': 'delivered'})
        transporting_incident.refresh_from_db()
        completed_at = transporting_incident.completed_at

        workflow.update_hospital_status(
            transporting_incident.id, hospital_user,
            {'status': 'admitted', 'bed_number': 'B-12', 'doctor': 'Dr. Ahmed'},
        )
        transporting_incident.refresh_from_db()
        assert transporting_incident.hospital_status == HospitalStatus.ADMITTED
        assert transporting_incident.bed_number == 'B-12'
        assert transporting_incident.doctor == 'Dr. Ahmed'
        assert transporting_incident.admitted_at is not None

        workflow.update_hospital_status(transporting_incident.id, hospital_user, {'status': 'discharged'})
        transporting_incident.refresh_from_db()
        assert transporting_incident.hospital_status == HospitalStatus.DISCHARGED
        assert transporting_incident.status == IncidentStatus.COMPLETED
        assert transporting_incident.driver_status == DriverStatus.COMPLETED
        assert transporting_incident.discharged_at is not None
        assert transporting_incident.completed_at == completed_at

    def test_admit_while_transporting(self, transporting_incident, hospital_user):
        workflow.update_hospital_status(transporting_incident.id, hospital_user, {'status': 'admitted'})
        transporting_incident.refresh_from_db()
        assert transporting_incident.hospital_status == HospitalStatus.ADMITTED

    def test_discharge_requires_admission(self, transporting_incident, hospital_user):
        with pytest.raises(InvalidTransition) as excinfo:
            workflow.update_hospital_status(transporting_incident.id, hospital_user, {'status': 'discharged'})
        assert excinfo.value.from_state == HospitalStatus.INCOMING
        assert excinfo.value.to_state == HospitalStatus.DISCHARGED

    @pytest.mark.parametrize('requested', [
        HospitalStatus.PENDING, HospitalStatus.INCOMING, HospitalStatus.CANCELLED,
    ])
    def test_known_status_without_transition(self, transporting_incident, hospital_user, requested):
        with pytest.raises(InvalidTransition) as excinfo:
            workflow.update_hospital_status(transporting_incident.id, hospital_user, {'status': requested})
        assert excinfo.value.from_state == HospitalStatus.INCOMING
        assert excinfo.value.to_state == requested
        assert 'hospital_' + requested not in _actions(transporting_incident)

    def test_unknown_hospital_status(self, transporting_incident, hospital_user):
        with pytest.raises(ValidationError) as excinfo:
            workflow.update_hospital_status(transporting_incident.id, hospital_user, {'status': 'transferred'})
        assert excinfo.value.field == 'status'

    def test_other_hospital_forbidden(self, transporting_incident, other_hospital_user):
        with pytest.raises(Forbidden):
            workflow.update_hospital_status(transporting_incident.id, other_hospital_user, {'status': 'admitted'})

    def test_driver_cannot_use_hospital_axis(self, transporting_incident, driver):
        with pytest.raises(Forbidden):
            workflow.update_hospital_status(transporting_incident.id, driver, {'status': 'admitted'})

    def test_hospital_cannot_use_driver_axis(self, transporting_incident, hospital_user):
        with pytest.raises(Forbidden):
            workflow.update_driver_status(transporting_incident.id, hospital_user, {'status': 'delivered'})


class TestActionLog:

    def test_one_entry_per_transition(self, transporting_incident, driver, hospital_user):
        workflow.update_driver_status(transporting_incident.id, driver, {'status': 'delivered'})
        workflow.update_hospital_status(transporting_incident.id, hospital_user, {'status': 'admitted'})
        workflow.update_hospital_status(transporting_incident.id, hospital_user, {'status': 'discharged'})

        entries = list(IncidentAction.objects.filter(incident=transporting_incident).order_by('sequence'))
        assert [entry.sequence for entry in entries] == list(range(1, 8))
        assert [entry.action for entry in entries] == [
            'approved_and_assigned',
            'driver_assigned',
            'driver_arrived',
            'driver_transporting',
            'driver_delivered',
            'hospital_admitted',
            'hospital_discharged',
        ]

    def test_repeated_transition_logged_once(self, assigned_incident, driver):
        workflow.update_driver_status(assigned_incident.id, driver, {'status': 'arrived'})
        with pytest.raises(InvalidTransition):
            workflow.update_driver_status(assigned_incident.id, driver, {'status': 'arrived'})

        assert _actions(assigned_incident).count('driver_arrived') == 1
        sequences = list(
            IncidentAction.objects.filter(incident=assigned_incident)
            .order_by('sequence')
            .values_list('sequence', flat=True)
        )
        assert sequences == list(range(1, len(sequences) + 1))

    def test_sequence_is_unique_per_incident(self, assigned_incident, admin):
        first = IncidentAction.objects.filter(incident=assigned_incident).first()
        with pytest.raises(IntegrityError), transaction.atomic():
            IncidentAction.objects.create(
                incident=assigned_incident,
                sequence=first.sequence,
                action='duplicate',
                performed_by=admin,
            )

    def test_failed_transitions_not_logged(self, assigned_incident, driver, hospital_user):
        before = len(_actions(assigned_incident))
        for payload in ({'status': 'delivered'}, {'status': 'nope'}):
            with pytest.raises((InvalidTransition, ValidationError)):
                workflow.update_driver_status(assigned_incident.id, driver, payload)
        with pytest.raises(Forbidden):
            workflow.update_hospital_status(assigned_incident.id, hospital_user, {'status': 'admitted'})
        assert len(_actions(assigned_incident)) == before

    def test_entries_are_immutable(self, assigned_incident):
        entry = IncidentAction.objects.filter(incident=assigned_incident).first()
        entry.action = 'tampered'
        with pytest.raises(PermissionError):
            entry.save()
        with pytest.raises(PermissionError):
            entry.delete()
        with pytest.raises(PermissionError):
            IncidentAction.objects.filter(incident=assigned_incident).update(action='tampered')
        with pytest.raises(PermissionError):
            IncidentAction.objects.filter(incident=assigned_incident).delete()


class _BrokenNotifier:

    def __init__(self):
        self.calls = 0

    def notify_transition(self, *args, **kwargs):
        self.calls += 1
        raise RuntimeError('push gateway down')


class TestNotifierFailure:

    def test_transition_persists_when_notifier_raises(self, incident, admin):
        notifier = _BrokenNotifier()
        engine = WorkflowEngine(notifier=notifier)

        result = engine.approve(incident.id, admin, {'department': EDHI})

        assert notifier.calls == 1
        assert result.status == IncidentStatus.ASSIGNED
        incident.refresh_from_db()
        assert incident.status == IncidentStatus.ASSIGNED
        assert _actions(incident) == ['approved_and_assigned']

    def test_failure_is_logged(self, incident, admin, caplog):
        engine = WorkflowEngine(notifier=_BrokenNotifier())
        with caplog.at_level('ERROR', logger='incidents.workflow'):
            engine.approve(incident.id, admin, {'department': EDHI})
        assert 'approved_and_assigned' in caplog.text
