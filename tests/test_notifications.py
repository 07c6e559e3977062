from unittest import mock

import pytest

from authentication.models import UserRole, UserStatus
from incidents.services import IncidentService
from incidents.workflow import workflow
from notifications.models import Notification, NotificationType
from notifications.services import NotificationService
from tests.conftest import EDHI, JINNAH


def _inbox(user):
    return list(Notification.objects.filter(recipient=user).order_by('created_at'))


class TestFanOut:

    def test_incident_created_alerts_admins(self, citizen, admin, superadmin, make_user):
        suspended = make_user(UserRole.ADMIN, status=UserStatus.SUSPENDED)

        incident = IncidentService.create_incident(citizen, {'coordinates': [67.08, 24.90]})

        for user in (admin, superadmin):
            [notification] = _inbox(user)
            assert notification.notification_type == NotificationType.INCIDENT_ALERT
            assert notification.incident_id == incident.id
        assert _inbox(suspended) == []
        assert _inbox(citizen) == []

    def test_approve_notifies_department(self, incident, admin, dept_user, other_dept_user):
        workflow.approve(incident.id, admin, {'department': EDHI})

        [notification] = _inbox(dept_user)
        assert notification.notification_type == NotificationType.ASSIGNMENT
        assert EDHI in notification.message
        assert _inbox(other_dept_user) == []

    def test_reject_notifies_reporter(self, incident, admin, citizen):
        workflow.reject(incident.id, admin, {'reason': 'Duplicate report'})

        [notification] = _inbox(citizen)
        assert notification.title == 'Incident Rejected'
        assert 'Duplicate report' in notification.message

    def test_assign_notifies_driver(self, assigned_incident, driver):
        [notification] = _inbox(driver)
        assert notification.notification_type == NotificationType.ASSIGNMENT
        assert notification.incident_id == assigned_incident.id

    def test_transport_alerts_hospital(self, hospital_user, other_hospital_user, citizen, transporting_incident):
        [alert] = _inbox(hospital_user)
        assert alert.notification_type == NotificationType.HOSPITAL_ALERT
        assert alert.title == 'Incoming Patient'
        assert _inbox(other_hospital_user) == []

        titles = [n.title for n in _inbox(citizen)]
        assert titles == ['Ambulance Arrived', 'Incident Update']

    def test_pickup_terminal_notifies_reporter_and_department(self, assigned_incident, driver, citizen, dept_user):
        before = len(_inbox(dept_user))
        workflow.update_patient_pickup_status(assigned_incident.id, driver, {'status': 'expired'})

        assert 'expired' in _inbox(citizen)[-1].message
        assert len(_inbox(dept_user)) == before + 1

    def test_discharge_notifies_reporter_and_driver(self, transporting_incident, driver, hospital_user, citizen):
        workflow.update_hospital_status(transporting_incident.id, hospital_user, {'status': 'admitted', 'bed_number': 'B-7'})
        assert 'Bed: B-7' in _inbox(driver)[-1].message

        workflow.update_hospital_status(transporting_incident.id, hospital_user, {'status': 'discharged'})
        assert 'discharged' in _inbox(citizen)[-1].message
        assert 'discharged' in _inbox(driver)[-1].message


class TestIsolation:

    def test_service_failure_does_not_undo_transition(self, incident, admin):
        with mock.patch.object(NotificationService, 'notify_transition', side_effect=RuntimeError('db down')):
            result = workflow.approve(incident.id, admin, {'department': EDHI})

        assert result.status == 'assigned'
        incident.refresh_from_db()
        assert incident.status == 'assigned'

    def test_creation_survives_alert_failure(self, citizen, admin):
        with mock.patch.object(NotificationService, 'notify_incident_created', side_effect=RuntimeError('db down')):
            incident = IncidentService.create_incident(citizen, {'coordinates': [67.08, 24.90]})
        assert incident.pk is not None


class TestInbox:

    def test_unread_count_and_mark_all(self, citizen):
        for n in range(3):
            NotificationService.notify(citizen.id, f'Title {n}', 'Body')

        assert NotificationService.get_unread_count(citizen) == 3
        assert NotificationService.mark_all_read(citizen) == 3
        assert NotificationService.get_unread_count(citizen) == 0

    def test_mark_as_read(self, citizen):
        notification = NotificationService.notify(citizen.id, 'Hello', 'World')
        notification.mark_as_read()
        notification.refresh_from_db()
        assert notification.is_read
        assert notification.read_at is not None

    def test_duplicate_recipients_collapsed(self, incident, citizen):
        count = NotificationService._bulk_notify(
            [citizen, citizen, None], 'T', 'M', NotificationType.GENERAL, incident
        )
        assert count == 1


@pytest.mark.parametrize('name', ['unknown_transition', 'driver_assigned'])
def test_routes_without_recipients_do_not_fail(incident, admin, name):
    assert NotificationService.notify_transition(name, incident, admin, {}) == 0
