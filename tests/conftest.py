import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from authentication.models import User, UserRole
from incidents import store
from incidents.workflow import workflow

EDHI = 'Edhi Foundation'
CHIPPA = 'Chippa Ambulance'
JINNAH = 'Jinnah Hospital'
CIVIL = 'Civil Hospital'


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    counter = {'n': 0}

    def _make(role=UserRole.CITIZEN, **extra):
        counter['n'] += 1
        email = extra.pop('email', f"{role}{counter['n']}@rescuelink.test")
        extra.setdefault('name', f"{role.title()} {counter['n']}")
        return User.objects.create_user(email=email, password='Passw0rd!x', role=role, **extra)

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN)


@pytest.fixture
def superadmin(make_user):
    return make_user(UserRole.SUPERADMIN)


@pytest.fixture
def citizen(make_user):
    return make_user(UserRole.CITIZEN)


@pytest.fixture
def other_citizen(make_user):
    return make_user(UserRole.CITIZEN)


@pytest.fixture
def dept_user(make_user):
    return make_user(UserRole.DEPARTMENT, department=EDHI)


@pytest.fixture
def other_dept_user(make_user):
    return make_user(UserRole.DEPARTMENT, department=CHIPPA)


@pytest.fixture
def driver(make_user):
    return make_user(UserRole.DRIVER, department=EDHI, name='Aslam Khan', driving_license='EDH-0001')


@pytest.fixture
def other_driver(make_user):
    return make_user(UserRole.DRIVER, department=EDHI, name='Bilal Ahmed')


@pytest.fixture
def chippa_driver(make_user):
    return make_user(UserRole.DRIVER, department=CHIPPA)


@pytest.fixture
def hospital_user(make_user):
    return make_user(UserRole.HOSPITAL, hospital=JINNAH)


@pytest.fixture
def other_hospital_user(make_user):
    return make_user(UserRole.HOSPITAL, hospital=CIVIL)


@pytest.fixture
def incident(citizen):
    return store.create_incident(
        reported_by=citizen,
        coordinates=[67.08, 24.90],
        address='Shahrah-e-Faisal, Karachi',
    )


@pytest.fixture
def assigned_incident(incident, admin, dept_user, driver):
    """Approved to Edhi and bound to driver."""
    workflow.approve(incident.id, admin, {'department': EDHI})
    return workflow.assign_driver(incident.id, dept_user, {'driver_id': str(driver.id)})


@pytest.fixture
def transporting_incident(assigned_incident, driver):
    workflow.update_driver_status(assigned_incident.id, driver, {'status': 'arrived'})
    return workflow.update_driver_status(
        assigned_incident.id, driver, {'status': 'transporting', 'hospital': JINNAH}
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client
