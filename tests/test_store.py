import pytest
from django.test import override_settings

from core.exceptions import NotFound, ValidationError
from incidents import store
from incidents.models import (
    DriverStatus,
    HospitalStatus,
    Incident,
    IncidentAction,
    IncidentPhoto,
    IncidentPriority,
    IncidentStatus,
)


def _photo(name='crash.jpg', size=2048, mime_type='image/jpeg'):
    return {'filename': name, 'original_name': name, 'size': size, 'mime_type': mime_type}


class TestCreate:

    def test_defaults(self, citizen):
        incident = store.create_incident(citizen, [67.08, 24.90], address='Karachi')

        assert incident.status == IncidentStatus.PENDING
        assert incident.driver_status == DriverStatus.ASSIGNED
        assert incident.hospital_status == HospitalStatus.PENDING
        assert incident.priority == IncidentPriority.HIGH
        assert incident.category == 'Accident'
        assert incident.description == 'Accident reported'
        assert incident.coordinates == [67.08, 24.90]
        assert incident.reported_at is not None
        assert IncidentAction.objects.filter(incident=incident).count() == 0

    def test_explicit_fields(self, citizen):
        incident = store.create_incident(
            citizen, (10, -20), description='Bike slipped', priority=IncidentPriority.LOW,
            category='Accident',
        )
        assert incident.description == 'Bike slipped'
        assert incident.priority == IncidentPriority.LOW
        assert incident.longitude == 10.0
        assert incident.latitude == -20.0

    @pytest.mark.parametrize('coordinates', [
        None,
        [67.08],
        [67.08, 24.90, 3],
        '67.08,24.90',
        ['67.08', 24.90],
        [True, 24.90],
        [181, 24.90],
        [67.08, -91],
    ])
    def test_bad_coordinates(self, citizen, coordinates):
        with pytest.raises(ValidationError) as excinfo:
            store.create_incident(citizen, coordinates)
        assert excinfo.value.field == 'location.coordinates'
        assert Incident.objects.count() == 0

    def test_bad_priority(self, citizen):
        with pytest.raises(ValidationError) as excinfo:
            store.create_incident(citizen, [67.08, 24.90], priority='critical')
        assert excinfo.value.field == 'priority'

    def test_bad_category(self, citizen):
        with pytest.raises(ValidationError):
            store.create_incident(citizen, [67.08, 24.90], category='Fire')

    def test_photos_stored_with_incident(self, citizen):
        incident = store.create_incident(citizen, [67.08, 24.90], photos=[_photo('a.jpg'), _photo('b.png', mime_type='image/png')])
        names = set(incident.photos.values_list('filename', flat=True))
        assert names == {'a.jpg', 'b.png'}

    def test_bad_photo_rolls_back_incident(self, citizen):
        with pytest.raises(ValidationError):
            store.create_incident(citizen, [67.08, 24.90], photos=[_photo(mime_type='video/mp4')])
        assert Incident.objects.count() == 0


class TestFind:

    def test_find_by_id(self, incident):
        assert store.find_by_id(incident.id) == incident

    def test_find_by_id_missing(self, db):
        with pytest.raises(NotFound):
            store.find_by_id('4f8c6a9e-0d47-4b8e-9a55-3d2f1c0b7e61')

    def test_find_by_id_malformed(self, db):
        with pytest.raises(NotFound):
            store.find_by_id('not-a-uuid')

    def test_soft_deleted_is_not_found(self, incident):
        incident.soft_delete()
        with pytest.raises(NotFound):
            store.find_by_id(incident.id)

    def test_find_filters_and_pages(self, citizen):
        for priority in ['low', 'high', 'high', 'urgent']:
            store.create_incident(citizen, [67.0, 24.0], priority=priority)

        assert store.find(filters={'priority': 'high'}).count() == 2
        page = list(store.find(ordering=['created_at'], page=2, page_size=3))
        assert len(page) == 1


class TestPatch:

    def test_update_by_id(self, incident):
        store.update_by_id(incident.id, {'patient_condition': 'Stable'})
        incident.refresh_from_db()
        assert incident.patient_condition == 'Stable'

    def test_rejects_immutable_fields(self, incident):
        with pytest.raises(ValidationError):
            store.update_by_id(incident.id, {'longitude': 1.0})
        incident.refresh_from_db()
        assert incident.longitude == 67.08

    def test_rejects_bad_enum(self, incident):
        with pytest.raises(ValidationError):
            store.update_by_id(incident.id, {'driver_status': 'flying'})

    def test_rejects_unknown_department(self, incident):
        with pytest.raises(ValidationError):
            store.update_by_id(incident.id, {'assigned_department': 'Rescue 1122'})


class TestPhotos:

    def test_append(self, incident, citizen):
        store.add_photos(incident, [_photo()], uploaded_by=citizen)
        store.add_photos(incident, [_photo('second.jpg')], uploaded_by=citizen)
        assert IncidentPhoto.objects.filter(incident=incident).count() == 2

    @override_settings(INCIDENT_MAX_PHOTOS=2)
    def test_count_limit(self, incident):
        store.add_photos(incident, [_photo('1.jpg'), _photo('2.jpg')])
        with pytest.raises(ValidationError):
            store.add_photos(incident, [_photo('3.jpg')])

    @override_settings(INCIDENT_PHOTO_MAX_BYTES=1000)
    def test_size_limit(self, incident):
        with pytest.raises(ValidationError):
            store.add_photos(incident, [_photo(size=1001)])

    def test_octet_stream_allowed(self, incident):
        store.add_photos(incident, [_photo('cam', mime_type='application/octet-stream')])
        assert incident.photos.count() == 1
