"""
Serializers for RescueLink incidents.

Output nests the flat Incident columns back into the document shape
the mobile apps consume (location, assigned_to, patient_status,
timestamps). Transition payload serializers only shape input; state
and enum rules are enforced by incidents.workflow.
"""

from rest_framework import serializers

from .models import Incident, IncidentAction, IncidentPhoto, IncidentPriority


class ActorSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    name = serializers.CharField(read_only=True)
    phone = serializers.CharField(read_only=True)


class IncidentPhotoSerializer(serializers.ModelSerializer):

    class Meta:
        model = IncidentPhoto
        fields = ['id', 'filename', 'original_name', 'size', 'mime_type', 'uploaded_at']
        read_only_fields = fields


class IncidentActionSerializer(serializers.ModelSerializer):
    performed_by = ActorSerializer(read_only=True)

    class Meta:
        model = IncidentAction
        fields = ['id', 'sequence', 'action', 'performed_by', 'timestamp', 'details']
        read_only_fields = fields


class IncidentSerializer(serializers.ModelSerializer):
    """Incident representation for lists and transition responses."""

    reported_by = ActorSerializer(read_only=True)
    location = serializers.SerializerMethodField()
    assigned_to = serializers.SerializerMethodField()
    patient_status = serializers.SerializerMethodField()
    timestamps = serializers.SerializerMethodField()
    photos = IncidentPhotoSerializer(many=True, read_only=True)

    class Meta:
        model = Incident
        fields = [
            'id',
            'reported_by',
            'description',
            'category',
            'priority',
            'location',
            'photos',
            'status',
            'driver_status',
            'hospital_status',
            'assigned_to',
            'patient_status',
            'patient_pickup_status',
            'patient_pickup_notes',
            'rejection_reason',
            'timestamps',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_location(self, obj):
        return {
            'type': 'Point',
            'coordinates': obj.coordinates,
            'address': obj.address,
        }

    def get_assigned_to(self, obj):
        return {
            'department': obj.assigned_department or None,
            'driver': str(obj.assigned_driver_id) if obj.assigned_driver_id else None,
            'driver_name': obj.assigned_driver_name or None,
            'assigned_at': obj.assigned_at,
            'assigned_by': str(obj.assigned_by_id) if obj.assigned_by_id else None,
        }

    def get_patient_status(self, obj):
        return {
            'condition': obj.patient_condition,
            'hospital': obj.patient_hospital or None,
            'medical_notes': obj.medical_notes,
            'treatment': obj.treatment,
            'doctor': obj.doctor,
            'bed_number': obj.bed_number,
            'updated_at': obj.patient_status_updated_at,
        }

    def get_timestamps(self, obj):
        return {
            'reported_at': obj.reported_at,
            'assigned_at': obj.first_assigned_at,
            'arrived_at': obj.arrived_at,
            'transporting_at': obj.transporting_at,
            'delivered_at': obj.delivered_at,
            'admitted_at': obj.admitted_at,
            'discharged_at': obj.discharged_at,
            'completed_at': obj.completed_at,
        }


class IncidentDetailSerializer(IncidentSerializer):
    """Adds the action log."""

    actions = IncidentActionSerializer(many=True, read_only=True)

    class Meta(IncidentSerializer.Meta):
        fields = IncidentSerializer.Meta.fields + ['actions']
        read_only_fields = fields


# =============================================================================
# INPUT
# =============================================================================

class LocationSerializer(serializers.Serializer):
    # shape and range are checked by incidents.store
    coordinates = serializers.JSONField()
    address = serializers.CharField(required=False, allow_blank=True, max_length=500)


class PhotoInputSerializer(serializers.Serializer):
    filename = serializers.CharField(max_length=255)
    original_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    size = serializers.IntegerField(min_value=0)
    mime_type = serializers.CharField(max_length=100)


class IncidentCreateSerializer(serializers.Serializer):
    """
    Citizen report.

    {
        "description": "Two cars collided",
        "priority": "high",
        "location": {"coordinates": [67.08, 24.90], "address": "optional"},
        "photos": [{"filename": "...", "size": 1024, "mime_type": "image/jpeg"}]
    }
    """

    description = serializers.CharField(required=False, allow_blank=True)
    priority = serializers.ChoiceField(choices=IncidentPriority.CHOICES, required=False)
    category = serializers.CharField(required=False)
    location = LocationSerializer()
    photos = PhotoInputSerializer(many=True, required=False)


class PhotoAppendSerializer(serializers.Serializer):
    photos = PhotoInputSerializer(many=True, allow_empty=False)


class ApproveSerializer(serializers.Serializer):
    department = serializers.CharField(required=False, allow_blank=True)


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True)


class AssignDriverSerializer(serializers.Serializer):
    driver_id = serializers.CharField(required=False, allow_blank=True)


class DriverStatusSerializer(serializers.Serializer):
    status = serializers.CharField(required=False, allow_blank=True)
    hospital = serializers.CharField(required=False, allow_blank=True)
    condition = serializers.CharField(required=False, allow_blank=True)


class PatientPickupSerializer(serializers.Serializer):
    status = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class HospitalStatusSerializer(serializers.Serializer):
    status = serializers.CharField(required=False, allow_blank=True)
    bed_number = serializers.CharField(required=False, allow_blank=True)
    doctor = serializers.CharField(required=False, allow_blank=True)
    condition = serializers.CharField(required=False, allow_blank=True)
    medical_notes = serializers.CharField(required=False, allow_blank=True)
    treatment = serializers.CharField(required=False, allow_blank=True)
