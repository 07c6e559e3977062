"""
Incident views for RescueLink Backend.

Provides REST API endpoints for:
- Incident reporting (any authenticated user) and role-scoped listing
- Incident detail, action log and admin soft delete
- Photo attachment
- Workflow verbs: approve, reject, assign driver, driver status,
  patient pickup, hospital status

Every incident read or write goes through the authorization gate in
incidents.permissions; workflow errors are rendered by the core
exception handler.
"""

import logging

from django.db import transaction
from rest_framework import generics, status, views
from rest_framework.filters import OrderingFilter
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from authentication.permissions import IsAdminRole, IsAuthenticated
from . import store
from .filters import IncidentFilter
from .models import IncidentAction
from .permissions import IsIncidentReporterOrAdmin, visible_incidents_for
from .serializers import (
    ApproveSerializer,
    AssignDriverSerializer,
    DriverStatusSerializer,
    HospitalStatusSerializer,
    IncidentActionSerializer,
    IncidentCreateSerializer,
    IncidentDetailSerializer,
    IncidentPhotoSerializer,
    IncidentSerializer,
    PatientPickupSerializer,
    PhotoAppendSerializer,
    RejectSerializer,
)
from .services import IncidentService
from .workflow import get_incident_for, workflow

logger = logging.getLogger(__name__)


class IncidentListCreateView(generics.ListAPIView):
    """
    GET  /api/v1/incidents/    incidents visible to the caller
    POST /api/v1/incidents/    report a new accident

    Query parameters: status, priority, driver_status, hospital_status,
    department, hospital, driver, reported_after, reported_before,
    search, ordering, page.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = IncidentSerializer
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = IncidentFilter
    ordering_fields = ['created_at', 'reported_at', 'priority', 'status']
    ordering = ['-created_at']

    def get_queryset(self):
        return (
            visible_incidents_for(self.request.user)
            .select_related('reported_by')
            .prefetch_related('photos')
        )

    def post(self, request):
        serializer = IncidentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        incident = IncidentService.create_incident(
            reporter=request.user,
            location=data['location'],
            description=data.get('description'),
            priority=data.get('priority'),
            category=data.get('category'),
            photos=data.get('photos'),
        )

        return Response(IncidentSerializer(incident).data, status=status.HTTP_201_CREATED)


class IncidentDetailView(views.APIView):
    """
    GET    /api/v1/incidents/{id}/
    DELETE /api/v1/incidents/{id}/   (admin, soft delete)
    """

    def get_permissions(self):
        if self.request.method == 'DELETE':
            return [IsAdminRole()]
        return [IsAuthenticated()]

    def get(self, request, pk):
        incident = get_incident_for(request.user, pk)
        return Response(IncidentDetailSerializer(incident).data)

    def delete(self, request, pk):
        with transaction.atomic():
            incident = store.find_by_id(pk, for_update=True)
            incident.soft_delete()

        logger.info(f"Incident {incident.id} deleted by {request.user.id}")
        return Response(status=status.HTTP_204_NO_CONTENT)


class IncidentActionListView(views.APIView):
    """
    GET /api/v1/incidents/{id}/actions/

    The incident's action log, oldest first.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        incident = get_incident_for(request.user, pk)
        actions = (
            IncidentAction.objects.filter(incident=incident)
            .select_related('performed_by')
            .order_by('sequence')
        )
        return Response(IncidentActionSerializer(actions, many=True).data)


class IncidentPhotoView(views.APIView):
    """
    POST /api/v1/incidents/{id}/photos/

    Appends photo references. Only the reporter or an admin may add
    photos; photos are never removed.
    """

    permission_classes = [IsAuthenticated, IsIncidentReporterOrAdmin]

    def post(self, request, pk):
        serializer = PhotoAppendSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            incident = store.find_by_id(pk, for_update=True)
            self.check_object_permissions(request, incident)
            photos = store.add_photos(
                incident, serializer.validated_data['photos'], uploaded_by=request.user
            )

        return Response(
            IncidentPhotoSerializer(photos, many=True).data,
            status=status.HTTP_201_CREATED,
        )


class IncidentTransitionView(views.APIView):
    """
    Base view for workflow verbs.

    Subclasses name the WorkflowEngine method and the payload
    serializer; the engine does authorization and state checks.
    """

    permission_classes = [IsAuthenticated]
    payload_serializer_class = None
    verb = None

    def put(self, request, pk):
        serializer = self.payload_serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)

        incident = getattr(workflow, self.verb)(pk, request.user, serializer.validated_data)
        return Response(IncidentSerializer(incident).data)


class ApproveIncidentView(IncidentTransitionView):
    """
    PUT /api/v1/incidents/{id}/approve/

    {"department": "Edhi Foundation"}
    """
    payload_serializer_class = ApproveSerializer
    verb = 'approve'


class RejectIncidentView(IncidentTransitionView):
    """
    PUT /api/v1/incidents/{id}/reject/

    {"reason": "Duplicate report"}
    """
    payload_serializer_class = RejectSerializer
    verb = 'reject'


class AssignDriverView(IncidentTransitionView):
    """
    PUT /api/v1/incidents/{id}/assign/

    {"driver_id": "<uuid>"}
    """
    payload_serializer_class = AssignDriverSerializer
    verb = 'assign_driver'


class DriverStatusView(IncidentTransitionView):
    """
    PUT /api/v1/incidents/{id}/driver-status/

    {"status": "transporting", "hospital": "Jinnah Hospital", "condition": "Stable"}
    """
    payload_serializer_class = DriverStatusSerializer
    verb = 'update_driver_status'


class PatientPickupView(IncidentTransitionView):
    """
    PUT /api/v1/incidents/{id}/patient-pickup/

    {"status": "taken_by_someone", "notes": "Taken by family"}
    """
    payload_serializer_class = PatientPickupSerializer
    verb = 'update_patient_pickup_status'


class HospitalStatusView(IncidentTransitionView):
    """
    PUT /api/v1/incidents/{id}/hospital-status/

    {"status": "admitted", "bed_number": "B-12", "doctor": "Dr. Ahmed"}
    """
    payload_serializer_class = HospitalStatusSerializer
    verb = 'update_hospital_status'
