"""
URL configuration for RescueLink Incidents API.

Provides endpoints for:
- Accident reporting and listing
- Incident detail, action log and photos
- Admin triage (approve, reject)
- Dispatch (driver assignment)
- Driver, patient pickup and hospital status updates

All endpoints are under /api/v1/incidents/
"""

from django.urls import path

from .views import (
    ApproveIncidentView,
    AssignDriverView,
    DriverStatusView,
    HospitalStatusView,
    IncidentActionListView,
    IncidentDetailView,
    IncidentListCreateView,
    IncidentPhotoView,
    PatientPickupView,
    RejectIncidentView,
)

app_name = 'incidents'

urlpatterns = [
    path('', IncidentListCreateView.as_view(), name='incident-list'),
    path('<uuid:pk>/', IncidentDetailView.as_view(), name='incident-detail'),
    path('<uuid:pk>/actions/', IncidentActionListView.as_view(), name='incident-actions'),
    path('<uuid:pk>/photos/', IncidentPhotoView.as_view(), name='incident-photos'),

    # Admin triage
    path('<uuid:pk>/approve/', ApproveIncidentView.as_view(), name='incident-approve'),
    path('<uuid:pk>/reject/', RejectIncidentView.as_view(), name='incident-reject'),

    # Department dispatch
    path('<uuid:pk>/assign/', AssignDriverView.as_view(), name='incident-assign'),

    # Driver and hospital updates
    path('<uuid:pk>/driver-status/', DriverStatusView.as_view(), name='incident-driver-status'),
    path('<uuid:pk>/patient-pickup/', PatientPickupView.as_view(), name='incident-patient-pickup'),
    path('<uuid:pk>/hospital-status/', HospitalStatusView.as_view(), name='incident-hospital-status'),
]
