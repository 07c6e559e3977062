"""
Filters for incident listing.
"""

from django.db.models import Q
from django_filters import rest_framework as filters

from .models import DriverStatus, HospitalStatus, Incident, IncidentPriority, IncidentStatus


class IncidentFilter(filters.FilterSet):
    """Filter for incident lists."""

    status = filters.ChoiceFilter(choices=IncidentStatus.CHOICES)
    priority = filters.ChoiceFilter(choices=IncidentPriority.CHOICES)
    driver_status = filters.ChoiceFilter(choices=DriverStatus.CHOICES)
    hospital_status = filters.ChoiceFilter(choices=HospitalStatus.CHOICES)
    department = filters.CharFilter(field_name='assigned_department', lookup_expr='exact')
    hospital = filters.CharFilter(field_name='patient_hospital', lookup_expr='exact')
    driver = filters.UUIDFilter(field_name='assigned_driver__id')
    reported_after = filters.DateTimeFilter(field_name='reported_at', lookup_expr='gte')
    reported_before = filters.DateTimeFilter(field_name='reported_at', lookup_expr='lte')
    search = filters.CharFilter(method='filter_search')

    class Meta:
        model = Incident
        fields = ['status', 'priority', 'driver_status', 'hospital_status', 'department', 'hospital']

    def filter_search(self, queryset, name, value):
        return queryset.filter(Q(description__icontains=value) | Q(address__icontains=value))
