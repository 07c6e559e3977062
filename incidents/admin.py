"""
Admin configuration for incidents.

Incidents are changed only through the workflow engine, so the admin
is read-only. The action log is append-only and cannot be edited here
either.
"""

from django.contrib import admin

from .models import Incident, IncidentAction, IncidentPhoto


class IncidentPhotoInline(admin.TabularInline):
    model = IncidentPhoto
    extra = 0
    can_delete = False
    readonly_fields = ['filename', 'original_name', 'size', 'mime_type', 'uploaded_at', 'uploaded_by']

    def has_add_permission(self, request, obj=None):
        return False


class IncidentActionInline(admin.TabularInline):
    model = IncidentAction
    extra = 0
    can_delete = False
    ordering = ['sequence']
    readonly_fields = ['sequence', 'action', 'performed_by', 'timestamp', 'details']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Incident)
class IncidentAdmin(admin.ModelAdmin):
    """
    Read-only view of incidents.

    No add/edit/delete: status changes go through the API.
    """

    list_display = [
        'short_id',
        'status',
        'priority',
        'assigned_department',
        'assigned_driver_name',
        'driver_status',
        'hospital_status',
        'created_at',
    ]
    list_filter = ['status', 'priority', 'driver_status', 'hospital_status', 'assigned_department']
    search_fields = ['id', 'description', 'address', 'patient_hospital', 'reported_by__email']
    ordering = ['-created_at']
    inlines = [IncidentPhotoInline, IncidentActionInline]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def short_id(self, obj):
        return str(obj.id)[:8]
    short_id.short_description = 'ID'

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(IncidentAction)
class IncidentActionAdmin(admin.ModelAdmin):
    list_display = ['incident', 'sequence', 'action', 'performed_by', 'timestamp']
    list_filter = ['action']
    search_fields = ['incident__id', 'performed_by__email']
    ordering = ['-timestamp']

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
