"""
Admin configuration for RescueLink users.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Custom admin for User model."""

    list_display = ['email', 'name', 'role', 'department', 'hospital', 'status', 'is_active']
    list_filter = ['role', 'status', 'department', 'is_active', 'is_staff']
    search_fields = ['email', 'name', 'phone', 'hospital']
    ordering = ['-created_at']
    readonly_fields = ['id', 'created_at', 'updated_at', 'last_login']

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Profile', {'fields': ('name', 'phone')}),
        ('Role & Scope', {'fields': ('role', 'department', 'hospital', 'driving_license', 'status')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
        ('Timestamps', {'fields': ('id', 'last_login', 'created_at', 'updated_at')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'name', 'password1', 'password2', 'role', 'department', 'hospital'),
        }),
    )
