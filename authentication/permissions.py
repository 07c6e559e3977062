"""
Role-level permissions for RescueLink Backend.

These classes gate endpoints by role only. Whether an actor may touch
a particular incident is decided by incidents.permissions, which every
incident operation consults.

All permissions reject inactive and suspended accounts.
"""

from rest_framework import permissions


def _is_usable(user):
    return bool(
        user
        and user.is_authenticated
        and user.is_active
        and not user.is_suspended
    )


class IsAuthenticated(permissions.IsAuthenticated):
    """
    Extended IsAuthenticated that also checks account status.
    """

    message = "Your account is not active."

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return _is_usable(request.user)


class IsAdminRole(permissions.BasePermission):
    """
    Admin or superadmin.

    Admins triage incidents: approve, reject, assign and delete.
    """

    message = "This action requires admin access."

    def has_permission(self, request, view):
        return _is_usable(request.user) and request.user.is_admin_role


class IsDepartmentOrAdmin(permissions.BasePermission):
    """Department dispatchers and admins."""

    message = "This action requires department or admin access."

    def has_permission(self, request, view):
        if not _is_usable(request.user):
            return False
        return request.user.is_department or request.user.is_admin_role


class IsDriver(permissions.BasePermission):
    message = "This action is for drivers only."

    def has_permission(self, request, view):
        return _is_usable(request.user) and request.user.is_driver


class IsHospital(permissions.BasePermission):
    message = "This action is for hospital staff only."

    def has_permission(self, request, view):
        return _is_usable(request.user) and request.user.is_hospital


class CanManageUser(permissions.BasePermission):
    """
    Admins manage dispatch staff and citizens; admin accounts are
    managed by superadmins only. Nobody manages their own account here.
    """

    message = "You cannot manage this account."

    def has_object_permission(self, request, view, obj):
        if obj.pk == request.user.pk:
            return False
        if obj.is_admin_role:
            return request.user.is_superadmin
        return True
