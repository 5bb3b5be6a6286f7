from rest_framework.permissions import BasePermission

from .models import Admin, SubAdmin


class IsAdmin(BasePermission):
    """Allow access only to admins."""

    def has_permission(self, request, view):
        return isinstance(request.user, Admin) and request.user.is_active


class IsSubAdmin(BasePermission):
    """Any sub-admin, including one still awaiting approval."""

    def has_permission(self, request, view):
        return isinstance(request.user, SubAdmin)


class IsStaffMember(BasePermission):
    """Admins and approved, active sub-admins."""

    def has_permission(self, request, view):
        user = request.user
        if isinstance(user, Admin):
            return user.is_active
        if isinstance(user, SubAdmin):
            return user.is_approved
        return False
