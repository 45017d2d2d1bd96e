from rest_framework.permissions import BasePermission

from .models import User


class IsGymOwner(BasePermission):
    message = 'Only gym owners can access this resource.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.role == User.GYM_OWNER)


class IsSuperAdmin(BasePermission):
    message = 'Only super admins can perform this action.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.role == User.SUPER_ADMIN)
