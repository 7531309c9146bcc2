from rest_framework.permissions import BasePermission


class IsSuperAdmin(BasePermission):
    """Only superadmins (role or Django superuser) may access"""
    message = 'No autorizado'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_superadmin)


class IsSuperAdminOrCanal(BasePermission):
    """Superadmins and channel managers"""
    message = 'No autorizado'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.is_superadmin or user.role == 'canal'
