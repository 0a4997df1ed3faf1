from rest_framework import permissions

from utils.rbac import is_admin


class IsAdminRole(permissions.BasePermission):
    """
    Allows access only to users with the admin role (or superusers).
    """

    message = "Admin access required."

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and is_admin(request.user))


class IsAdminOrReadOnly(permissions.BasePermission):
    """
    Read access for any authenticated user, writes for admins only.
    """

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return is_admin(request.user)
