"""DRF permission classes based on the user's application role."""

from typing import Any

from rest_framework.permissions import SAFE_METHODS, BasePermission


class IsCatalogueAdmin(BasePermission):
    """Permission: user has the admin or superadmin role.

    Used for: category/question writes, display-order tools, admin dashboard.
    """

    message = "Admin role required."

    def has_permission(self, request: Any, view: Any) -> bool:
        user = request.user
        return bool(
            user and user.is_authenticated and getattr(user, "is_catalogue_admin", False)
        )


class IsCatalogueAdminOrReadOnly(IsCatalogueAdmin):
    """Permission: any authenticated user may read, only admins may write."""

    def has_permission(self, request: Any, view: Any) -> bool:
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return super().has_permission(request, view)
