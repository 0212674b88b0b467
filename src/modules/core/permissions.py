"""Role-based DRF permissions.

The authenticated user carries a ``role`` (``user``, ``owner``, ``admin``);
owners are sellers, admins manage the whole store.
"""

from __future__ import annotations

from rest_framework.permissions import BasePermission


class IsOwnerOrAdminRole(BasePermission):
    """Allow sellers (``owner``) and administrators."""

    message = "Access denied. Admin or owner role required."

    def has_permission(self, request, view) -> bool:
        user = request.user
        return bool(
            user
            and user.is_authenticated
            and getattr(user, "role", None) in {"owner", "admin"}
        )

