"""
Custom permissions for pallet tracking.
"""

from rest_framework.permissions import BasePermission

WAREHOUSE_STAFF_GROUP = 'warehouse_staff'
ADMIN_ROLE = 'admin'
OPERATOR_ROLE = 'operator'


class IsWarehouseStaff(BasePermission):
    """
    Permission that allows access only to warehouse operators.

    Staff users always pass; other users must belong to the
    'warehouse_staff' group.
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        if user.is_staff:
            return True

        return user.groups.filter(name=WAREHOUSE_STAFF_GROUP).exists()


class IsAdmin(BasePermission):
    """Administrative operations such as tag provisioning."""

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return actor_role(request) == ADMIN_ROLE


def actor_id(request) -> str:
    """Identifier recorded as the actor of a service call."""
    return str(request.user.pk)


def actor_role(request) -> str:
    return ADMIN_ROLE if request.user.is_staff else OPERATOR_ROLE
