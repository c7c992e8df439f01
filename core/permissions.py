"""
Role-based permissions for DRF views.
"""
from rest_framework.permissions import BasePermission

ADMIN = 'ADMIN'
MANAGER = 'MANAGER'
SELLER = 'SELLER'
CUSTOMER = 'CUSTOMER'

ELEVATED_ROLES = (ADMIN, MANAGER, SELLER)


def user_role(user) -> str:
    """Role of an authenticated user; superusers always act as ADMIN."""
    if getattr(user, 'is_superuser', False):
        return ADMIN
    return getattr(user, 'role', CUSTOMER)


def is_elevated(user) -> bool:
    return user_role(user) in ELEVATED_ROLES


class HasRole(BasePermission):
    """
    Allow authenticated users whose role is in `allowed_roles`.

    Usage:
        permission_classes = [HasRole.of(ADMIN, MANAGER)]
    """
    allowed_roles = ()
    message = 'Forbidden: Insufficient permissions'

    @classmethod
    def of(cls, *roles):
        return type(f"HasRole_{'_'.join(roles)}", (cls,), {'allowed_roles': roles})

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user_role(user) in self.allowed_roles


IsStaffRole = HasRole.of(*ELEVATED_ROLES)
IsAdminOrManager = HasRole.of(ADMIN, MANAGER)
IsAdmin = HasRole.of(ADMIN)


class ReadOnlyOrStaffRole(BasePermission):
    """Any authenticated user may read; writes need an elevated role."""

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if request.method in ('GET', 'HEAD', 'OPTIONS'):
            return True
        return is_elevated(user)
