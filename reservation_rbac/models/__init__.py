"""Models package — import all models so the metadata is complete."""

from reservation_rbac.models.role import Role
from reservation_rbac.models.permission import Permission
from reservation_rbac.models.role_permission import RolePermission
from reservation_rbac.models.user import User
from reservation_rbac.models.user_role import UserRole
from reservation_rbac.models.audit_log import AuditLog

__all__ = [
    "Role", "Permission", "RolePermission",
    "User", "UserRole", "AuditLog",
]
