"""Permission catalog service."""

import logging
import re
from typing import List, Optional

from sqlalchemy.orm import Session

from reservation_rbac.models.permission import Permission
from reservation_rbac.core.exceptions import (
    ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from reservation_rbac.services.audit_service import audit_service

logger = logging.getLogger("reservation_rbac")

PERMISSION_NAME_RE = re.compile(r"^[a-z][a-z0-9_]*\.[a-z][a-z0-9_]*$")


def normalize_permission_name(name: str) -> str:
    """Permission names compare case-insensitively; store and look up lower case."""
    return (name or "").strip().lower()


class PermissionService:
    """Creates and looks up the named capabilities roles are built from."""

    @staticmethod
    def create_permission(
        db: Session,
        name: str,
        description: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Permission:
        """Add a capability named ``module.action``.

        Raises:
            ValidationError: malformed name or oversized description.
            ResourceConflictError: the name is already taken.
        """
        normalized = normalize_permission_name(name)
        if len(normalized) > 100 or not PERMISSION_NAME_RE.match(normalized):
            raise ValidationError(
                f"Permission name '{name}' must look like 'module.action'"
            )
        if description is not None and len(description) > 200:
            raise ValidationError("Description cannot exceed 200 characters")

        module, action = normalized.split(".", 1)
        if len(module) > 50 or len(action) > 50:
            raise ValidationError("Module and action cannot exceed 50 characters each")

        if db.query(Permission).filter(Permission.name == normalized).first():
            raise ResourceConflictError(f"Permission '{normalized}' already exists")

        permission = Permission(
            name=normalized, module=module, action=action, description=description,
        )
        db.add(permission)
        db.flush()
        audit_service.record(
            db, actor_id, "permission.created", "permission", permission.id,
            new_value={"name": normalized},
        )
        db.commit()
        db.refresh(permission)
        logger.info("Created permission %s (id=%s)", normalized, permission.id)
        return permission

    @staticmethod
    def get_permission(db: Session, permission_id: int) -> Permission:
        permission = db.get(Permission, permission_id)
        if not permission:
            raise ResourceNotFoundError(f"Permission {permission_id} not found")
        return permission

    @staticmethod
    def get_by_name(db: Session, name: str) -> Optional[Permission]:
        return (
            db.query(Permission)
            .filter(Permission.name == normalize_permission_name(name))
            .first()
        )

    @staticmethod
    def list_permissions(db: Session, module: Optional[str] = None) -> List[Permission]:
        query = db.query(Permission)
        if module:
            query = query.filter(Permission.module == module.strip().lower())
        return query.order_by(Permission.module, Permission.action).all()

    @staticmethod
    def name_exists(db: Session, name: str) -> bool:
        return PermissionService.get_by_name(db, name) is not None

    @staticmethod
    def list_modules(db: Session) -> List[str]:
        """Distinct modules in the catalog, alphabetically."""
        rows = db.query(Permission.module).distinct().order_by(Permission.module).all()
        return [module for (module,) in rows]

    @staticmethod
    def update_description(
        db: Session,
        permission_id: int,
        description: Optional[str],
        actor_id: Optional[int] = None,
    ) -> Permission:
        """The description is the only mutable attribute of a permission."""
        permission = PermissionService.get_permission(db, permission_id)
        if description is not None and len(description) > 200:
            raise ValidationError("Description cannot exceed 200 characters")

        old = permission.description
        permission.description = description
        audit_service.record(
            db, actor_id, "permission.updated", "permission", permission.id,
            old_value={"description": old}, new_value={"description": description},
        )
        db.commit()
        db.refresh(permission)
        return permission

    @staticmethod
    def delete_permission(
        db: Session, permission_id: int, actor_id: Optional[int] = None,
    ) -> None:
        """Remove a capability and every role binding that referenced it."""
        permission = PermissionService.get_permission(db, permission_id)
        bound = len(permission.role_permissions)
        audit_service.record(
            db, actor_id, "permission.deleted", "permission", permission.id,
            old_value={"name": permission.name, "bound_roles": bound},
        )
        db.delete(permission)
        db.commit()
        logger.info("Deleted permission %s, dropped %d binding(s)", permission.name, bound)


permission_service = PermissionService()
