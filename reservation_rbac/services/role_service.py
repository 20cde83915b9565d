"""Role registry service — create, edit, activate and delete roles."""

import logging
import re
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from reservation_rbac.models.role import Role
from reservation_rbac.models.role_permission import RolePermission
from reservation_rbac.models.user_role import UserRole
from reservation_rbac.core.config import settings
from reservation_rbac.core.exceptions import (
    ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from reservation_rbac.services.audit_service import audit_service

logger = logging.getLogger("reservation_rbac")

ROLE_NAME_RE = re.compile(r"^[\w \-]+$")
MIN_ACCESS_LEVEL = 1
MAX_ACCESS_LEVEL = 100


def _validate_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not 3 <= len(name) <= 50:
        raise ValidationError("Role name must be between 3 and 50 characters")
    if not ROLE_NAME_RE.match(name):
        raise ValidationError("Role name can only contain letters, digits, spaces, '_' and '-'")
    return name


def _validate_level(level: int) -> int:
    if isinstance(level, bool) or not isinstance(level, int):
        raise ValidationError("Access level must be an integer")
    if not MIN_ACCESS_LEVEL <= level <= MAX_ACCESS_LEVEL:
        raise ValidationError(
            f"Access level must be between {MIN_ACCESS_LEVEL} and {MAX_ACCESS_LEVEL}"
        )
    return level


def _is_protected(name: str) -> bool:
    return name.strip().lower() in {n.lower() for n in settings.PROTECTED_ROLES}


def _validate_description(description: Optional[str]) -> Optional[str]:
    if description is not None and len(description) > 200:
        raise ValidationError("Description cannot exceed 200 characters")
    return description


class RoleService:
    """Administrative operations on roles."""

    @staticmethod
    def _name_taken(db: Session, name: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(Role).filter(func.lower(Role.name) == name.lower())
        if exclude_id is not None:
            query = query.filter(Role.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def create_role(
        db: Session,
        name: str,
        access_level: int,
        description: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Role:
        """Create an active role.

        Raises:
            ValidationError: bad name, level outside 1-100, long description.
            ResourceConflictError: a role with that name exists.
        """
        name = _validate_name(name)
        _validate_level(access_level)
        _validate_description(description)
        if RoleService._name_taken(db, name):
            raise ResourceConflictError(f"Role '{name}' already exists")

        role = Role(
            name=name, access_level=access_level, description=description, is_active=True,
        )
        db.add(role)
        db.flush()
        audit_service.record(
            db, actor_id, "role.created", "role", role.id,
            new_value={"name": name, "access_level": access_level},
        )
        db.commit()
        db.refresh(role)
        logger.info("Created role %s (id=%s, level=%s)", name, role.id, access_level)
        return role

    @staticmethod
    def get_role(db: Session, role_id: int) -> Role:
        role = db.get(Role, role_id)
        if not role:
            raise ResourceNotFoundError(f"Role {role_id} not found")
        return role

    @staticmethod
    def list_roles(db: Session, active_only: bool = False) -> List[Role]:
        query = db.query(Role)
        if active_only:
            query = query.filter(Role.is_active.is_(True))
        return query.order_by(Role.access_level, Role.name).all()

    @staticmethod
    def name_exists(db: Session, name: str, exclude_id: Optional[int] = None) -> bool:
        """Case-insensitive availability check used by admin forms."""
        return RoleService._name_taken(db, (name or "").strip(), exclude_id)

    @staticmethod
    def permission_count(db: Session, role_id: int) -> int:
        RoleService.get_role(db, role_id)
        return (
            db.query(func.count(RolePermission.id))
            .filter(RolePermission.role_id == role_id)
            .scalar()
        )

    @staticmethod
    def update_role(
        db: Session,
        role_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        access_level: Optional[int] = None,
        actor_id: Optional[int] = None,
    ) -> Role:
        """Partial update; only the fields that are not None change."""
        role = RoleService.get_role(db, role_id)
        if name is None and description is None and access_level is None:
            raise ValidationError("Provide at least one field to update")

        old = {"name": role.name, "description": role.description, "access_level": role.access_level}
        if name is not None:
            name = _validate_name(name)
            if name != role.name and _is_protected(role.name):
                raise ResourceConflictError(f"Role '{role.name}' is a system role and cannot be renamed")
            if name != role.name and _is_protected(name):
                raise ResourceConflictError(f"'{name}' is reserved for a system role")
            if RoleService._name_taken(db, name, exclude_id=role_id):
                raise ResourceConflictError(f"Another role is already named '{name}'")
            role.name = name
        if description is not None:
            role.description = _validate_description(description)
        if access_level is not None:
            role.access_level = _validate_level(access_level)

        audit_service.record(
            db, actor_id, "role.updated", "role", role.id,
            old_value=old,
            new_value={"name": role.name, "description": role.description, "access_level": role.access_level},
        )
        db.commit()
        db.refresh(role)
        return role

    @staticmethod
    def set_role_active(
        db: Session, role_id: int, active: bool, actor_id: Optional[int] = None,
    ) -> Role:
        """Activate or deactivate a role.

        Deactivation hides the role's permissions and level from every holder
        at once; assignment rows are untouched, so reactivating restores them.
        """
        role = RoleService.get_role(db, role_id)
        if not active and _is_protected(role.name):
            raise ResourceConflictError(f"Role '{role.name}' is a system role and cannot be deactivated")
        if role.is_active == active:
            return role

        role.is_active = active
        audit_service.record(
            db, actor_id, "role.activated" if active else "role.deactivated", "role", role.id,
        )
        db.commit()
        db.refresh(role)
        logger.info("Role %s is now %s", role.name, "active" if active else "inactive")
        return role

    @staticmethod
    def delete_role(db: Session, role_id: int, actor_id: Optional[int] = None) -> None:
        """Delete a role and its bindings.

        Roles that were ever assigned cannot be deleted: assignment rows are
        the audit trail. Deactivate them instead.
        """
        role = RoleService.get_role(db, role_id)
        if _is_protected(role.name):
            raise ResourceConflictError(f"Role '{role.name}' is a system role and cannot be deleted")

        assigned = db.query(func.count(UserRole.id)).filter(UserRole.role_id == role_id).scalar()
        if assigned:
            raise ResourceConflictError(
                f"Role '{role.name}' has {assigned} assignment record(s); deactivate it instead"
            )

        # loading the bindings lets the ORM cascade delete them on any backend
        bindings = len(role.role_permissions)
        audit_service.record(
            db, actor_id, "role.deleted", "role", role.id,
            old_value={"name": role.name, "bindings": bindings},
        )
        db.delete(role)
        db.commit()
        logger.info("Deleted role %s (id=%s)", role.name, role_id)


role_service = RoleService()
