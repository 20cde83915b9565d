"""Role-permission binding service.

The two ways of binding permissions behave differently on purpose:

* ``assign_permission`` reports an existing binding as a conflict, so callers
  can tell "already bound" from "newly bound".
* ``assign_permissions_bulk`` is all-or-nothing on unknown ids but skips ids
  that are already bound (or repeated in the input) without complaint.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from reservation_rbac.models.role import Role
from reservation_rbac.models.permission import Permission
from reservation_rbac.models.role_permission import RolePermission
from reservation_rbac.core.exceptions import (
    ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from reservation_rbac.db.transaction import run_atomic
from reservation_rbac.services.audit_service import audit_service

logger = logging.getLogger("reservation_rbac")


class RoleBindingService:
    """Binds permissions to roles."""

    @staticmethod
    def _require_role(db: Session, role_id: int) -> Role:
        role = db.get(Role, role_id)
        if not role:
            raise ResourceNotFoundError(f"Role {role_id} not found")
        return role

    @staticmethod
    def _require_permission(db: Session, permission_id: int) -> Permission:
        permission = db.get(Permission, permission_id)
        if not permission:
            raise ResourceNotFoundError(f"Permission {permission_id} not found")
        return permission

    @staticmethod
    def _binding(db: Session, role_id: int, permission_id: int) -> Optional[RolePermission]:
        return (
            db.query(RolePermission)
            .filter(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
            )
            .first()
        )

    @staticmethod
    def assign_permission(
        db: Session, role_id: int, permission_id: int, actor_id: Optional[int] = None,
    ) -> RolePermission:
        """Bind one permission to a role.

        Raises:
            ResourceNotFoundError: unknown role or permission.
            ResourceConflictError: the role already holds the permission.
        """

        def operation() -> RolePermission:
            RoleBindingService._require_role(db, role_id)
            RoleBindingService._require_permission(db, permission_id)
            if RoleBindingService._binding(db, role_id, permission_id):
                raise ResourceConflictError(
                    f"Permission {permission_id} is already assigned to role {role_id}"
                )
            binding = RolePermission(role_id=role_id, permission_id=permission_id)
            db.add(binding)
            audit_service.record(
                db, actor_id, "permission.bound", "role", role_id,
                new_value={"permission_id": permission_id},
            )
            db.flush()
            return binding

        binding = run_atomic(
            db, operation, attempts=1,
            conflict_message=f"Permission {permission_id} is already assigned to role {role_id}",
        )
        logger.info("Bound permission %s to role %s", permission_id, role_id)
        return binding

    @staticmethod
    def assign_permissions_bulk(
        db: Session,
        role_id: int,
        permission_ids: Sequence[int],
        actor_id: Optional[int] = None,
    ) -> List[int]:
        """Bind several permissions at once; returns the newly bound ids.

        Every id is validated before anything is written: one unknown id fails
        the whole call with ResourceNotFoundError and no binding is created.
        """
        if not permission_ids:
            raise ValidationError("Provide at least one permission id")
        # keep first occurrence order, drop repeats
        wanted = list(dict.fromkeys(permission_ids))

        def operation() -> List[int]:
            RoleBindingService._require_role(db, role_id)
            found = {
                row.id
                for row in db.query(Permission.id).filter(Permission.id.in_(wanted)).all()
            }
            missing = [pid for pid in wanted if pid not in found]
            if missing:
                raise ResourceNotFoundError(
                    f"Permission(s) not found: {', '.join(str(pid) for pid in missing)}"
                )

            already = {
                row.permission_id
                for row in db.query(RolePermission.permission_id)
                .filter(RolePermission.role_id == role_id)
                .all()
            }
            new_ids = [pid for pid in wanted if pid not in already]
            for pid in new_ids:
                db.add(RolePermission(role_id=role_id, permission_id=pid))
            if new_ids:
                audit_service.record(
                    db, actor_id, "permission.bound_bulk", "role", role_id,
                    new_value={"permission_ids": new_ids},
                )
            db.flush()
            return new_ids

        new_ids = run_atomic(db, operation)
        logger.info(
            "Bulk bind on role %s: %d new, %d skipped", role_id, len(new_ids), len(wanted) - len(new_ids),
        )
        return new_ids

    @staticmethod
    def revoke_permission(
        db: Session, role_id: int, permission_id: int, actor_id: Optional[int] = None,
    ) -> None:
        """Unbind a permission; ResourceNotFoundError if it was not bound."""

        def operation() -> None:
            binding = RoleBindingService._binding(db, role_id, permission_id)
            if not binding:
                raise ResourceNotFoundError(
                    f"Role {role_id} does not hold permission {permission_id}"
                )
            db.delete(binding)
            audit_service.record(
                db, actor_id, "permission.unbound", "role", role_id,
                old_value={"permission_id": permission_id},
            )
            db.flush()

        run_atomic(db, operation, attempts=1)
        logger.info("Unbound permission %s from role %s", permission_id, role_id)

    @staticmethod
    def list_permissions_for_role(db: Session, role_id: int) -> List[Permission]:
        RoleBindingService._require_role(db, role_id)
        return (
            db.query(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .filter(RolePermission.role_id == role_id)
            .order_by(Permission.module, Permission.action)
            .all()
        )

    @staticmethod
    def list_roles_for_permission(db: Session, permission_id: int) -> List[Role]:
        RoleBindingService._require_permission(db, permission_id)
        return (
            db.query(Role)
            .join(RolePermission, RolePermission.role_id == Role.id)
            .filter(RolePermission.permission_id == permission_id)
            .order_by(Role.access_level, Role.name)
            .all()
        )


role_binding_service = RoleBindingService()
