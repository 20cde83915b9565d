"""Authorization resolver — the only access-control entry point for the rest of the system.

Given a user and an instant it works out which grants are effective (not
revoked, not expired, role active), unions the permissions bound to those
roles and takes the lowest access level among them (lower = more privileged).

Every query here is read-only: expiration is evaluated, never enacted. Unknown
or deactivated users resolve to no access at all instead of raising. Storage
failures surface as StorageError and callers must treat them as a denial.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from reservation_rbac.models.permission import Permission
from reservation_rbac.models.role_permission import RolePermission
from reservation_rbac.models.user_role import UserRole
from reservation_rbac.core.clock import SystemClock, resolve_now
from reservation_rbac.core.exceptions import StorageError
from reservation_rbac.services.identity_service import identity_service
from reservation_rbac.services.permission_service import normalize_permission_name

logger = logging.getLogger("reservation_rbac")


@dataclass(frozen=True)
class EffectiveAccess:
    """What a user may do at one instant."""

    user_id: int
    role_ids: FrozenSet[int] = field(default_factory=frozenset)
    permissions: FrozenSet[str] = field(default_factory=frozenset)
    # None means no access at all; never substitute 0, which would read as top privilege
    access_level: Optional[int] = None

    @property
    def has_access(self) -> bool:
        return self.access_level is not None


class AuthorizationService:
    """Answers point and aggregate authorization queries."""

    def __init__(self, clock=None):
        self.clock = clock or SystemClock()

    def resolve(self, db: Session, user_id: int, now: Optional[datetime] = None) -> EffectiveAccess:
        now = resolve_now(self.clock, now)
        try:
            if not identity_service.is_active(db, user_id):
                return EffectiveAccess(user_id=user_id)

            rows = (
                db.query(UserRole)
                .options(joinedload(UserRole.role))
                .filter(UserRole.user_id == user_id)
                .all()
            )
            roles = {row.role.id: row.role for row in rows if row.is_effective(now)}
            if not roles:
                return EffectiveAccess(user_id=user_id)

            bound = (
                db.query(Permission.id, Permission.name)
                .join(RolePermission, RolePermission.permission_id == Permission.id)
                .filter(RolePermission.role_id.in_(list(roles)))
                .all()
            )
        except SQLAlchemyError as e:
            logger.error("Authorization lookup failed for user %s: %s", user_id, e)
            raise StorageError("Authorization data unavailable") from e

        permissions = {perm_id: name for perm_id, name in bound}
        return EffectiveAccess(
            user_id=user_id,
            role_ids=frozenset(roles),
            permissions=frozenset(permissions.values()),
            access_level=min(role.access_level for role in roles.values()),
        )

    def has_permission(
        self, db: Session, user_id: int, permission_name: str, now: Optional[datetime] = None,
    ) -> bool:
        access = self.resolve(db, user_id, now)
        granted = normalize_permission_name(permission_name) in access.permissions
        if not granted:
            logger.debug("Permission %s not held by user %s", permission_name, user_id)
        return granted

    def effective_permissions(
        self, db: Session, user_id: int, now: Optional[datetime] = None,
    ) -> FrozenSet[str]:
        return self.resolve(db, user_id, now).permissions

    def effective_access_level(
        self, db: Session, user_id: int, now: Optional[datetime] = None,
    ) -> Optional[int]:
        return self.resolve(db, user_id, now).access_level

    def has_access_level(
        self, db: Session, user_id: int, required_level: int, now: Optional[datetime] = None,
    ) -> bool:
        """True when the user's best level is at least as privileged as ``required_level``."""
        level = self.effective_access_level(db, user_id, now)
        return level is not None and level <= required_level


authorization_service = AuthorizationService()
