"""User-role assignment service — time-bounded, audited role grants.

Unlike permission bulk binding, ``assign_roles_bulk`` allows partial success:
each role id gets its own outcome and one bad id never discards the valid
grants next to it.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from reservation_rbac.models.role import Role
from reservation_rbac.models.user_role import UserRole
from reservation_rbac.core.clock import SystemClock, resolve_now, to_utc_naive
from reservation_rbac.core.exceptions import (
    ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from reservation_rbac.db.transaction import run_atomic
from reservation_rbac.services.audit_service import audit_service
from reservation_rbac.services.identity_service import identity_service

logger = logging.getLogger("reservation_rbac")


class AssignmentOutcome(str, enum.Enum):
    assigned = "assigned"
    already_effective = "already_effective"
    not_found = "not_found"


@dataclass
class AssignmentResult:
    role_id: int
    outcome: AssignmentOutcome
    assignment_id: Optional[int] = None


class UserRoleService:
    """Grants and revokes roles for users."""

    def __init__(self, clock=None):
        self.clock = clock or SystemClock()

    # ---- helpers ----

    @staticmethod
    def _open_rows(db: Session, user_id: int, role_id: int) -> List[UserRole]:
        return (
            db.query(UserRole)
            .filter(
                UserRole.user_id == user_id,
                UserRole.role_id == role_id,
                UserRole.open_slot.is_(True),
            )
            .all()
        )

    def _validate_expiry(self, expires_at: Optional[datetime], now: datetime) -> Optional[datetime]:
        if expires_at is None:
            return None
        expires_at = to_utc_naive(expires_at)
        if expires_at <= now:
            raise ValidationError("Expiration must be in the future")
        return expires_at

    def _grant(
        self,
        db: Session,
        user_id: int,
        role_id: int,
        assigned_by: Optional[int],
        expires_at: Optional[datetime],
        now: datetime,
    ) -> Optional[UserRole]:
        """Insert a new grant unless one is already held; None means held."""
        stale = False
        for row in self._open_rows(db, user_id, role_id):
            if row.is_held(now):
                return None
            # expired but never swept: record it so the slot frees up
            row.close(now, revoke=False)
            stale = True
        if stale:
            db.flush()

        assignment = UserRole(
            user_id=user_id,
            role_id=role_id,
            assigned_by=assigned_by,
            assigned_at=now,
            expires_at=expires_at,
            open_slot=True,
        )
        db.add(assignment)
        db.flush()
        audit_service.record(
            db, assigned_by, "role.assigned", "user_role", assignment.id,
            new_value={"user_id": user_id, "role_id": role_id, "expires_at": expires_at},
            at=now,
        )
        return assignment

    # ---- operations ----

    def assign_role(
        self,
        db: Session,
        user_id: int,
        role_id: int,
        assigned_by: Optional[int] = None,
        expires_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> UserRole:
        """Grant a role to a user.

        Raises:
            ValidationError: ``expires_at`` is not strictly in the future.
            ResourceNotFoundError: unknown user or role.
            ResourceConflictError: the user already holds the role.
        """
        now = resolve_now(self.clock, now)
        expires_at = self._validate_expiry(expires_at, now)

        def operation() -> UserRole:
            identity_service.require_user(db, user_id)
            if not db.get(Role, role_id):
                raise ResourceNotFoundError(f"Role {role_id} not found")
            assignment = self._grant(db, user_id, role_id, assigned_by, expires_at, now)
            if assignment is None:
                raise ResourceConflictError(f"User {user_id} already holds role {role_id}")
            return assignment

        assignment = run_atomic(db, operation)
        logger.info(
            "Assigned role %s to user %s (by=%s, expires=%s)", role_id, user_id, assigned_by, expires_at,
        )
        return assignment

    def assign_roles_bulk(
        self,
        db: Session,
        user_id: int,
        role_ids: Sequence[int],
        assigned_by: Optional[int] = None,
        expires_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> List[AssignmentResult]:
        """Grant several roles; returns one result per distinct role id.

        Unknown role ids and roles the user already holds are reported, not
        raised. An unknown user fails the whole call.
        """
        if not role_ids:
            raise ValidationError("Provide at least one role id")
        now = resolve_now(self.clock, now)
        expires_at = self._validate_expiry(expires_at, now)
        wanted = list(dict.fromkeys(role_ids))

        def operation() -> List[AssignmentResult]:
            identity_service.require_user(db, user_id)
            results = []
            for role_id in wanted:
                if not db.get(Role, role_id):
                    results.append(AssignmentResult(role_id, AssignmentOutcome.not_found))
                    continue
                assignment = self._grant(db, user_id, role_id, assigned_by, expires_at, now)
                if assignment is None:
                    results.append(AssignmentResult(role_id, AssignmentOutcome.already_effective))
                else:
                    results.append(
                        AssignmentResult(role_id, AssignmentOutcome.assigned, assignment.id)
                    )
            return results

        results = run_atomic(db, operation)
        logger.info(
            "Bulk assign for user %s: %s",
            user_id,
            ", ".join(f"{r.role_id}={r.outcome.value}" for r in results),
        )
        return results

    def revoke_role(
        self,
        db: Session,
        user_id: int,
        role_id: int,
        revoked_by: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> UserRole:
        """Revoke the held grant; the row is kept for the audit trail.

        Raises:
            ResourceNotFoundError: the user holds no such grant right now.
        """
        now = resolve_now(self.clock, now)

        def operation() -> UserRole:
            held = [row for row in self._open_rows(db, user_id, role_id) if row.is_held(now)]
            if not held:
                raise ResourceNotFoundError(
                    f"User {user_id} has no effective assignment of role {role_id}"
                )
            assignment = held[0]
            assignment.close(now, revoked_by=revoked_by)
            audit_service.record(
                db, revoked_by, "role.revoked", "user_role", assignment.id,
                old_value={"user_id": user_id, "role_id": role_id},
                at=now,
            )
            db.flush()
            return assignment

        assignment = run_atomic(db, operation, attempts=1)
        logger.info("Revoked role %s from user %s (by=%s)", role_id, user_id, revoked_by)
        return assignment

    def sweep_expired(self, db: Session, now: Optional[datetime] = None) -> int:
        """Record every open grant whose expiry has passed as expired.

        Resolution checks expiry on every read, so skipping the sweep never
        extends a grant. Once recorded, an expiry is final even for a caller
        whose clock lags the sweeper's.
        """
        now = resolve_now(self.clock, now)

        def operation() -> int:
            return (
                db.query(UserRole)
                .filter(
                    UserRole.open_slot.is_(True),
                    UserRole.expires_at.isnot(None),
                    UserRole.expires_at <= now,
                )
                .update(
                    {UserRole.expired_at: now, UserRole.open_slot: None},
                    synchronize_session=False,
                )
            )

        count = run_atomic(db, operation)
        if count:
            logger.info("Expiration sweep closed %d assignment(s)", count)
        return count

    def list_assignments(
        self,
        db: Session,
        user_id: int,
        effective_only: bool = True,
        now: Optional[datetime] = None,
    ) -> List[UserRole]:
        identity_service.require_user(db, user_id)
        now = resolve_now(self.clock, now)
        rows = (
            db.query(UserRole)
            .filter(UserRole.user_id == user_id)
            .order_by(UserRole.assigned_at, UserRole.id)
            .all()
        )
        if effective_only:
            rows = [row for row in rows if row.is_effective(now)]
        return rows

    def assignment_history(
        self, db: Session, user_id: int, role_id: Optional[int] = None,
    ) -> List[UserRole]:
        """Every grant ever made to the user, oldest first."""
        query = db.query(UserRole).filter(UserRole.user_id == user_id)
        if role_id is not None:
            query = query.filter(UserRole.role_id == role_id)
        return query.order_by(UserRole.assigned_at, UserRole.id).all()


user_role_service = UserRoleService()
