"""User-role assignment model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from reservation_rbac.db.base import Base


class UserRole(Base):
    """One grant of a role to a user, with its audit trail.

    Rows are never deleted or reopened. A grant ends either by revocation
    (``revoked_at``) or by its expiry passing; ``expired_at`` records when a
    sweep or a re-assignment noticed the expiry. Both stamps are terminal:
    a row carrying either is never held again, whatever instant is asked about.

    ``open_slot`` is True while the row is neither revoked nor recorded as
    expired and NULL afterwards, so the unique constraint on
    ``(user_id, role_id, open_slot)`` admits one open row per pair. It is a
    storage marker only; effectiveness is always recomputed from timestamps.
    """
    __tablename__ = "user_roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False, index=True)
    assigned_by = Column(Integer, nullable=True)  # audit only
    assigned_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    revoked_at = Column(DateTime, nullable=True)
    revoked_by = Column(Integer, nullable=True)
    expired_at = Column(DateTime, nullable=True)
    open_slot = Column(Boolean, nullable=True)

    role = relationship("Role", lazy="joined")
    user = relationship("User", back_populates="role_assignments", foreign_keys=[user_id])

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", "open_slot", name="uq_user_role_open"),
    )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def is_held(self, now: datetime) -> bool:
        """Neither revoked nor expired, whatever the role's state."""
        return (
            self.revoked_at is None
            and self.expired_at is None
            and not self.is_expired(now)
        )

    def is_effective(self, now: datetime) -> bool:
        return self.is_held(now) and self.role is not None and self.role.is_active

    @property
    def status(self) -> str:
        if self.revoked_at is not None:
            return "revoked"
        if self.expired_at is not None:
            return "expired"
        return "open"

    def close(self, now: datetime, revoked_by: Optional[int] = None, revoke: bool = True) -> None:
        """End this grant; ``revoke=False`` records a natural expiration."""
        if revoke:
            self.revoked_at = now
            self.revoked_by = revoked_by
        else:
            self.expired_at = now
        self.open_slot = None

    def __repr__(self):
        return (
            f"<UserRole(id={self.id}, user_id={self.user_id}, role_id={self.role_id}, "
            f"status={self.status})>"
        )
