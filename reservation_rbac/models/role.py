"""Role model for RBAC."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, CheckConstraint, func
from sqlalchemy.orm import relationship
from reservation_rbac.db.base import Base


class Role(Base):
    """Named bundle of permissions with a flat access level.

    Lower ``access_level`` means more privilege (1 is the top). The level and
    every bound permission only count while ``is_active`` is true.
    """
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(200), nullable=True)
    access_level = Column(Integer, nullable=False, default=10)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    role_permissions = relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("access_level BETWEEN 1 AND 100", name="ck_role_access_level"),
    )

    @property
    def permission_count(self) -> int:
        return len(self.role_permissions)

    def __repr__(self):
        return f"<Role(id={self.id}, name={self.name}, level={self.access_level}, active={self.is_active})>"
