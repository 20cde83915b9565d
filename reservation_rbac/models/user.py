"""User model."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from reservation_rbac.db.base import Base


class User(Base):
    """Authenticated identity known to the reservation system."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    role_assignments = relationship(
        "UserRole",
        back_populates="user",
        lazy="selectin",
        foreign_keys="[UserRole.user_id]",
    )
