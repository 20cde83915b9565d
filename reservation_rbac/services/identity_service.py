"""Identity collaborator — definitive yes/no answers about users."""

from typing import Optional
from sqlalchemy.orm import Session

from reservation_rbac.models.user import User
from reservation_rbac.core.exceptions import ResourceNotFoundError, ResourceConflictError


class IdentityService:
    """Looks users up; authentication itself happens upstream."""

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.get(User, user_id)

    @staticmethod
    def user_exists(db: Session, user_id: int) -> bool:
        return db.get(User, user_id) is not None

    @staticmethod
    def is_active(db: Session, user_id: int) -> bool:
        user = db.get(User, user_id)
        return user is not None and user.is_active

    @staticmethod
    def require_user(db: Session, user_id: int) -> User:
        user = db.get(User, user_id)
        if not user:
            raise ResourceNotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def create_user(db: Session, email: str, full_name: str) -> User:
        """Register a user record (used by seeds and tests)."""
        if db.query(User).filter(User.email == email).first():
            raise ResourceConflictError(f"User with email {email} already exists")
        user = User(email=email, full_name=full_name, is_active=True)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def set_active(db: Session, user_id: int, active: bool) -> User:
        user = IdentityService.require_user(db, user_id)
        user.is_active = active
        db.commit()
        return user


identity_service = IdentityService()
