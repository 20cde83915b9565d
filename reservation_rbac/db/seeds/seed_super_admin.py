"""Seed the super-admin user from env vars."""

from sqlalchemy.orm import Session
from reservation_rbac.models.user import User
from reservation_rbac.models.role import Role
from reservation_rbac.core.config import settings
from reservation_rbac.services.user_role_service import user_role_service


def seed_super_admin(db: Session) -> None:
    """Create the super-admin user and grant it the top role if not already present."""
    super_admin_role = db.query(Role).filter(Role.name == "Super Administrador").first()
    if not super_admin_role:
        print("⚠️  'Super Administrador' role not found. Run seed_roles first.")
        return

    existing = db.query(User).filter(User.email == settings.SUPER_ADMIN_EMAIL).first()
    if existing:
        print(f"ℹ️  Super admin '{settings.SUPER_ADMIN_EMAIL}' already exists, skipping.")
        return

    admin = User(
        email=settings.SUPER_ADMIN_EMAIL,
        full_name="Super Admin",
        is_active=True,
    )
    db.add(admin)
    db.commit()
    user_role_service.assign_role(db, admin.id, super_admin_role.id)
    print(f"✅ Created super admin: {settings.SUPER_ADMIN_EMAIL}")
