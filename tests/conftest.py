from datetime import datetime
from itertools import count

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from reservation_rbac.core.clock import FixedClock
from reservation_rbac.db.base import Base
from reservation_rbac.db.session import enable_sqlite_foreign_keys
import reservation_rbac.models  # noqa: F401
from reservation_rbac.models.user import User
from reservation_rbac.models.role import Role
from reservation_rbac.models.permission import Permission
from reservation_rbac.services.user_role_service import UserRoleService
from reservation_rbac.services.authorization_service import AuthorizationService

NOW = datetime(2026, 1, 15, 12, 0, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def assignments(clock):
    return UserRoleService(clock)


@pytest.fixture
def resolver(clock):
    return AuthorizationService(clock)


@pytest.fixture
def make_user(db):
    seq = count(1)

    def _make(active=True):
        n = next(seq)
        user = User(email=f"user{n}@example.com", full_name=f"User {n}", is_active=active)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_role(db):
    def _make(name, level=10, active=True):
        role = Role(name=name, access_level=level, is_active=active)
        db.add(role)
        db.commit()
        return role

    return _make


@pytest.fixture
def make_permission(db):
    def _make(name):
        module, action = name.split(".", 1)
        permission = Permission(name=name, module=module, action=action)
        db.add(permission)
        db.commit()
        return permission

    return _make
