import pytest
from fastapi.testclient import TestClient
from jose import jwt

from reservation_rbac.core.config import settings
from reservation_rbac.db.seeds.seed_roles import seed_roles
from reservation_rbac.db.seeds.seed_super_admin import seed_super_admin
from reservation_rbac.db.session import get_db
from reservation_rbac.main import app
from reservation_rbac.models.role import Role
from reservation_rbac.models.user import User


def token_for(user_id: int) -> dict:
    token = jwt.encode({"sub": str(user_id)}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin(db):
    seed_roles(db)
    seed_super_admin(db)
    return db.query(User).filter(User.email == settings.SUPER_ADMIN_EMAIL).one()


@pytest.fixture
def admin_headers(admin):
    return token_for(admin.id)


def role_id(db, name):
    return db.query(Role).filter(Role.name == name).one().id


def test_missing_token_is_unauthorized(client, admin):
    response = client.get("/api/roles/")

    assert response.status_code == 401
    assert response.json()["error_code"] == "UNAUTHORIZED"


def test_garbage_token_is_unauthorized(client, admin):
    response = client.get("/api/roles/", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_caller_without_permission_is_forbidden(client, admin, make_user):
    nobody = make_user()

    response = client.get("/api/roles/", headers=token_for(nobody.id))

    body = response.json()
    assert response.status_code == 403
    assert body["error_code"] == "FORBIDDEN"
    assert body["success"] is False


def test_list_roles_most_privileged_first(client, admin_headers):
    response = client.get("/api/roles/", headers=admin_headers)

    assert response.status_code == 200
    names = [r["name"] for r in response.json()]
    assert names == ["Super Administrador", "Administrador", "Empleado", "Cliente"]


def test_create_role_and_duplicate_conflict(client, admin_headers):
    payload = {"name": "Recepcionista", "access_level": 25}

    created = client.post("/api/roles/", json=payload, headers=admin_headers)
    duplicate = client.post("/api/roles/", json=payload, headers=admin_headers)

    assert created.status_code == 201
    assert created.json()["is_active"] is True
    assert duplicate.status_code == 409
    assert duplicate.json()["error_code"] == "CONFLICT"


def test_invalid_body_is_invalid_argument(client, admin_headers):
    response = client.post("/api/roles/", json={"name": "Recepcionista", "access_level": 0}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_ARGUMENT"


def test_unknown_role_is_not_found(client, admin_headers):
    response = client.get("/api/roles/9999", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["error_code"] == "NOT_FOUND"


def test_error_body_echoes_request_id(client, admin_headers):
    response = client.get("/api/roles/9999", headers={**admin_headers, "X-Request-Id": "req-123"})

    assert response.json()["request_id"] == "req-123"
    assert response.headers["X-Request-Id"] == "req-123"


def test_assign_role_then_check_access(client, db, admin_headers, make_user):
    user = make_user()
    empleado = role_id(db, "Empleado")

    assigned = client.post(f"/api/users/{user.id}/roles", json={"role_id": empleado}, headers=admin_headers)
    again = client.post(f"/api/users/{user.id}/roles", json={"role_id": empleado}, headers=admin_headers)
    check = client.get(f"/api/users/{user.id}/permissions/reservas.crear", headers=admin_headers)
    mine = client.get("/api/users/me/access", headers=token_for(user.id))

    assert assigned.status_code == 201
    assert assigned.json()["status"] == "open"
    assert again.status_code == 409
    assert check.json()["granted"] is True
    assert mine.json()["access_level"] == 3
    assert "reservas.eliminar" not in mine.json()["permissions"]


def test_expiry_in_the_past_is_rejected(client, db, admin_headers, make_user):
    user = make_user()

    response = client.post(
        f"/api/users/{user.id}/roles",
        json={"role_id": role_id(db, "Cliente"), "expires_at": "2000-01-01T00:00:00"},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_ARGUMENT"


def test_bulk_role_assignment_reports_each_id(client, db, admin_headers, make_user):
    user = make_user()
    cliente = role_id(db, "Cliente")
    client.post(f"/api/users/{user.id}/roles", json={"role_id": cliente}, headers=admin_headers)

    response = client.post(
        f"/api/users/{user.id}/roles/bulk",
        json={"role_ids": [role_id(db, "Empleado"), cliente, 9999]},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert [r["outcome"] for r in response.json()] == ["assigned", "already_effective", "not_found"]


def test_revoke_role_endpoint(client, db, admin, admin_headers, make_user):
    user = make_user()
    cliente = role_id(db, "Cliente")
    client.post(f"/api/users/{user.id}/roles", json={"role_id": cliente}, headers=admin_headers)

    revoked = client.delete(f"/api/users/{user.id}/roles/{cliente}", headers=admin_headers)
    missing = client.delete(f"/api/users/{user.id}/roles/{cliente}", headers=admin_headers)

    assert revoked.status_code == 200
    assert revoked.json()["status"] == "revoked"
    assert revoked.json()["revoked_by"] == admin.id
    assert missing.status_code == 404


def test_permission_bulk_with_unknown_id_binds_nothing(client, db, admin_headers):
    recep = client.post("/api/roles/", json={"name": "Recepcionista", "access_level": 25}, headers=admin_headers).json()
    permisos = client.get("/api/permissions/", headers=admin_headers).json()

    response = client.post(
        f"/api/roles/{recep['id']}/permissions/bulk",
        json={"permission_ids": [permisos[0]["id"], 9999]},
        headers=admin_headers,
    )
    bound = client.get(f"/api/roles/{recep['id']}/permissions", headers=admin_headers)

    assert response.status_code == 404
    assert bound.json() == []


def test_empty_bulk_is_rejected(client, db, admin_headers):
    response = client.post(
        f"/api/roles/{role_id(db, 'Empleado')}/permissions/bulk",
        json={"permission_ids": []},
        headers=admin_headers,
    )

    assert response.status_code == 400


def test_protected_role_cannot_be_deactivated(client, db, admin_headers):
    response = client.patch(
        f"/api/roles/{role_id(db, 'Administrador')}/status",
        json={"is_active": False},
        headers=admin_headers,
    )

    assert response.status_code == 409


def test_audit_log_is_readable(client, db, admin_headers):
    client.post("/api/roles/", json={"name": "Recepcionista", "access_level": 25}, headers=admin_headers)

    response = client.get("/api/admin/audit", params={"action": "role.created"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert response.json()["logs"][0]["resource_type"] == "role"


def test_catalog_name_checks_and_modules(client, db, admin_headers):
    roles = client.get("/api/roles/exists", params={"name": "empleado"}, headers=admin_headers)
    free = client.get("/api/roles/exists", params={"name": "Recepcionista"}, headers=admin_headers)
    perm = client.get("/api/permissions/exists", params={"name": "Reservas.Crear"}, headers=admin_headers)
    modules = client.get("/api/permissions/modules", headers=admin_headers)

    assert roles.json() == {"name": "empleado", "exists": True}
    assert free.json()["exists"] is False
    assert perm.json()["exists"] is True
    assert modules.json() == sorted(
        ["roles", "permisos", "usuarios", "auditoria", "reservas", "clientes", "pagos", "servicios"]
    )
