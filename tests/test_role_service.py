import pytest

from reservation_rbac.core.exceptions import (
    ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from reservation_rbac.models.audit_log import AuditLog
from reservation_rbac.models.role_permission import RolePermission
from reservation_rbac.services.role_binding_service import role_binding_service
from reservation_rbac.services.role_service import role_service


def test_create_role(db):
    role = role_service.create_role(db, "  Recepcionista ", 25, description="Front desk", actor_id=1)

    assert role.id is not None
    assert role.name == "Recepcionista"
    assert role.is_active is True
    assert role.access_level == 25
    assert db.query(AuditLog).filter(AuditLog.action == "role.created").count() == 1


@pytest.mark.parametrize("name", ["ab", "x" * 51, "Bad$Name", "   "])
def test_create_role_rejects_bad_names(db, name):
    with pytest.raises(ValidationError):
        role_service.create_role(db, name, 10)


@pytest.mark.parametrize("level", [0, 101, -5, True])
def test_create_role_rejects_bad_levels(db, level):
    with pytest.raises(ValidationError):
        role_service.create_role(db, "Empleado", level)


def test_create_role_rejects_long_description(db):
    with pytest.raises(ValidationError):
        role_service.create_role(db, "Empleado", 10, description="d" * 201)


def test_duplicate_role_name_conflicts_ignoring_case(db):
    role_service.create_role(db, "Empleado", 10)
    with pytest.raises(ResourceConflictError):
        role_service.create_role(db, "EMPLEADO", 20)


def test_get_unknown_role(db):
    with pytest.raises(ResourceNotFoundError):
        role_service.get_role(db, 42)


def test_list_roles_orders_by_level_and_filters_inactive(db, make_role):
    make_role("Cliente", level=40)
    make_role("Empleado", level=30)
    make_role("Antiguo", level=5, active=False)

    assert [r.name for r in role_service.list_roles(db)] == ["Antiguo", "Empleado", "Cliente"]
    assert [r.name for r in role_service.list_roles(db, active_only=True)] == ["Empleado", "Cliente"]


def test_update_role_is_partial(db, make_role):
    role = make_role("Empleado", level=30)

    updated = role_service.update_role(db, role.id, description="Staff")

    assert updated.description == "Staff"
    assert updated.name == "Empleado"
    assert updated.access_level == 30


def test_update_role_requires_a_field(db, make_role):
    role = make_role("Empleado")
    with pytest.raises(ValidationError):
        role_service.update_role(db, role.id)


def test_update_role_rename_collision(db, make_role):
    make_role("Cliente")
    role = make_role("Empleado")
    with pytest.raises(ResourceConflictError):
        role_service.update_role(db, role.id, name="cliente")
    # renaming to itself is fine
    assert role_service.update_role(db, role.id, name="Empleado").name == "Empleado"


def test_protected_role_cannot_be_deactivated_or_deleted(db, make_role):
    role = make_role("Administrador", level=2)

    with pytest.raises(ResourceConflictError):
        role_service.set_role_active(db, role.id, False)
    with pytest.raises(ResourceConflictError):
        role_service.delete_role(db, role.id)
    assert role_service.get_role(db, role.id).is_active is True


def test_set_role_active_toggles_and_audits(db, make_role):
    role = make_role("Empleado")

    role_service.set_role_active(db, role.id, False)
    role_service.set_role_active(db, role.id, False)
    role_service.set_role_active(db, role.id, True)

    actions = [log.action for log in db.query(AuditLog).order_by(AuditLog.id)]
    assert actions == ["role.deactivated", "role.activated"]


def test_delete_role_drops_bindings(db, make_role, make_permission):
    role = make_role("Temporal")
    perm = make_permission("reservas.leer")
    role_binding_service.assign_permission(db, role.id, perm.id)
    assert role_service.permission_count(db, role.id) == 1

    role_service.delete_role(db, role.id)

    with pytest.raises(ResourceNotFoundError):
        role_service.get_role(db, role.id)
    assert db.query(RolePermission).count() == 0


def test_delete_role_with_assignment_history_conflicts(db, assignments, make_user, make_role):
    user = make_user()
    role = make_role("Temporal")
    assignments.assign_role(db, user.id, role.id)
    assignments.revoke_role(db, user.id, role.id)

    with pytest.raises(ResourceConflictError):
        role_service.delete_role(db, role.id)


def test_protected_role_cannot_be_renamed(db, make_role):
    role = make_role("Administrador", level=2)

    with pytest.raises(ResourceConflictError):
        role_service.update_role(db, role.id, name="Gerente")
    assert role_service.get_role(db, role.id).name == "Administrador"
    # other fields stay editable
    assert role_service.update_role(db, role.id, description="Back office").description == "Back office"


def test_role_cannot_take_a_protected_name(db, make_role):
    role = make_role("Gerente")

    with pytest.raises(ResourceConflictError):
        role_service.update_role(db, role.id, name="super administrador")
    role_service.delete_role(db, role.id)


def test_role_name_exists(db, make_role):
    role = make_role("Empleado")

    assert role_service.name_exists(db, " empleado ")
    assert not role_service.name_exists(db, "Empleado", exclude_id=role.id)
    assert not role_service.name_exists(db, "Cliente")
