import pytest

from reservation_rbac.core.exceptions import (
    ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from reservation_rbac.models.audit_log import AuditLog
from reservation_rbac.models.role_permission import RolePermission
from reservation_rbac.services.role_binding_service import role_binding_service


def bound_names(db, role_id):
    return {p.name for p in role_binding_service.list_permissions_for_role(db, role_id)}


def test_assign_permission_binds(db, make_role, make_permission):
    role = make_role("Empleado")
    perm = make_permission("reservas.crear")

    binding = role_binding_service.assign_permission(db, role.id, perm.id)

    assert binding.role_id == role.id
    assert bound_names(db, role.id) == {"reservas.crear"}


def test_assign_same_permission_twice_conflicts_and_leaves_set_unchanged(db, make_role, make_permission):
    role = make_role("Empleado")
    perm = make_permission("reservas.crear")
    role_binding_service.assign_permission(db, role.id, perm.id)

    with pytest.raises(ResourceConflictError):
        role_binding_service.assign_permission(db, role.id, perm.id)

    assert bound_names(db, role.id) == {"reservas.crear"}
    assert db.query(RolePermission).count() == 1


def test_assign_permission_unknown_ids(db, make_role, make_permission):
    role = make_role("Empleado")
    perm = make_permission("reservas.crear")

    with pytest.raises(ResourceNotFoundError):
        role_binding_service.assign_permission(db, 999, perm.id)
    with pytest.raises(ResourceNotFoundError):
        role_binding_service.assign_permission(db, role.id, 999)


def test_bulk_with_one_unknown_id_creates_nothing(db, make_role, make_permission):
    role = make_role("Empleado")
    p1 = make_permission("reservas.crear")
    p2 = make_permission("reservas.leer")

    with pytest.raises(ResourceNotFoundError) as exc:
        role_binding_service.assign_permissions_bulk(db, role.id, [p1.id, 424242, p2.id])

    assert "424242" in exc.value.message
    assert bound_names(db, role.id) == set()
    assert db.query(AuditLog).count() == 0


def test_bulk_skips_duplicates_and_existing(db, make_role, make_permission):
    role = make_role("Empleado")
    p1 = make_permission("reservas.crear")
    p2 = make_permission("reservas.leer")
    p3 = make_permission("clientes.leer")
    role_binding_service.assign_permission(db, role.id, p1.id)

    added = role_binding_service.assign_permissions_bulk(db, role.id, [p1.id, p2.id, p2.id, p3.id])

    assert added == [p2.id, p3.id]
    assert bound_names(db, role.id) == {"reservas.crear", "reservas.leer", "clientes.leer"}


def test_bulk_is_idempotent_where_single_assign_is_not(db, make_role, make_permission):
    role = make_role("Empleado")
    perm = make_permission("reservas.crear")
    role_binding_service.assign_permissions_bulk(db, role.id, [perm.id])

    assert role_binding_service.assign_permissions_bulk(db, role.id, [perm.id]) == []
    with pytest.raises(ResourceConflictError):
        role_binding_service.assign_permission(db, role.id, perm.id)


def test_bulk_rejects_empty_list(db, make_role):
    role = make_role("Empleado")
    with pytest.raises(ValidationError):
        role_binding_service.assign_permissions_bulk(db, role.id, [])


def test_revoke_permission(db, make_role, make_permission):
    role = make_role("Empleado")
    perm = make_permission("reservas.crear")
    role_binding_service.assign_permission(db, role.id, perm.id)

    role_binding_service.revoke_permission(db, role.id, perm.id)

    assert bound_names(db, role.id) == set()
    with pytest.raises(ResourceNotFoundError):
        role_binding_service.revoke_permission(db, role.id, perm.id)


def test_list_permissions_for_role(db, make_role):
    role = make_role("Empleado")
    assert role_binding_service.list_permissions_for_role(db, role.id) == []
    with pytest.raises(ResourceNotFoundError):
        role_binding_service.list_permissions_for_role(db, 999)


def test_list_roles_for_permission_ordered_by_level(db, make_role, make_permission):
    low = make_role("Cliente", level=40)
    high = make_role("Administrador", level=2)
    perm = make_permission("reservas.leer")
    role_binding_service.assign_permission(db, low.id, perm.id)
    role_binding_service.assign_permission(db, high.id, perm.id)

    roles = role_binding_service.list_roles_for_permission(db, perm.id)

    assert [r.name for r in roles] == ["Administrador", "Cliente"]


def test_binding_mutations_are_audited(db, make_role, make_permission):
    role = make_role("Empleado")
    perm = make_permission("reservas.crear")
    role_binding_service.assign_permission(db, role.id, perm.id, actor_id=7)
    role_binding_service.revoke_permission(db, role.id, perm.id, actor_id=7)

    actions = [log.action for log in db.query(AuditLog).order_by(AuditLog.id)]
    assert actions == ["permission.bound", "permission.unbound"]
