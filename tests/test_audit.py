from datetime import timedelta

from reservation_rbac.models.audit_log import AuditLog
from reservation_rbac.services.audit_service import audit_service
from reservation_rbac.services.role_binding_service import role_binding_service

from tests.conftest import NOW


def test_record_is_staged_in_callers_transaction(db):
    audit_service.record(db, 1, "role.created", "role", 5, new_value={"name": "Empleado"})
    db.rollback()

    assert db.query(AuditLog).count() == 0


def test_query_logs_filters_by_action_prefix_and_resource(db, assignments, make_user, make_role, make_permission):
    admin = make_user()
    user = make_user()
    role = make_role("Empleado")
    perm = make_permission("reservas.leer")
    role_binding_service.assign_permission(db, role.id, perm.id, actor_id=admin.id)
    assignments.assign_role(db, user.id, role.id, assigned_by=admin.id)
    assignments.revoke_role(db, user.id, role.id, revoked_by=admin.id)

    role_events = audit_service.query_logs(db, action="role.")
    by_admin = audit_service.query_logs(db, actor_id=admin.id)

    assert [log.action for log in role_events["logs"]] == ["role.revoked", "role.assigned"]
    assert by_admin["total"] == 3
    assert audit_service.query_logs(db, action="permission.bound")["total"] == 1


def test_query_logs_pages_newest_first(db):
    for n in range(5):
        audit_service.record(db, None, "role.updated", "role", n)
    db.commit()

    page = audit_service.query_logs(db, page=2, page_size=2)

    assert page["total"] == 5
    assert [log.resource_id for log in page["logs"]] == ["2", "1"]
    assert audit_service.query_logs(db, resource_id=3)["logs"][0].resource_id == "3"


def test_grant_audit_entries_carry_the_grant_instant(db, assignments, clock, make_user, make_role):
    user = make_user()
    role = make_role("Empleado")
    granted = assignments.assign_role(db, user.id, role.id)
    clock.advance(timedelta(minutes=10))
    revoked = assignments.revoke_role(db, user.id, role.id)

    entries = {log.action: log for log in db.query(AuditLog)}

    assert entries["role.assigned"].created_at == granted.assigned_at == NOW
    assert entries["role.revoked"].created_at == revoked.revoked_at == NOW + timedelta(minutes=10)
