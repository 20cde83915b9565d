"""Admin / Audit API router."""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reservation_rbac.db.session import get_db
from reservation_rbac.schemas.schemas import AuditLogOut
from reservation_rbac.services.audit_service import audit_service
from reservation_rbac.models.role import Role
from reservation_rbac.models.permission import Permission
from reservation_rbac.models.user_role import UserRole
from reservation_rbac.core.security import require_audit_read

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/audit")
async def get_audit_logs(
    action: Optional[str] = Query(None, description="Action or action prefix, e.g. 'role.'"),
    resource_type: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    actor_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    caller_id: int = Depends(require_audit_read),
):
    """Who changed which role, permission or grant, newest first."""
    result = audit_service.query_logs(
        db,
        actor_id=actor_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        page=page,
        page_size=page_size,
    )
    return {
        "logs": [AuditLogOut.model_validate(log) for log in result["logs"]],
        "total": result["total"],
        "page": result["page"],
    }


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """System health check — DB."""
    db_ok = False
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError:
        pass

    return {
        "database": "ok" if db_ok else "error",
        "status": "healthy" if db_ok else "degraded",
    }


@router.get("/stats")
async def access_stats(
    db: Session = Depends(get_db),
    caller_id: int = Depends(require_audit_read),
):
    """Counts of roles, permissions and assignment records."""
    return {
        "total_roles": db.query(Role).count(),
        "active_roles": db.query(Role).filter(Role.is_active.is_(True)).count(),
        "total_permissions": db.query(Permission).count(),
        "assignment_records": db.query(UserRole).count(),
        "open_assignments": db.query(UserRole).filter(UserRole.open_slot.is_(True)).count(),
    }
