"""Users API router — role assignments and effective access."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from reservation_rbac.db.session import get_db
from reservation_rbac.schemas.schemas import (
    AssignRoleRequest, AssignRolesBulkRequest, AssignmentOut, AssignmentResultOut,
    EffectiveAccessOut, PermissionCheckOut,
)
from reservation_rbac.services.user_role_service import user_role_service
from reservation_rbac.services.authorization_service import authorization_service
from reservation_rbac.core.security import require_users_manage, get_current_user_id

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me/access", response_model=EffectiveAccessOut)
async def my_access(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """What the caller may do right now."""
    access = authorization_service.resolve(db, user_id)
    return EffectiveAccessOut(
        user_id=user_id,
        role_ids=sorted(access.role_ids),
        permissions=sorted(access.permissions),
        access_level=access.access_level,
    )


@router.get("/{user_id}/access", response_model=EffectiveAccessOut)
async def user_access(
    user_id: int,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_users_manage),
):
    access = authorization_service.resolve(db, user_id)
    return EffectiveAccessOut(
        user_id=user_id,
        role_ids=sorted(access.role_ids),
        permissions=sorted(access.permissions),
        access_level=access.access_level,
    )


@router.get("/{user_id}/permissions/{permission_name}", response_model=PermissionCheckOut)
async def check_permission(
    user_id: int,
    permission_name: str,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_users_manage),
):
    granted = authorization_service.has_permission(db, user_id, permission_name)
    return PermissionCheckOut(user_id=user_id, permission=permission_name, granted=granted)


@router.get("/{user_id}/roles", response_model=List[AssignmentOut])
async def list_user_roles(
    user_id: int,
    history: bool = Query(False, description="Include revoked and expired grants"),
    role_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_users_manage),
):
    if history:
        rows = user_role_service.assignment_history(db, user_id, role_id)
    else:
        rows = user_role_service.list_assignments(db, user_id)
        if role_id is not None:
            rows = [r for r in rows if r.role_id == role_id]
    return [AssignmentOut.model_validate(r) for r in rows]


@router.post("/{user_id}/roles", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED)
async def assign_role(
    user_id: int,
    body: AssignRoleRequest,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_users_manage),
):
    """Grant a role; 409 if the user already holds it."""
    assignment = user_role_service.assign_role(
        db, user_id, body.role_id, assigned_by=actor_id, expires_at=body.expires_at,
    )
    return AssignmentOut.model_validate(assignment)


@router.post("/{user_id}/roles/bulk", response_model=List[AssignmentResultOut])
async def assign_roles_bulk(
    user_id: int,
    body: AssignRolesBulkRequest,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_users_manage),
):
    """Grant several roles; each id is reported separately and valid grants always stick."""
    results = user_role_service.assign_roles_bulk(
        db, user_id, body.role_ids, assigned_by=actor_id, expires_at=body.expires_at,
    )
    return [
        AssignmentResultOut(role_id=r.role_id, outcome=r.outcome.value, assignment_id=r.assignment_id)
        for r in results
    ]


@router.delete("/{user_id}/roles/{role_id}", response_model=AssignmentOut)
async def revoke_role(
    user_id: int,
    role_id: int,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_users_manage),
):
    assignment = user_role_service.revoke_role(db, user_id, role_id, revoked_by=actor_id)
    return AssignmentOut.model_validate(assignment)
