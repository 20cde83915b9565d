"""Roles API router — role registry and role-permission bindings."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from reservation_rbac.db.session import get_db
from reservation_rbac.schemas.schemas import (
    RoleCreate, RoleUpdate, RoleStatusUpdate, RoleOut, RoleWithPermissions,
    PermissionOut, AssignPermissionRequest, AssignPermissionsBulkRequest,
    BulkBindResponse, MessageResponse, NameExistsOut,
)
from reservation_rbac.services.role_service import role_service
from reservation_rbac.services.role_binding_service import role_binding_service
from reservation_rbac.core.security import require_roles_read, require_roles_manage

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("/", response_model=List[RoleOut])
async def list_roles(
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_roles_read),
):
    """List roles, most privileged first."""
    return [RoleOut.model_validate(r) for r in role_service.list_roles(db, active_only)]


@router.post("/", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
async def create_role(
    body: RoleCreate,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_roles_manage),
):
    role = role_service.create_role(
        db, body.name, body.access_level, body.description, actor_id=actor_id,
    )
    return RoleOut.model_validate(role)


@router.get("/exists", response_model=NameExistsOut)
async def role_name_exists(
    name: str = Query(..., min_length=1),
    exclude_id: Optional[int] = Query(None, description="Ignore this role, e.g. the one being edited"),
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_roles_read),
):
    return NameExistsOut(name=name, exists=role_service.name_exists(db, name, exclude_id))


@router.get("/{role_id}", response_model=RoleWithPermissions)
async def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_roles_read),
):
    """Role detail including its bound permissions."""
    role = role_service.get_role(db, role_id)
    permissions = role_binding_service.list_permissions_for_role(db, role_id)
    out = RoleWithPermissions.model_validate(role)
    out.permissions = [PermissionOut.model_validate(p) for p in permissions]
    return out


@router.put("/{role_id}", response_model=RoleOut)
async def update_role(
    role_id: int,
    body: RoleUpdate,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_roles_manage),
):
    role = role_service.update_role(
        db, role_id,
        name=body.name, description=body.description, access_level=body.access_level,
        actor_id=actor_id,
    )
    return RoleOut.model_validate(role)


@router.patch("/{role_id}/status", response_model=RoleOut)
async def set_role_status(
    role_id: int,
    body: RoleStatusUpdate,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_roles_manage),
):
    """Activate or deactivate a role without touching its assignments."""
    role = role_service.set_role_active(db, role_id, body.is_active, actor_id=actor_id)
    return RoleOut.model_validate(role)


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: int,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_roles_manage),
):
    role_service.delete_role(db, role_id, actor_id=actor_id)
    return MessageResponse(message="Role deleted")


# ---- bindings ----

@router.get("/{role_id}/permissions", response_model=List[PermissionOut])
async def list_role_permissions(
    role_id: int,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_roles_read),
):
    permissions = role_binding_service.list_permissions_for_role(db, role_id)
    return [PermissionOut.model_validate(p) for p in permissions]


@router.post("/{role_id}/permissions", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def assign_permission(
    role_id: int,
    body: AssignPermissionRequest,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_roles_manage),
):
    """Bind one permission; 409 if the role already holds it."""
    role_binding_service.assign_permission(db, role_id, body.permission_id, actor_id=actor_id)
    return MessageResponse(message="Permission assigned")


@router.post("/{role_id}/permissions/bulk", response_model=BulkBindResponse)
async def assign_permissions_bulk(
    role_id: int,
    body: AssignPermissionsBulkRequest,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_roles_manage),
):
    """Bind several permissions: all-or-nothing on unknown ids, already-bound ids skipped."""
    added = role_binding_service.assign_permissions_bulk(
        db, role_id, body.permission_ids, actor_id=actor_id,
    )
    return BulkBindResponse(role_id=role_id, added=added)


@router.delete("/{role_id}/permissions/{permission_id}", response_model=MessageResponse)
async def revoke_permission(
    role_id: int,
    permission_id: int,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_roles_manage),
):
    role_binding_service.revoke_permission(db, role_id, permission_id, actor_id=actor_id)
    return MessageResponse(message="Permission removed")
