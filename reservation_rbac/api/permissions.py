"""Permissions API router — the permission catalog."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from reservation_rbac.db.session import get_db
from reservation_rbac.schemas.schemas import (
    PermissionCreate, PermissionUpdate, PermissionOut, RoleOut, MessageResponse, NameExistsOut,
)
from reservation_rbac.services.permission_service import permission_service
from reservation_rbac.services.role_binding_service import role_binding_service
from reservation_rbac.core.security import require_permissions_read, require_permissions_manage

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.get("/", response_model=List[PermissionOut])
async def list_permissions(
    module: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_permissions_read),
):
    return [PermissionOut.model_validate(p) for p in permission_service.list_permissions(db, module)]


@router.post("/", response_model=PermissionOut, status_code=status.HTTP_201_CREATED)
async def create_permission(
    body: PermissionCreate,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_permissions_manage),
):
    permission = permission_service.create_permission(db, body.name, body.description, actor_id=actor_id)
    return PermissionOut.model_validate(permission)


@router.get("/exists", response_model=NameExistsOut)
async def permission_name_exists(
    name: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_permissions_read),
):
    return NameExistsOut(name=name, exists=permission_service.name_exists(db, name))


@router.get("/modules", response_model=List[str])
async def list_modules(
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_permissions_read),
):
    """Distinct modules present in the catalog."""
    return permission_service.list_modules(db)


@router.get("/{permission_id}", response_model=PermissionOut)
async def get_permission(
    permission_id: int,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_permissions_read),
):
    return PermissionOut.model_validate(permission_service.get_permission(db, permission_id))


@router.put("/{permission_id}", response_model=PermissionOut)
async def update_permission(
    permission_id: int,
    body: PermissionUpdate,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_permissions_manage),
):
    """Only the description of a permission can change."""
    permission = permission_service.update_description(
        db, permission_id, body.description, actor_id=actor_id,
    )
    return PermissionOut.model_validate(permission)


@router.delete("/{permission_id}", response_model=MessageResponse)
async def delete_permission(
    permission_id: int,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_permissions_manage),
):
    permission_service.delete_permission(db, permission_id, actor_id=actor_id)
    return MessageResponse(message="Permission deleted")


@router.get("/{permission_id}/roles", response_model=List[RoleOut])
async def list_permission_roles(
    permission_id: int,
    db: Session = Depends(get_db),
    actor_id: int = Depends(require_permissions_read),
):
    """Roles that hold the permission, most privileged first."""
    roles = role_binding_service.list_roles_for_permission(db, permission_id)
    return [RoleOut.model_validate(r) for r in roles]
