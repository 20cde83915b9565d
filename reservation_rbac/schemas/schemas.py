"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


# ---- Errors ----
class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error_code: str
    timestamp: datetime
    request_id: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class NameExistsOut(BaseModel):
    name: str
    exists: bool


# ---- Permission ----
class PermissionCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=100, examples=["reservas.crear"])
    description: Optional[str] = Field(None, max_length=200)

class PermissionUpdate(BaseModel):
    description: Optional[str] = Field(None, max_length=200)

class PermissionOut(BaseModel):
    id: int
    name: str
    module: str
    action: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Role ----
class RoleCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=50)
    access_level: int = Field(10, ge=1, le=100)
    description: Optional[str] = Field(None, max_length=200)

class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=50)
    access_level: Optional[int] = Field(None, ge=1, le=100)
    description: Optional[str] = Field(None, max_length=200)

class RoleStatusUpdate(BaseModel):
    is_active: bool

class RoleOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    access_level: int
    is_active: bool
    permission_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RoleWithPermissions(RoleOut):
    permissions: List[PermissionOut] = []


# ---- Role-permission binding ----
class AssignPermissionRequest(BaseModel):
    permission_id: int

class AssignPermissionsBulkRequest(BaseModel):
    permission_ids: List[int] = Field(..., min_length=1)

class BulkBindResponse(BaseModel):
    role_id: int
    added: List[int]


# ---- User-role assignment ----
class AssignRoleRequest(BaseModel):
    role_id: int
    expires_at: Optional[datetime] = None

class AssignRolesBulkRequest(BaseModel):
    role_ids: List[int] = Field(..., min_length=1)
    expires_at: Optional[datetime] = None

class AssignmentOut(BaseModel):
    id: int
    user_id: int
    role_id: int
    assigned_by: Optional[int] = None
    assigned_at: datetime
    expires_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    revoked_by: Optional[int] = None
    expired_at: Optional[datetime] = None
    status: str

    class Config:
        from_attributes = True

class AssignmentResultOut(BaseModel):
    role_id: int
    outcome: str
    assignment_id: Optional[int] = None


# ---- Authorization ----
class EffectiveAccessOut(BaseModel):
    user_id: int
    role_ids: List[int]
    permissions: List[str]
    access_level: Optional[int] = None

class PermissionCheckOut(BaseModel):
    user_id: int
    permission: str
    granted: bool


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    actor_id: Optional[int] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    old_value_json: Optional[str] = None
    new_value_json: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
