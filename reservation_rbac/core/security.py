"""Caller identity from bearer tokens and permission-checking dependencies.

Tokens are issued by the authentication service; this module only verifies
them and asks the resolver what the caller may do.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from reservation_rbac.core.config import settings
from reservation_rbac.core.exceptions import AuthorizationError, PermissionDeniedError
from reservation_rbac.db.session import get_db
from reservation_rbac.services.authorization_service import authorization_service

logger = logging.getLogger("reservation_rbac")

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise AuthorizationError("Invalid or expired token")


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> int:
    """Extract user_id from the JWT Bearer token."""
    if credentials is None:
        raise AuthorizationError("Not authenticated")
    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    if user_id is None:
        raise AuthorizationError("Invalid token payload")
    try:
        return int(user_id)
    except (TypeError, ValueError):
        raise AuthorizationError("Invalid token subject")


class RequirePermission:
    """Dependency that checks the caller holds a permission right now."""

    def __init__(self, permission_name: str):
        self.permission_name = permission_name

    def __call__(
        self,
        user_id: int = Depends(get_current_user_id),
        db: Session = Depends(get_db),
    ) -> int:
        # StorageError propagates and the request fails closed
        if not authorization_service.has_permission(db, user_id, self.permission_name):
            logger.warning("User %s denied %s", user_id, self.permission_name)
            raise PermissionDeniedError(f"Missing permission '{self.permission_name}'")
        return user_id


# Convenience dependencies for the admin routers
require_roles_read = RequirePermission("roles.leer")
require_roles_manage = RequirePermission("roles.actualizar")
require_permissions_read = RequirePermission("permisos.leer")
require_permissions_manage = RequirePermission("permisos.actualizar")
require_users_manage = RequirePermission("usuarios.actualizar")
require_audit_read = RequirePermission("auditoria.leer")
