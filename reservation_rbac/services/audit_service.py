"""Audit service — append-only audit trail for access-control mutations."""

import json
from datetime import datetime
from typing import Optional, Any
from sqlalchemy.orm import Session

from reservation_rbac.models.audit_log import AuditLog


class AuditService:
    """Records immutable audit log entries for system events."""

    @staticmethod
    def record(
        db: Session,
        actor_id: Optional[int],
        action: str,
        resource_type: str,
        resource_id: Optional[Any] = None,
        old_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
        at: Optional[datetime] = None,
    ) -> AuditLog:
        """Stage a single audit log record in the caller's transaction.

        Args:
            action: e.g. "role.assigned", "role.revoked", "permission.bound"
            resource_type: role, permission, role_permission, user_role
            at: instant of the mutation; defaults to the database clock

        The entry is committed together with the mutation it describes, so a
        rolled-back mutation leaves no audit row behind.
        """
        entry = AuditLog(
            actor_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            old_value_json=json.dumps(old_value, default=str) if old_value else None,
            new_value_json=json.dumps(new_value, default=str) if new_value else None,
        )
        if at is not None:
            entry.created_at = at
        db.add(entry)
        return entry

    @staticmethod
    def query_logs(
        db: Session,
        actor_id: Optional[int] = None,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> dict:
        """Newest-first page of audit entries.

        ``action`` matches by prefix, so ``"role."`` selects every role event
        while ``"role.assigned"`` selects exactly that one.
        """
        filters = []
        if actor_id is not None:
            filters.append(AuditLog.actor_id == actor_id)
        if action:
            filters.append(AuditLog.action.startswith(action.strip().lower()))
        if resource_type:
            filters.append(AuditLog.resource_type == resource_type)
        if resource_id is not None:
            filters.append(AuditLog.resource_id == str(resource_id))

        query = db.query(AuditLog).filter(*filters)
        total = query.count()
        logs = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"logs": logs, "total": total, "page": page, "page_size": page_size}


audit_service = AuditService()
