"""
Audit trail service.

Records merge actions (and any other entity change the calling layers want
to trace). Entries are added to the caller's session so they commit or roll
back together with the change they describe.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.orm import Session

from crm.core.models import AuditLog

logger = logging.getLogger(__name__)


class AuditActions:
    """Audit action names."""
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"
    SOFT_DELETE = "SoftDelete"
    RESTORE = "Restore"


class AuditSink(Protocol):
    """Anything that accepts audit entries."""

    def append(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[str],
        message: str,
    ) -> None:
        ...


def log_audit(
    db: Session,
    action: str,
    entity_type: str,
    entity_id: Optional[str] = None,
    message: Optional[str] = None,
    tenant_id: Optional[str] = None,
    user_id: Optional[str] = None,
    entity_name: Optional[str] = None,
    commit: bool = False,
) -> AuditLog:
    """
    Create an audit trail entry.

    Args:
        db: Database session
        action: One of AuditActions
        entity_type: "Customer", "Lead", ...
        entity_id: Affected record id
        message: Human-readable description
        tenant_id: Owning tenant
        user_id: Acting user, when known
        entity_name: Display name of the affected record
        commit: Commit immediately (standalone use). Leave False to make the
            entry part of the caller's transaction.

    Returns:
        Created audit log entry
    """
    entry = AuditLog(
        tenant_id=tenant_id,
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity_name,
        message=message,
        timestamp=datetime.utcnow(),
    )
    db.add(entry)
    if commit:
        db.commit()
        db.refresh(entry)

    logger.debug(f"Audit: {action} {entity_type} {entity_id}: {message}")
    return entry


class SessionAuditSink:
    """Audit sink writing AuditLog rows into the merge's own session."""

    def __init__(self, db: Session, tenant_id: str, user_id: Optional[str] = None):
        self.db = db
        self.tenant_id = tenant_id
        self.user_id = user_id

    def append(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[str],
        message: str,
    ) -> None:
        log_audit(
            self.db,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            message=message,
            tenant_id=self.tenant_id,
            user_id=self.user_id,
        )


class BestEffortAuditSink:
    """
    Wraps an external sink whose failures must not abort a merge.

    Use only for sinks that live outside the merge transaction; failures are
    logged at error level and the merge continues.
    """

    def __init__(self, inner: AuditSink):
        self.inner = inner
        self.failures = 0

    def append(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[str],
        message: str,
    ) -> None:
        try:
            self.inner.append(action, entity_type, entity_id, message)
        except Exception as e:
            self.failures += 1
            logger.error(
                f"Failed to write audit entry for {action} on {entity_type} "
                f"{entity_id}: {e}"
            )


def get_audit_trail(
    db: Session,
    tenant_id: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 50,
) -> List[Dict[str, Any]]:
    """
    Query a tenant's audit trail with optional filters, newest first.

    Args:
        db: Database session
        tenant_id: Tenant whose entries are returned
        entity_type: Filter by entity type
        entity_id: Filter by affected record
        action: Filter by action
        limit: Maximum results

    Returns:
        List of audit log entries
    """
    query = db.query(AuditLog).filter(AuditLog.tenant_id == tenant_id)

    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.filter(AuditLog.entity_id == entity_id)
    if action:
        query = query.filter(AuditLog.action == action)

    rows = query.order_by(AuditLog.timestamp.desc()).limit(limit).all()

    return [
        {
            "id": row.id,
            "action": row.action,
            "entity_type": row.entity_type,
            "entity_id": row.entity_id,
            "entity_name": row.entity_name,
            "message": row.message,
            "user_id": row.user_id,
            "timestamp": row.timestamp.isoformat() if row.timestamp else None,
        }
        for row in rows
    ]
