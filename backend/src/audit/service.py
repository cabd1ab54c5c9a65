"""Audit logging service for workflow events.

This service provides a centralized interface for creating immutable audit log
entries. Every applicant workflow mutation is logged through it.

Audit Events:
- APPLICATION_SUBMITTED, APPLICATION_RESUBMITTED
- APPLICATION_DECIDED (metadata carries the outcome)
- APPLICANT_PROMOTED
- APPLICATION_DELETED, APPLICATION_PURGED
"""

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from domain.applicants.ports import AuditTrail
from models.audit_log import AuditLog

APPLICATION_SUBMITTED = "APPLICATION_SUBMITTED"
APPLICATION_RESUBMITTED = "APPLICATION_RESUBMITTED"
APPLICATION_DECIDED = "APPLICATION_DECIDED"
APPLICANT_PROMOTED = "APPLICANT_PROMOTED"
APPLICATION_DELETED = "APPLICATION_DELETED"
APPLICATION_PURGED = "APPLICATION_PURGED"

APPLICANT_ENTITY = "applicant"


def log_audit_event(
    db: Session,
    action: str,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
    flush: bool = True,
) -> AuditLog:
    """Create an audit log entry.

    The entry joins the caller's transaction; it becomes durable when the
    caller commits and disappears if the caller rolls back.

    Args:
        db: Database session
        action: Event action (e.g., "APPLICATION_DECIDED")
        actor_id: User who performed the action (None for system events)
        entity_type: Type of entity affected (e.g., "applicant")
        entity_id: ID of affected entity
        metadata: Additional context as JSON (e.g., {"outcome": "approved"})
        flush: Flush immediately to obtain the entry id

    Returns:
        AuditLog: The created audit log entry
    """
    audit_entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=metadata,
    )

    db.add(audit_entry)
    if flush:
        db.flush()  # Get ID without committing transaction

    return audit_entry


class SqlAlchemyAuditTrail(AuditTrail):
    """AuditTrail writing audit_log rows through a shared session."""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        action: str,
        actor_id: Optional[UUID],
        entity_id: Optional[UUID],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        log_audit_event(
            self.db,
            action=action,
            actor_id=actor_id,
            entity_type=APPLICANT_ENTITY,
            entity_id=entity_id,
            metadata=metadata,
            flush=False,
        )
