"""Audit log query endpoint (admin only).

Entries are written by the workflow and the retention sweeper; the API never
creates, updates or deletes them.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Query as OrmQuery, Session

from auth.dependencies import require_role
from auth.roles import UserRole
from database import get_db
from models.audit_log import AuditLog
from .schemas import AuditLogListResponse


router = APIRouter(prefix="/audit", tags=["Audit Logs"])


def _filtered(
    query: OrmQuery,
    action: Optional[str],
    entity_id: Optional[UUID],
    performed_by: Optional[UUID],
    since: Optional[datetime],
    until: Optional[datetime],
) -> OrmQuery:
    conditions = []
    if action:
        conditions.append(AuditLog.action == action)
    if entity_id:
        conditions.append(AuditLog.entity_id == entity_id)
    if performed_by:
        conditions.append(AuditLog.actor_id == performed_by)
    if since:
        conditions.append(AuditLog.created_at >= since)
    if until:
        conditions.append(AuditLog.created_at <= until)
    return query.filter(*conditions)


@router.get("", response_model=AuditLogListResponse, summary="Query audit logs (admin only)")
def query_audit_logs(
    db: Session = Depends(get_db),
    actor_id: UUID = Depends(require_role(UserRole.ADMIN)),
    action: Optional[str] = Query(None, examples=["APPLICATION_DECIDED"]),
    entity_id: Optional[UUID] = Query(None, description="Applicant record id"),
    performed_by: Optional[UUID] = Query(None, description="Acting user id"),
    start_date: Optional[datetime] = Query(None, description="Inclusive lower bound on created_at"),
    end_date: Optional[datetime] = Query(None, description="Inclusive upper bound on created_at"),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
) -> AuditLogListResponse:
    """Entries for purged records stay queryable by entity_id."""
    query = _filtered(db.query(AuditLog), action, entity_id, performed_by, start_date, end_date)

    entries = (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id)
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return AuditLogListResponse(entries=entries, total=query.count(), page=page, per_page=per_page)
