"""Pydantic schemas for the audit query endpoint (read-only)."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AuditLogResponse(BaseModel):
    """One workflow event."""
    id: UUID
    actor_id: Optional[UUID] = Field(None, description="Acting user; None for sweeper events")
    action: str = Field(..., description="APPLICATION_SUBMITTED, APPLICATION_DECIDED, APPLICANT_PROMOTED, ...")
    entity_type: Optional[str] = None
    entity_id: Optional[UUID] = Field(None, description="Applicant record id (kept after a purge)")
    metadata_json: Optional[dict] = Field(None, serialization_alias="metadata")
    created_at: datetime

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": "7d0f7c7e-3a55-4d4c-9a53-2f1c6a9b8e10",
                "actor_id": "0b7b8f0e-6d4e-4f7e-8a57-3a5f0c2d9e41",
                "action": "APPLICATION_DECIDED",
                "entity_type": "applicant",
                "entity_id": "c1d2e3f4-0000-4abc-8def-123456789abc",
                "metadata": {"outcome": "revision_required", "from_status": "pending", "feedback_slots": ["policy_rules"]},
                "created_at": "2026-03-02T10:15:00Z"
            }
        }


class AuditLogListResponse(BaseModel):
    """One page of audit entries, newest first."""
    entries: list[AuditLogResponse]
    total: int = Field(..., description="Entries matching the filters across all pages")
    page: int
    per_page: int
