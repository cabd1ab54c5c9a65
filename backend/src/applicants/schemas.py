"""Pydantic schemas for the applicant review API."""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from domain.applicants.slots import DocumentSlot
from models.applicant import Applicant


class ApplicantDocumentRead(BaseModel):
    """One document slot of an applicant record."""
    storage_path: Optional[str] = Field(None, description="Object storage path of the uploaded PDF")
    feedback: Optional[str] = Field(None, description="Reviewer feedback for this slot")
    uploaded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApplicantRecordRead(BaseModel):
    """Applicant record as seen by its owner or a reviewer.

    Every slot is present in documents; slots without a row are null.
    """
    id: UUID
    user_id: UUID
    status: str = Field(..., description="pending | revision_required | approved | rejected")
    overall_comment: Optional[str] = None
    documents: Dict[str, Optional[ApplicantDocumentRead]]
    approved_at: Optional[datetime] = None
    approved_by: Optional[UUID] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: Applicant) -> "ApplicantRecordRead":
        documents = {}
        for slot in DocumentSlot:
            doc = record.find_document(slot)
            documents[slot.value] = ApplicantDocumentRead.model_validate(doc) if doc else None
        return cls(
            id=record.id,
            user_id=record.user_id,
            status=record.status,
            overall_comment=record.overall_comment,
            documents=documents,
            approved_at=record.approved_at,
            approved_by=record.approved_by,
            rejected_at=record.rejected_at,
            rejected_by=record.rejected_by,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class ApplicantRecordList(BaseModel):
    items: List[ApplicantRecordRead]
    total: int


class DecisionRequest(BaseModel):
    """Reviewer decision on an applicant record."""
    outcome: str = Field(..., description="approved | rejected | revision_required")
    comment: Optional[str] = Field(None, max_length=5000, description="Overall comment; required for revision_required")
    slot_feedback: Dict[str, Optional[str]] = Field(
        default_factory=dict,
        description="Per-slot feedback keyed by slot name; other slots are left untouched",
    )
    applicant_name: Optional[str] = Field(None, max_length=200, description="Display name for the approval email")

    class Config:
        json_schema_extra = {
            "example": {
                "outcome": "revision_required",
                "comment": "The policy rules form is missing a signature",
                "slot_feedback": {"policy_rules": "Sign page 2"}
            }
        }


class DeletionResponse(BaseModel):
    record_id: UUID
    deleted_paths: List[str]
    failed_paths: List[str] = Field(..., description="Stored documents that could not be removed")


class DocumentUrlResponse(BaseModel):
    slot: str
    url: str
    expires_in_seconds: int


class ErrorResponse(BaseModel):
    detail: str
    error: str
