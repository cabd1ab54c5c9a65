"""Applicant review API endpoints.

Thin HTTP layer over ReviewWorkflow. The actor is the bearer token's subject;
every authorization decision is made by the workflow, and workflow errors are
translated to HTTP responses by the handler registered in main.py.
"""

import logging
from typing import Annotated, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile, status

from auth.dependencies import get_current_actor
from dependencies import get_review_workflow
from domain.applicants.slots import DocumentSlot
from domain.documents.validation import DocumentUpload
from .schemas import (
    ApplicantRecordList,
    ApplicantRecordRead,
    DecisionRequest,
    DeletionResponse,
    DocumentUrlResponse,
    ErrorResponse,
)
from .service import ReviewWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/applicants",
    tags=["Applicants"],
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)

Actor = Annotated[UUID, Depends(get_current_actor)]
Workflow = Annotated[ReviewWorkflow, Depends(get_review_workflow)]


async def read_uploads(files: Dict[DocumentSlot, Optional[UploadFile]]) -> Dict[str, DocumentUpload]:
    """Read the provided multipart files into DocumentUploads keyed by slot name."""
    uploads = {}
    for slot, file in files.items():
        if file is None:
            continue
        uploads[slot.value] = DocumentUpload(
            filename=file.filename or "",
            content_type=file.content_type or "",
            data=await file.read(),
        )
    return uploads


@router.post("", response_model=ApplicantRecordRead, status_code=status.HTTP_201_CREATED)
async def submit_application(
    actor_id: Actor,
    workflow: Workflow,
    pre_employment: Optional[UploadFile] = File(None, description="Signed pre-employment form (PDF)"),
    policy_rules: Optional[UploadFile] = File(None, description="Signed policy rules (PDF)"),
) -> ApplicantRecordRead:
    """Submit signed documents and create the caller's application.

    Example:
        curl -X POST https://onboard.example.com/api/v1/applicants \\
             -H "Authorization: Bearer $TOKEN" \\
             -F "pre_employment=@pre_employment.pdf" \\
             -F "policy_rules=@policy_rules.pdf"
    """
    uploads = await read_uploads({
        DocumentSlot.PRE_EMPLOYMENT: pre_employment,
        DocumentSlot.POLICY_RULES: policy_rules,
    })
    record = await workflow.submit(actor_id, uploads)
    return ApplicantRecordRead.from_record(record)


@router.get("/me", response_model=ApplicantRecordRead)
def get_my_application(actor_id: Actor, workflow: Workflow) -> ApplicantRecordRead:
    return ApplicantRecordRead.from_record(workflow.get_own_record(actor_id))


@router.get("", response_model=ApplicantRecordList)
def list_applications(
    actor_id: Actor,
    workflow: Workflow,
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
) -> ApplicantRecordList:
    """List all applications, newest first (admin only)."""
    records = workflow.list_records(actor_id, status=status_filter)
    return ApplicantRecordList(
        items=[ApplicantRecordRead.from_record(r) for r in records],
        total=len(records),
    )


@router.get("/{record_id}", response_model=ApplicantRecordRead)
def get_application(record_id: UUID, actor_id: Actor, workflow: Workflow) -> ApplicantRecordRead:
    return ApplicantRecordRead.from_record(workflow.get_record(record_id, actor_id))


@router.post("/{record_id}/decision", response_model=ApplicantRecordRead)
async def decide_application(
    record_id: UUID,
    decision: DecisionRequest,
    actor_id: Actor,
    workflow: Workflow,
) -> ApplicantRecordRead:
    """Approve, reject, or request a revision (admin only).

    Approval promotes the applicant to employee before responding.
    """
    record = await workflow.decide(
        record_id,
        actor_id,
        decision.outcome,
        comment=decision.comment,
        slot_feedback=decision.slot_feedback,
        applicant_name=decision.applicant_name,
    )
    return ApplicantRecordRead.from_record(record)


@router.post("/{record_id}/resubmit", response_model=ApplicantRecordRead)
async def resubmit_application(
    record_id: UUID,
    actor_id: Actor,
    workflow: Workflow,
    pre_employment: Optional[UploadFile] = File(None, description="Corrected pre-employment form (PDF)"),
    policy_rules: Optional[UploadFile] = File(None, description="Corrected policy rules (PDF)"),
) -> ApplicantRecordRead:
    """Upload corrected documents; at least one is required."""
    uploads = await read_uploads({
        DocumentSlot.PRE_EMPLOYMENT: pre_employment,
        DocumentSlot.POLICY_RULES: policy_rules,
    })
    record = await workflow.resubmit(record_id, actor_id, uploads)
    return ApplicantRecordRead.from_record(record)


@router.delete("/{record_id}", response_model=DeletionResponse)
async def delete_application(record_id: UUID, actor_id: Actor, workflow: Workflow) -> DeletionResponse:
    """Delete an application and its stored documents (admin only). Irreversible."""
    result = await workflow.delete(record_id, actor_id)
    return DeletionResponse(
        record_id=result.record_id,
        deleted_paths=result.deleted_paths,
        failed_paths=result.failed_paths,
    )


@router.get("/{record_id}/documents/{slot}/url", response_model=DocumentUrlResponse)
async def get_document_url(
    record_id: UUID,
    slot: str,
    actor_id: Actor,
    workflow: Workflow,
) -> DocumentUrlResponse:
    """Issue a short-lived signed download URL for one document."""
    url = await workflow.get_document_url(record_id, actor_id, slot)
    return DocumentUrlResponse(
        slot=slot,
        url=url,
        expires_in_seconds=workflow.options.signed_url_ttl_seconds,
    )
