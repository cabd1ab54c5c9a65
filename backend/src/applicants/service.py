"""Applicant review workflow.

ReviewWorkflow applies submissions, reviewer decisions, resubmissions and
deletions to applicant records. Every operation takes the acting user's id
explicitly and checks authorization against the AuthorizationPort before
touching anything.

Storage calls are bounded by a wall-clock timeout. Uploads happen before the
record is written; if the write does not commit, the uploaded objects are
removed again so no record references a missing object and no upload is
left orphaned.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, TypeVar
from uuid import UUID, uuid4

from audit.service import (
    APPLICANT_PROMOTED,
    APPLICATION_DECIDED,
    APPLICATION_DELETED,
    APPLICATION_RESUBMITTED,
    APPLICATION_SUBMITTED,
)
from auth.roles import PROMOTION_TARGET_ROLE, UserRole, is_reviewer
from config import Settings
from domain.applicants.errors import (
    ApplicantWorkflowError,
    Conflict,
    NotFound,
    PermissionDenied,
    PromotionFailed,
    StorageFailure,
    ValidationError,
)
from domain.applicants.ports import (
    ApplicantRepository,
    ApprovalNotice,
    AuditTrail,
    AuthorizationPort,
    NotificationPort,
)
from domain.applicants.slots import ALL_SLOTS, DocumentSlot, parse_slot, parse_slots
from domain.applicants.status import (
    DECISION_OUTCOMES,
    ApplicantStatus,
    validate_transition,
)
from domain.documents.ports.object_storage_port import ObjectStoragePort, StorageError
from domain.documents.validation import MAX_FILE_SIZE, DocumentUpload, validate_upload
from models.applicant import Applicant
from models.base import utcnow
from observability.metrics import (
    applications_deleted_total,
    applications_resubmitted_total,
    applications_submitted_total,
    decisions_total,
    promotions_total,
    storage_failures_total,
)
from .promotion import RolePromotionService

logger = logging.getLogger(__name__)

T = TypeVar("T")

PDF_MIME_TYPE = "application/pdf"


class FeedbackResetPolicy(str, Enum):
    """Which per-slot feedback a resubmission clears."""
    ALL = "all"
    UPDATED_SLOTS = "updated_slots"


@dataclass
class WorkflowOptions:
    """Tunables of the review workflow (see config.Settings)."""
    required_slots: FrozenSet[DocumentSlot] = ALL_SLOTS
    max_upload_size: int = MAX_FILE_SIZE
    feedback_reset_policy: FeedbackResetPolicy = FeedbackResetPolicy.ALL
    storage_timeout_seconds: float = 30.0
    signed_url_ttl_seconds: int = 3600

    @classmethod
    def from_settings(cls, settings: Settings) -> "WorkflowOptions":
        return cls(
            required_slots=parse_slots(settings.REQUIRED_DOCUMENT_SLOTS),
            max_upload_size=settings.MAX_UPLOAD_SIZE_BYTES,
            feedback_reset_policy=FeedbackResetPolicy(settings.FEEDBACK_RESET_POLICY),
            storage_timeout_seconds=settings.STORAGE_TIMEOUT_SECONDS,
            signed_url_ttl_seconds=settings.SIGNED_URL_TTL_SECONDS,
        )


@dataclass
class DeletionResult:
    """Outcome of an administrative delete.

    The record is gone once this is returned; failed_paths lists stored
    documents that could not be removed and need manual cleanup.
    """
    record_id: UUID
    deleted_paths: List[str] = field(default_factory=list)
    failed_paths: List[str] = field(default_factory=list)


def build_storage_path(user_id: UUID, slot: DocumentSlot, at: datetime, token: Optional[str] = None) -> str:
    """Object key for an upload: {user_id}/{unix_millis}_{token}_{slot}.pdf

    token defaults to 8 random hex characters so two uploads for the same
    user and slot in the same millisecond never share a key.
    """
    millis = int(at.timestamp() * 1000)
    token = token or uuid4().hex[:8]
    return f"{user_id}/{millis}_{token}_{slot.value}.pdf"


class ReviewWorkflow:
    """Submission, review and deletion of applicant records.

    Example:
        workflow = ReviewWorkflow(
            repository=SqlAlchemyApplicantRepository(db),
            storage=storage,
            authorization=SqlAlchemyRoleStore(db),
            audit=SqlAlchemyAuditTrail(db),
            notifier=LoggingApprovalNotifier(),
        )
        record = await workflow.submit(user_id, {"pre_employment": upload_a,
                                                 "policy_rules": upload_b})
    """

    def __init__(
        self,
        repository: ApplicantRepository,
        storage: ObjectStoragePort,
        authorization: AuthorizationPort,
        audit: AuditTrail,
        notifier: Optional[NotificationPort] = None,
        options: Optional[WorkflowOptions] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.storage = storage
        self.authorization = authorization
        self.audit = audit
        self.notifier = notifier
        self.options = options or WorkflowOptions()
        self.clock = clock
        self.promotion = RolePromotionService(authorization)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def submit(self, actor_id: UUID, documents: Mapping[str, DocumentUpload]) -> Applicant:
        """Create the actor's applicant record in pending.

        Raises:
            PermissionDenied: If the actor is not an applicant
            ValidationError: If a required slot is missing or a file is rejected
            Conflict: If the actor already has a record
            StorageFailure: If an upload fails (nothing is persisted)
        """
        if not self.authorization.has_role(actor_id, UserRole.APPLICANT):
            raise PermissionDenied("Only applicants can submit onboarding documents")

        uploads = self._validate_documents(documents)
        missing = self.options.required_slots - set(uploads)
        if missing:
            raise ValidationError(
                f"Missing required documents: {sorted(s.value for s in missing)}"
            )

        if self.repository.get_by_user(actor_id) is not None:
            logger.warning("Duplicate submission rejected", extra={"user_id": actor_id})
            raise Conflict("An application already exists for this user")
        validate_transition(None, ApplicantStatus.PENDING)

        paths = await self._upload_all(actor_id, uploads)

        now = self.clock()
        record = Applicant(
            id=uuid4(),
            user_id=actor_id,
            status=ApplicantStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        for slot, path in paths.items():
            doc = record.document(slot)
            doc.storage_path = path
            doc.uploaded_at = now

        try:
            self.repository.add(record)
            self.audit.record(
                APPLICATION_SUBMITTED,
                actor_id=actor_id,
                entity_id=record.id,
                metadata={"slots": sorted(s.value for s in paths)},
            )
            self.repository.commit()
        except Exception:
            self.repository.rollback()
            await self._discard(paths.values())
            raise

        applications_submitted_total.inc()
        logger.info(
            f"Application submitted with {len(paths)} documents",
            extra={"record_id": record.id, "user_id": actor_id},
        )
        return record

    async def decide(
        self,
        record_id: UUID,
        actor_id: UUID,
        outcome,
        comment: Optional[str] = None,
        slot_feedback: Optional[Mapping[str, Optional[str]]] = None,
        applicant_name: Optional[str] = None,
    ) -> Applicant:
        """Apply a reviewer decision.

        Approval promotes the owner to employee inside the same unit of work;
        the approval notice goes out after the commit and never fails the call.

        Raises:
            ValidationError: Unknown outcome or slot, or a blank comment on
                revision_required
            PermissionDenied: If the actor is not an admin
            NotFound: If the record doesn't exist
            InvalidTransition: If the record is not pending or revision_required
            Conflict: If another reviewer changed the record concurrently
            PromotionFailed: If the role write failed (decision rolled back)
        """
        target = self._parse_outcome(outcome)
        self._require_reviewer(actor_id)

        feedback = self._parse_feedback(slot_feedback or {})
        comment = comment.strip() if comment else None
        if target == ApplicantStatus.REVISION_REQUIRED and not comment:
            raise ValidationError("A comment is required when requesting a revision")

        record = self._load(record_id)
        previous = record.status_enum
        validate_transition(previous, target)

        now = self.clock()
        record.status = target.value
        record.overall_comment = comment
        for slot, text in feedback.items():
            record.document(slot).feedback = text
        if target == ApplicantStatus.APPROVED:
            record.approved_at = now
            record.approved_by = actor_id
        elif target == ApplicantStatus.REJECTED:
            record.rejected_at = now
            record.rejected_by = actor_id
        record.updated_at = now

        if target == ApplicantStatus.APPROVED:
            # Claims the row version before the role write
            self.repository.flush()
            promoted = self._promote_or_rollback(record)
            if promoted:
                self.audit.record(
                    APPLICANT_PROMOTED,
                    actor_id=actor_id,
                    entity_id=record.id,
                    metadata={"user_id": str(record.user_id), "role": PROMOTION_TARGET_ROLE.value},
                )

        self.audit.record(
            APPLICATION_DECIDED,
            actor_id=actor_id,
            entity_id=record.id,
            metadata={
                "outcome": target.value,
                "from_status": previous.value,
                "feedback_slots": sorted(s.value for s in feedback),
            },
        )
        self.repository.commit()

        decisions_total.labels(outcome=target.value).inc()
        logger.info(
            f"Decision applied: {previous.value} -> {target.value}",
            extra={"record_id": record.id, "actor_id": actor_id, "outcome": target.value},
        )

        if target == ApplicantStatus.APPROVED:
            await self._notify_approval(record, applicant_name)
        return record

    async def resubmit(
        self,
        record_id: UUID,
        actor_id: UUID,
        documents: Mapping[str, DocumentUpload],
    ) -> Applicant:
        """Replace one or more documents and send the record back to pending.

        Slots not provided keep their stored reference. The overall comment
        is cleared; per-slot feedback is cleared per the feedback reset
        policy. Objects replaced by the new uploads are deleted after commit.

        Raises:
            ValidationError: If no documents are given or a file is rejected
            NotFound: If the record doesn't exist
            PermissionDenied: If the actor doesn't own the record
            InvalidTransition: If the record is not revision_required or rejected
            StorageFailure: If an upload fails (the record is left untouched)
        """
        if not documents:
            raise ValidationError("At least one document is required to resubmit")
        uploads = self._validate_documents(documents)

        record = self._load(record_id)
        if record.user_id != actor_id:
            raise PermissionDenied("Only the record owner can resubmit documents")
        previous = record.status_enum
        validate_transition(previous, ApplicantStatus.PENDING)

        paths = await self._upload_all(actor_id, uploads)

        now = self.clock()
        replaced = []
        for slot, path in paths.items():
            doc = record.document(slot)
            if doc.storage_path and doc.storage_path != path:
                replaced.append(doc.storage_path)
            doc.storage_path = path
            doc.uploaded_at = now

        record.overall_comment = None
        for doc in record.documents:
            if (
                self.options.feedback_reset_policy == FeedbackResetPolicy.ALL
                or doc.slot in {s.value for s in paths}
            ):
                doc.feedback = None
        record.status = ApplicantStatus.PENDING.value
        record.updated_at = now

        try:
            self.audit.record(
                APPLICATION_RESUBMITTED,
                actor_id=actor_id,
                entity_id=record.id,
                metadata={
                    "from_status": previous.value,
                    "slots": sorted(s.value for s in paths),
                },
            )
            self.repository.commit()
        except Exception:
            self.repository.rollback()
            await self._discard(paths.values())
            raise

        applications_resubmitted_total.inc()
        logger.info(
            f"Application resubmitted from {previous.value}",
            extra={"record_id": record.id, "user_id": actor_id},
        )
        await self._discard(replaced)
        return record

    async def delete(self, record_id: UUID, actor_id: UUID) -> DeletionResult:
        """Remove a record, then its stored documents.

        Document deletion is best-effort: the record is already gone, so
        failures are logged and reported in the result instead of raised.

        Raises:
            PermissionDenied: If the actor is not an admin
            NotFound: If the record doesn't exist
        """
        self._require_reviewer(actor_id)
        record = self._load(record_id)

        paths = record.storage_paths()
        status = record.status
        self.repository.delete(record)
        self.audit.record(
            APPLICATION_DELETED,
            actor_id=actor_id,
            entity_id=record_id,
            metadata={"status": status, "user_id": str(record.user_id)},
        )
        self.repository.commit()

        result = DeletionResult(record_id=record_id)
        for path in paths:
            try:
                await self._storage_call("delete", self.storage.delete_file(path), path)
                result.deleted_paths.append(path)
            except StorageFailure:
                logger.error(
                    "Stored document left behind after delete",
                    extra={"record_id": record_id, "storage_path": path},
                    exc_info=True,
                )
                result.failed_paths.append(path)

        applications_deleted_total.inc()
        logger.info(
            f"Application deleted ({len(result.failed_paths)} documents left behind)",
            extra={"record_id": record_id, "actor_id": actor_id, "status": status},
        )
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_record(self, record_id: UUID, actor_id: UUID) -> Applicant:
        """Load a record visible to the actor (own record, or any for admins).

        Raises:
            NotFound: If the record doesn't exist
            PermissionDenied: If the actor may not see it
        """
        record = self._load(record_id)
        if record.user_id != actor_id and not self._is_reviewer(actor_id):
            raise PermissionDenied("You can only view your own application")
        self._ensure_promoted(record)
        return record

    def get_own_record(self, actor_id: UUID) -> Applicant:
        """Load the actor's own record.

        Raises:
            NotFound: If the actor has not submitted yet
        """
        record = self.repository.get_by_user(actor_id)
        if record is None:
            raise NotFound("No application found for this user")
        self._ensure_promoted(record)
        return record

    def list_records(self, actor_id: UUID, status=None) -> List[Applicant]:
        """List all records, newest first (admin only).

        Raises:
            PermissionDenied: If the actor is not an admin
            ValidationError: If status is not a known status
        """
        self._require_reviewer(actor_id)
        if status is not None and not isinstance(status, ApplicantStatus):
            try:
                status = ApplicantStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown status '{status}'")
        return self.repository.list(status=status)

    async def get_document_url(self, record_id: UUID, actor_id: UUID, slot) -> str:
        """Issue a signed download URL for one slot of a visible record.

        Raises:
            NotFound: If the record or the slot's document doesn't exist
            PermissionDenied: If the actor may not see the record
            ValidationError: If slot is unknown
            StorageFailure: If the store cannot issue the URL
        """
        slot = self._parse_slot(slot)
        record = self.get_record(record_id, actor_id)

        doc = record.find_document(slot)
        if doc is None or not doc.storage_path:
            raise NotFound(f"No {slot.value} document on this application")

        try:
            return await self._storage_call(
                "url",
                self.storage.generate_presigned_url(doc.storage_path, self.options.signed_url_ttl_seconds),
                doc.storage_path,
            )
        except FileNotFoundError:
            raise NotFound(f"Stored {slot.value} document is missing")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, record_id: UUID) -> Applicant:
        record = self.repository.get(record_id)
        if record is None:
            raise NotFound(f"Application {record_id} not found")
        return record

    def _is_reviewer(self, actor_id: UUID) -> bool:
        role = self.authorization.get_role(actor_id)
        return role is not None and is_reviewer(role)

    def _require_reviewer(self, actor_id: UUID) -> None:
        if not self._is_reviewer(actor_id):
            logger.warning("Reviewer action denied", extra={"actor_id": actor_id})
            raise PermissionDenied("Administrator role required")

    @staticmethod
    def _parse_slot(value) -> DocumentSlot:
        if isinstance(value, DocumentSlot):
            return value
        try:
            return parse_slot(value)
        except ValueError as e:
            raise ValidationError(str(e))

    @staticmethod
    def _parse_outcome(value) -> ApplicantStatus:
        try:
            target = ApplicantStatus(value)
        except ValueError:
            raise ValidationError(f"Unknown decision outcome '{value}'")
        if target not in DECISION_OUTCOMES:
            raise ValidationError(
                f"Decision outcome must be one of {[s.value for s in DECISION_OUTCOMES]}"
            )
        return target

    def _parse_feedback(self, slot_feedback: Mapping[str, Optional[str]]) -> Dict[DocumentSlot, Optional[str]]:
        feedback = {}
        for key, text in slot_feedback.items():
            text = text.strip() if text else None
            feedback[self._parse_slot(key)] = text or None
        return feedback

    def _validate_documents(self, documents: Mapping[str, DocumentUpload]) -> Dict[DocumentSlot, DocumentUpload]:
        uploads = {}
        for key, upload in documents.items():
            slot = self._parse_slot(key)
            error = validate_upload(upload, self.options.max_upload_size)
            if error:
                raise ValidationError(f"{slot.value}: {error}")
            uploads[slot] = upload
        return uploads

    async def _storage_call(self, operation: str, call: Awaitable[T], path: Optional[str]) -> T:
        """Await a storage call under the configured timeout.

        Raises:
            StorageFailure: On timeout (retryable) or adapter error
        """
        try:
            return await asyncio.wait_for(call, timeout=self.options.storage_timeout_seconds)
        except asyncio.TimeoutError:
            storage_failures_total.labels(operation=operation).inc()
            raise StorageFailure(
                f"Object storage timed out during {operation}",
                retryable=True,
                path=path,
            )
        except StorageError as e:
            storage_failures_total.labels(operation=operation).inc()
            raise StorageFailure(f"Object storage {operation} failed: {e}", path=path) from e

    async def _upload_all(
        self,
        user_id: UUID,
        uploads: Mapping[DocumentSlot, DocumentUpload],
    ) -> Dict[DocumentSlot, str]:
        """Upload every document concurrently; all or nothing."""
        at = self.clock()
        paths = {slot: build_storage_path(user_id, slot, at) for slot in uploads}
        results = await asyncio.gather(
            *(
                self._storage_call(
                    "put",
                    self.storage.put_object(paths[slot], upload.data, PDF_MIME_TYPE),
                    paths[slot],
                )
                for slot, upload in uploads.items()
            ),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            stored = [paths[slot] for slot, r in zip(uploads, results) if not isinstance(r, BaseException)]
            logger.error(
                f"Upload failed for {len(failures)} of {len(results)} documents",
                extra={"user_id": user_id},
                exc_info=failures[0],
            )
            await self._discard(stored)
            raise failures[0]
        return paths

    async def _discard(self, paths: Iterable[str]) -> None:
        """Best-effort delete of objects no record references."""
        for path in paths:
            try:
                await self._storage_call("delete", self.storage.delete_file(path), path)
            except StorageFailure:
                logger.error(
                    "Could not remove unreferenced object",
                    extra={"storage_path": path},
                    exc_info=True,
                )

    def _promote_or_rollback(self, record: Applicant) -> bool:
        try:
            promoted = self.promotion.promote(record.user_id)
        except PromotionFailed:
            self.repository.rollback()
            promotions_total.labels(status="failed").inc()
            logger.error(
                "Role promotion failed, approval rolled back",
                extra={"record_id": record.id, "user_id": record.user_id},
                exc_info=True,
            )
            raise
        except Exception as e:
            self.repository.rollback()
            promotions_total.labels(status="failed").inc()
            logger.error(
                "Role write failed, approval rolled back",
                extra={"record_id": record.id, "user_id": record.user_id},
                exc_info=True,
            )
            raise PromotionFailed(f"Role promotion failed: {e}") from e
        promotions_total.labels(status="promoted" if promoted else "noop").inc()
        return promoted

    def _ensure_promoted(self, record: Applicant) -> None:
        """Re-drive promotion for an approved record whose owner isn't an employee yet."""
        if record.status != ApplicantStatus.APPROVED.value:
            return
        if self.authorization.has_role(record.user_id, PROMOTION_TARGET_ROLE):
            return

        logger.warning(
            "Approved applicant is not an employee, re-driving promotion",
            extra={"record_id": record.id, "user_id": record.user_id},
        )
        try:
            promoted = self._promote_or_rollback(record)
            if promoted:
                self.audit.record(
                    APPLICANT_PROMOTED,
                    actor_id=None,
                    entity_id=record.id,
                    metadata={"user_id": str(record.user_id), "role": PROMOTION_TARGET_ROLE.value, "redriven": True},
                )
            self.repository.commit()
        except ApplicantWorkflowError:
            # The read still answers; the next read retries the promotion
            logger.error(
                "Promotion re-drive failed",
                extra={"record_id": record.id, "user_id": record.user_id},
                exc_info=True,
            )

    async def _notify_approval(self, record: Applicant, applicant_name: Optional[str]) -> None:
        if self.notifier is None:
            return

        started = time.monotonic()
        try:
            urls = {}
            for doc in record.documents:
                if not doc.storage_path:
                    continue
                try:
                    urls[doc.slot] = await self._storage_call(
                        "url",
                        self.storage.generate_presigned_url(doc.storage_path, self.options.signed_url_ttl_seconds),
                        doc.storage_path,
                    )
                except (StorageFailure, FileNotFoundError):
                    logger.warning(
                        "Approval notice sent without a document link",
                        extra={"record_id": record.id, "slot": doc.slot},
                        exc_info=True,
                    )

            notice = ApprovalNotice(
                record_id=record.id,
                user_id=record.user_id,
                approved_at=record.approved_at,
                applicant_name=applicant_name,
                document_urls=urls,
            )
            await asyncio.wait_for(
                asyncio.to_thread(self.notifier.send_approval, notice),
                timeout=self.options.storage_timeout_seconds,
            )
        except Exception:
            # Notification is fire-and-forget; the approval is already committed
            logger.error(
                f"Approval notification failed after {time.monotonic() - started:.2f}s",
                extra={"record_id": record.id, "user_id": record.user_id},
                exc_info=True,
            )
