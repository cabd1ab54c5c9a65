"""Unit tests for ReviewWorkflow

Tests cover:
- Submission (required slots, duplicates, upload failures, timeouts)
- Reviewer decisions and the approval -> promotion unit of work
- Resubmission and feedback reset
- Administrative delete
- Reads (visibility, promotion re-drive, signed URLs)
"""

import re
from uuid import uuid4

import pytest
from prometheus_client import REGISTRY
from sqlalchemy.exc import IntegrityError

from applicants.service import FeedbackResetPolicy, build_storage_path
from audit.service import (
    APPLICANT_PROMOTED,
    APPLICATION_DECIDED,
    APPLICATION_DELETED,
    APPLICATION_RESUBMITTED,
    APPLICATION_SUBMITTED,
)
from auth.roles import UserRole
from domain.applicants.errors import (
    Conflict,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    PromotionFailed,
    RoleConflict,
    StorageFailure,
    ValidationError,
)
from domain.applicants.slots import DocumentSlot
from domain.documents.validation import DocumentUpload
from infrastructure.authorization.role_store import SqlAlchemyRoleStore
from models.applicant import Applicant
from models.audit_log import AuditLog

from conftest import RecordingNotifier, T0, build_workflow, make_pdf, role_of


class FailingRoleStore(SqlAlchemyRoleStore):
    """Role store whose writes fail (role service outage)."""

    def set_role(self, user_id, role):
        raise RuntimeError("role service unavailable")


def audit_count(db, record_id, action):
    return db.query(AuditLog).filter(
        AuditLog.entity_id == record_id,
        AuditLog.action == action,
    ).count()


def storage_path_pattern(user_id, slot, at):
    millis = int(at.timestamp() * 1000)
    return re.compile(rf"{user_id}/{millis}_[0-9a-f]{{8}}_{slot.value}\.pdf")


def reload(db, record_id):
    db.expire_all()
    return db.get(Applicant, record_id)


def set_role(db, user_id, role):
    SqlAlchemyRoleStore(db).set_role(user_id, role)
    db.commit()


class TestSubmit:
    """Test first submission"""

    @pytest.mark.asyncio
    async def test_submit_creates_pending_record(self, workflow, db_session, storage, applicant_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)

        assert record.status == "pending"
        assert record.user_id == applicant_id
        assert record.created_at == T0
        for slot in DocumentSlot:
            doc = record.find_document(slot)
            assert storage_path_pattern(applicant_id, slot, T0).fullmatch(doc.storage_path)
            assert doc.uploaded_at == T0
            assert doc.feedback is None
        assert sorted(storage.objects) == sorted(record.storage_paths())
        assert audit_count(db_session, record.id, APPLICATION_SUBMITTED) == 1

    @pytest.mark.asyncio
    async def test_storage_path_format(self, workflow, applicant_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)

        millis = int(T0.timestamp() * 1000)
        doc = record.find_document(DocumentSlot.POLICY_RULES)
        assert doc.storage_path.startswith(f"{applicant_id}/{millis}_")
        assert doc.storage_path.endswith("_policy_rules.pdf")

    def test_storage_path_with_explicit_token(self, applicant_id):
        path = build_storage_path(applicant_id, DocumentSlot.PRE_EMPLOYMENT, T0, token="0a1b2c3d")

        assert path == f"{applicant_id}/1709285400000_0a1b2c3d_pre_employment.pdf"

    def test_same_instant_paths_differ(self, applicant_id):
        first = build_storage_path(applicant_id, DocumentSlot.POLICY_RULES, T0)
        second = build_storage_path(applicant_id, DocumentSlot.POLICY_RULES, T0)

        assert first != second

    @pytest.mark.asyncio
    async def test_submit_then_get_round_trip(self, db_session, storage, applicant_id):
        workflow = build_workflow(db_session, storage, required_slots=frozenset({DocumentSlot.PRE_EMPLOYMENT}))

        await workflow.submit(applicant_id, {"pre_employment": make_pdf()})
        record = workflow.get_own_record(applicant_id)

        assert record.status == "pending"
        assert record.find_document(DocumentSlot.PRE_EMPLOYMENT).storage_path is not None
        assert record.find_document(DocumentSlot.POLICY_RULES) is None
        assert record.to_dict()["documents"]["policy_rules"] is None

    @pytest.mark.asyncio
    async def test_missing_required_slot(self, workflow, db_session, storage, applicant_id):
        with pytest.raises(ValidationError) as exc_info:
            await workflow.submit(applicant_id, {"pre_employment": make_pdf()})

        assert "policy_rules" in exc_info.value.message
        assert storage.objects == {}
        assert workflow.repository.get_by_user(applicant_id) is None

    @pytest.mark.asyncio
    async def test_unknown_slot_rejected(self, workflow, applicant_id, both_documents):
        both_documents["passport"] = make_pdf()

        with pytest.raises(ValidationError):
            await workflow.submit(applicant_id, both_documents)

    @pytest.mark.asyncio
    async def test_non_pdf_rejected(self, workflow, storage, applicant_id, both_documents):
        both_documents["policy_rules"] = DocumentUpload(
            filename="policy.png", content_type="image/png", data=b"\x89PNG..."
        )

        with pytest.raises(ValidationError) as exc_info:
            await workflow.submit(applicant_id, both_documents)

        assert exc_info.value.message.startswith("policy_rules:")
        assert storage.objects == {}

    @pytest.mark.asyncio
    async def test_duplicate_submission_conflicts(self, workflow, storage, applicant_id, both_documents):
        await workflow.submit(applicant_id, both_documents)

        with pytest.raises(Conflict):
            await workflow.submit(applicant_id, both_documents)

        assert len(storage.objects) == 2

    @pytest.mark.asyncio
    async def test_only_applicants_submit(self, workflow, admin_id, employee_id, both_documents):
        for actor_id in (admin_id, employee_id, uuid4()):
            with pytest.raises(PermissionDenied):
                await workflow.submit(actor_id, both_documents)

    @pytest.mark.asyncio
    async def test_upload_failure_persists_nothing(self, workflow, storage, applicant_id, both_documents):
        storage.fail_put_keys = ["policy_rules"]

        with pytest.raises(StorageFailure) as exc_info:
            await workflow.submit(applicant_id, both_documents)

        assert exc_info.value.retryable is False
        assert exc_info.value.status_code == 503
        # The pre_employment upload that did succeed was removed again
        assert storage.objects == {}
        assert workflow.repository.get_by_user(applicant_id) is None

    @pytest.mark.asyncio
    async def test_upload_timeout_is_retryable(self, db_session, storage, applicant_id, both_documents):
        workflow = build_workflow(db_session, storage, storage_timeout_seconds=0.05)
        storage.delay_seconds = 1.0

        with pytest.raises(StorageFailure) as exc_info:
            await workflow.submit(applicant_id, both_documents)

        assert exc_info.value.retryable is True
        assert workflow.repository.get_by_user(applicant_id) is None


class TestDecide:
    """Test reviewer decisions"""

    @pytest.mark.asyncio
    async def test_approve_promotes_owner(self, workflow, db_session, clock, notifier, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        decided_at = clock.advance(hours=2)

        record = await workflow.decide(record.id, admin_id, "approved", applicant_name="Ada Lovelace")

        assert record.status == "approved"
        assert record.approved_at == decided_at
        assert record.approved_by == admin_id
        assert record.rejected_at is None
        assert role_of(db_session, applicant_id) == "employee"
        assert audit_count(db_session, record.id, APPLICATION_DECIDED) == 1
        assert audit_count(db_session, record.id, APPLICANT_PROMOTED) == 1

        assert len(notifier.notices) == 1
        notice = notifier.notices[0]
        assert notice.display_name == "Ada Lovelace"
        assert set(notice.document_urls) == {"pre_employment", "policy_rules"}

    @pytest.mark.asyncio
    async def test_approve_counts_promotion(self, workflow, applicant_id, admin_id, both_documents):
        labels = {"status": "promoted"}
        before = REGISTRY.get_sample_value("onboard_promotions_total", labels) or 0.0
        record = await workflow.submit(applicant_id, both_documents)

        await workflow.decide(record.id, admin_id, "approved")

        assert REGISTRY.get_sample_value("onboard_promotions_total", labels) == before + 1

    @pytest.mark.asyncio
    async def test_reject_sets_rejection_pair(self, workflow, db_session, clock, notifier, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        decided_at = clock.advance(minutes=5)

        record = await workflow.decide(record.id, admin_id, "rejected", comment="Unsigned")

        assert record.status == "rejected"
        assert record.rejected_at == decided_at
        assert record.rejected_by == admin_id
        assert record.approved_at is None
        assert record.overall_comment == "Unsigned"
        assert role_of(db_session, applicant_id) == "applicant"
        assert notifier.notices == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("comment", [None, "", "   "])
    async def test_revision_requires_comment(self, workflow, db_session, applicant_id, admin_id, both_documents, comment):
        record = await workflow.submit(applicant_id, both_documents)

        with pytest.raises(ValidationError):
            await workflow.decide(record.id, admin_id, "revision_required", comment=comment)

        assert reload(db_session, record.id).status == "pending"

    @pytest.mark.asyncio
    async def test_revision_with_comment_keeps_decision_timestamps(
        self, workflow, clock, applicant_id, admin_id, both_documents
    ):
        record = await workflow.submit(applicant_id, both_documents)
        rejected_at = clock.advance(hours=1)
        await workflow.decide(record.id, admin_id, "rejected", comment="Wrong form")
        clock.advance(hours=1)
        await workflow.resubmit(record.id, applicant_id, {"pre_employment": make_pdf()})
        clock.advance(hours=1)

        record = await workflow.decide(record.id, admin_id, "revision_required", comment="fix page 2")

        assert record.status == "revision_required"
        assert record.overall_comment == "fix page 2"
        assert record.rejected_at == rejected_at
        assert record.approved_at is None

    @pytest.mark.asyncio
    async def test_slot_feedback_only_touches_named_slots(self, workflow, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)

        record = await workflow.decide(
            record.id,
            admin_id,
            "revision_required",
            comment="Please re-sign",
            slot_feedback={"policy_rules": "  Sign page 2  "},
        )

        assert record.find_document(DocumentSlot.POLICY_RULES).feedback == "Sign page 2"
        assert record.find_document(DocumentSlot.PRE_EMPLOYMENT).feedback is None

    @pytest.mark.asyncio
    async def test_unknown_feedback_slot(self, workflow, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)

        with pytest.raises(ValidationError):
            await workflow.decide(record.id, admin_id, "rejected", slot_feedback={"passport": "expired"})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("outcome", ["pending", "archived", ""])
    async def test_unknown_outcome(self, workflow, applicant_id, admin_id, both_documents, outcome):
        record = await workflow.submit(applicant_id, both_documents)

        with pytest.raises(ValidationError):
            await workflow.decide(record.id, admin_id, outcome)

    @pytest.mark.asyncio
    async def test_decide_requires_admin(self, workflow, applicant_id, employee_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)

        for actor_id in (applicant_id, employee_id):
            with pytest.raises(PermissionDenied):
                await workflow.decide(record.id, actor_id, "approved")

    @pytest.mark.asyncio
    async def test_decide_unknown_record(self, workflow, admin_id):
        with pytest.raises(NotFound):
            await workflow.decide(uuid4(), admin_id, "approved")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("first", ["approved", "rejected"])
    @pytest.mark.parametrize("second", ["approved", "rejected", "revision_required"])
    async def test_terminal_records_cannot_be_decided(
        self, workflow, applicant_id, admin_id, both_documents, first, second
    ):
        record = await workflow.submit(applicant_id, both_documents)
        await workflow.decide(record.id, admin_id, first, comment="done")

        with pytest.raises(InvalidTransition):
            await workflow.decide(record.id, admin_id, second, comment="again")

    @pytest.mark.asyncio
    async def test_revision_required_can_be_approved(self, workflow, db_session, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        await workflow.decide(record.id, admin_id, "revision_required", comment="check dates")

        record = await workflow.decide(record.id, admin_id, "approved")

        assert record.status == "approved"
        assert role_of(db_session, applicant_id) == "employee"


class TestApprovalPromotionUnit:
    """Test that approval and promotion succeed or fail together"""

    @pytest.mark.asyncio
    async def test_role_write_failure_rolls_back_approval(
        self, db_session, storage, notifier, applicant_id, admin_id, both_documents
    ):
        workflow = build_workflow(
            db_session, storage, notifier=notifier, authorization=FailingRoleStore(db_session)
        )
        record = await workflow.submit(applicant_id, both_documents)

        with pytest.raises(PromotionFailed):
            await workflow.decide(record.id, admin_id, "approved")

        stored = reload(db_session, record.id)
        assert stored.status == "pending"
        assert stored.approved_at is None
        assert stored.approved_by is None
        assert role_of(db_session, applicant_id) == "applicant"
        assert audit_count(db_session, record.id, APPLICATION_DECIDED) == 0
        assert notifier.notices == []

    @pytest.mark.asyncio
    async def test_failed_approval_can_be_retried(self, db_session, storage, applicant_id, admin_id, both_documents):
        failing = build_workflow(db_session, storage, authorization=FailingRoleStore(db_session))
        record = await failing.submit(applicant_id, both_documents)
        with pytest.raises(PromotionFailed):
            await failing.decide(record.id, admin_id, "approved")

        healthy = build_workflow(db_session, storage)
        record = await healthy.decide(record.id, admin_id, "approved")

        assert record.status == "approved"
        assert role_of(db_session, applicant_id) == "employee"

    @pytest.mark.asyncio
    async def test_role_conflict_rolls_back_approval(self, workflow, db_session, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        set_role(db_session, applicant_id, UserRole.ADMIN)

        with pytest.raises(RoleConflict) as exc_info:
            await workflow.decide(record.id, admin_id, "approved")

        assert exc_info.value.status_code == 502
        assert reload(db_session, record.id).status == "pending"
        assert role_of(db_session, applicant_id) == "admin"

    @pytest.mark.asyncio
    async def test_role_conflict_counts_failed_promotion(
        self, workflow, db_session, applicant_id, admin_id, both_documents, caplog
    ):
        labels = {"status": "failed"}
        before = REGISTRY.get_sample_value("onboard_promotions_total", labels) or 0.0
        record = await workflow.submit(applicant_id, both_documents)
        set_role(db_session, applicant_id, UserRole.ADMIN)

        with caplog.at_level("ERROR", logger="applicants.service"):
            with pytest.raises(RoleConflict):
                await workflow.decide(record.id, admin_id, "approved")

        assert REGISTRY.get_sample_value("onboard_promotions_total", labels) == before + 1
        assert "Role promotion failed, approval rolled back" in caplog.text

    @pytest.mark.asyncio
    async def test_already_employee_is_approved_without_promotion(
        self, workflow, db_session, applicant_id, admin_id, both_documents
    ):
        record = await workflow.submit(applicant_id, both_documents)
        set_role(db_session, applicant_id, UserRole.EMPLOYEE)

        record = await workflow.decide(record.id, admin_id, "approved")

        assert record.status == "approved"
        assert role_of(db_session, applicant_id) == "employee"
        assert audit_count(db_session, record.id, APPLICANT_PROMOTED) == 0

    @pytest.mark.asyncio
    async def test_read_redrives_missing_promotion(self, workflow, db_session, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        await workflow.decide(record.id, admin_id, "approved")
        # Role reverted out of band
        set_role(db_session, applicant_id, UserRole.APPLICANT)

        record = workflow.get_own_record(applicant_id)

        assert record.status == "approved"
        assert role_of(db_session, applicant_id) == "employee"
        assert audit_count(db_session, record.id, APPLICANT_PROMOTED) == 2

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_fail_approval(
        self, db_session, storage, applicant_id, admin_id, both_documents
    ):
        workflow = build_workflow(db_session, storage, notifier=RecordingNotifier(fail=True))
        record = await workflow.submit(applicant_id, both_documents)

        record = await workflow.decide(record.id, admin_id, "approved")

        assert record.status == "approved"
        assert reload(db_session, record.id).status == "approved"
        assert role_of(db_session, applicant_id) == "employee"

    @pytest.mark.asyncio
    async def test_notice_sent_without_links_when_urls_fail(
        self, workflow, storage, notifier, applicant_id, admin_id, both_documents
    ):
        record = await workflow.submit(applicant_id, both_documents)
        storage.fail_urls = True

        await workflow.decide(record.id, admin_id, "approved")

        assert len(notifier.notices) == 1
        assert notifier.notices[0].document_urls == {}
        assert notifier.notices[0].display_name == "New Employee"


class TestResubmit:
    """Test resubmission of corrected documents"""

    @pytest.mark.asyncio
    async def test_revision_resubmit_scenario(self, workflow, db_session, clock, storage, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        original_pre = record.find_document(DocumentSlot.PRE_EMPLOYMENT).storage_path
        original_policy = record.find_document(DocumentSlot.POLICY_RULES).storage_path
        await workflow.decide(
            record.id,
            admin_id,
            "revision_required",
            comment="blurry",
            slot_feedback={"pre_employment": "Scan is fine", "policy_rules": "Unreadable"},
        )
        resubmitted_at = clock.advance(days=1)

        record = await workflow.resubmit(record.id, applicant_id, {"policy_rules": make_pdf("policy_v2.pdf")})

        assert record.status == "pending"
        assert record.overall_comment is None
        # Feedback is cleared on every slot, not only the corrected one
        assert record.find_document(DocumentSlot.POLICY_RULES).feedback is None
        assert record.find_document(DocumentSlot.PRE_EMPLOYMENT).feedback is None

        new_policy = record.find_document(DocumentSlot.POLICY_RULES)
        assert storage_path_pattern(applicant_id, DocumentSlot.POLICY_RULES, resubmitted_at).fullmatch(new_policy.storage_path)
        assert new_policy.uploaded_at == resubmitted_at
        assert record.find_document(DocumentSlot.PRE_EMPLOYMENT).storage_path == original_pre

        assert original_policy not in storage.objects
        assert original_pre in storage.objects
        assert audit_count(db_session, record.id, APPLICATION_RESUBMITTED) == 1

    @pytest.mark.asyncio
    async def test_updated_slots_policy_keeps_untouched_feedback(
        self, db_session, storage, clock, applicant_id, admin_id, both_documents
    ):
        workflow = build_workflow(
            db_session, storage, clock=clock, feedback_reset_policy=FeedbackResetPolicy.UPDATED_SLOTS
        )
        record = await workflow.submit(applicant_id, both_documents)
        await workflow.decide(
            record.id,
            admin_id,
            "revision_required",
            comment="blurry",
            slot_feedback={"pre_employment": "Scan is fine", "policy_rules": "Unreadable"},
        )
        clock.advance(hours=3)

        record = await workflow.resubmit(record.id, applicant_id, {"policy_rules": make_pdf()})

        assert record.overall_comment is None
        assert record.find_document(DocumentSlot.POLICY_RULES).feedback is None
        assert record.find_document(DocumentSlot.PRE_EMPLOYMENT).feedback == "Scan is fine"

    @pytest.mark.asyncio
    async def test_resubmit_after_rejection(self, workflow, clock, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        await workflow.decide(record.id, admin_id, "rejected", comment="Wrong forms")
        clock.advance(days=2)

        record = await workflow.resubmit(record.id, applicant_id, both_documents)

        assert record.status == "pending"
        assert record.overall_comment is None

    @pytest.mark.asyncio
    async def test_resubmit_from_approved_fails(self, workflow, storage, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        await workflow.decide(record.id, admin_id, "approved")

        with pytest.raises(InvalidTransition):
            await workflow.resubmit(record.id, applicant_id, {"policy_rules": make_pdf()})

        assert len(storage.objects) == 2

    @pytest.mark.asyncio
    async def test_resubmit_from_pending_fails(self, workflow, applicant_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)

        with pytest.raises(InvalidTransition):
            await workflow.resubmit(record.id, applicant_id, {"policy_rules": make_pdf()})

    @pytest.mark.asyncio
    async def test_resubmit_requires_owner(
        self, workflow, applicant_id, other_applicant_id, admin_id, both_documents
    ):
        record = await workflow.submit(applicant_id, both_documents)
        await workflow.decide(record.id, admin_id, "revision_required", comment="redo")

        for actor_id in (other_applicant_id, admin_id):
            with pytest.raises(PermissionDenied):
                await workflow.resubmit(record.id, actor_id, {"policy_rules": make_pdf()})

    @pytest.mark.asyncio
    async def test_resubmit_requires_a_document(self, workflow, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        await workflow.decide(record.id, admin_id, "revision_required", comment="redo")

        with pytest.raises(ValidationError):
            await workflow.resubmit(record.id, applicant_id, {})

    @pytest.mark.asyncio
    async def test_resubmit_unknown_record(self, workflow, applicant_id):
        with pytest.raises(NotFound):
            await workflow.resubmit(uuid4(), applicant_id, {"policy_rules": make_pdf()})

    @pytest.mark.asyncio
    async def test_failed_resubmission_keeps_prior_state(
        self, workflow, db_session, clock, storage, applicant_id, admin_id, both_documents
    ):
        record = await workflow.submit(applicant_id, both_documents)
        await workflow.decide(
            record.id,
            admin_id,
            "revision_required",
            comment="blurry",
            slot_feedback={"policy_rules": "Unreadable"},
        )
        original_paths = sorted(record.storage_paths())
        clock.advance(hours=1)
        storage.fail_put_keys = ["policy_rules"]

        with pytest.raises(StorageFailure):
            await workflow.resubmit(record.id, applicant_id, both_documents)

        stored = reload(db_session, record.id)
        assert stored.status == "revision_required"
        assert stored.overall_comment == "blurry"
        assert stored.find_document(DocumentSlot.POLICY_RULES).feedback == "Unreadable"
        assert sorted(stored.storage_paths()) == original_paths
        assert sorted(storage.objects) == original_paths


class TestDelete:
    """Test administrative delete"""

    @pytest.mark.asyncio
    async def test_delete_removes_record_and_documents(self, workflow, db_session, storage, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        paths = record.storage_paths()

        result = await workflow.delete(record.id, admin_id)

        assert sorted(result.deleted_paths) == sorted(paths)
        assert result.failed_paths == []
        assert storage.objects == {}
        assert reload(db_session, record.id) is None
        assert audit_count(db_session, record.id, APPLICATION_DELETED) == 1

    @pytest.mark.asyncio
    async def test_delete_reports_storage_failures(self, workflow, db_session, storage, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        storage.fail_deletes = True

        result = await workflow.delete(record.id, admin_id)

        assert sorted(result.failed_paths) == sorted(record.storage_paths())
        assert result.deleted_paths == []
        assert reload(db_session, record.id) is None

    @pytest.mark.asyncio
    async def test_delete_requires_admin(self, workflow, applicant_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)

        with pytest.raises(PermissionDenied):
            await workflow.delete(record.id, applicant_id)

    @pytest.mark.asyncio
    async def test_delete_unknown_record(self, workflow, admin_id):
        with pytest.raises(NotFound):
            await workflow.delete(uuid4(), admin_id)

    @pytest.mark.asyncio
    async def test_user_can_submit_again_after_delete(self, workflow, clock, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        await workflow.delete(record.id, admin_id)
        clock.advance(minutes=1)

        again = await workflow.submit(applicant_id, both_documents)

        assert again.id != record.id
        assert again.status == "pending"


class TestReads:
    """Test record visibility and listing"""

    @pytest.mark.asyncio
    async def test_owner_and_admin_can_view(self, workflow, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)

        assert workflow.get_record(record.id, applicant_id).id == record.id
        assert workflow.get_record(record.id, admin_id).id == record.id

    @pytest.mark.asyncio
    async def test_other_applicant_cannot_view(self, workflow, applicant_id, other_applicant_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)

        with pytest.raises(PermissionDenied):
            workflow.get_record(record.id, other_applicant_id)

    def test_own_record_not_found(self, workflow, applicant_id):
        with pytest.raises(NotFound):
            workflow.get_own_record(applicant_id)

    @pytest.mark.asyncio
    async def test_list_newest_first_with_filter(
        self, workflow, clock, applicant_id, other_applicant_id, admin_id, both_documents
    ):
        first = await workflow.submit(applicant_id, both_documents)
        clock.advance(hours=1)
        second = await workflow.submit(other_applicant_id, both_documents)
        await workflow.decide(first.id, admin_id, "rejected")

        assert [r.id for r in workflow.list_records(admin_id)] == [second.id, first.id]
        assert [r.id for r in workflow.list_records(admin_id, status="rejected")] == [first.id]
        assert workflow.list_records(admin_id, status="approved") == []

    def test_list_unknown_status(self, workflow, admin_id):
        with pytest.raises(ValidationError):
            workflow.list_records(admin_id, status="archived")

    def test_list_requires_admin(self, workflow, applicant_id):
        with pytest.raises(PermissionDenied):
            workflow.list_records(applicant_id)

    @pytest.mark.asyncio
    async def test_document_url(self, workflow, applicant_id, admin_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)

        url = await workflow.get_document_url(record.id, admin_id, "policy_rules")

        path = record.find_document(DocumentSlot.POLICY_RULES).storage_path
        assert url == f"https://storage.test/{path}?expires=3600"

    @pytest.mark.asyncio
    async def test_document_url_unknown_slot(self, workflow, applicant_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)

        with pytest.raises(ValidationError):
            await workflow.get_document_url(record.id, applicant_id, "passport")

    @pytest.mark.asyncio
    async def test_document_url_missing_object(self, workflow, storage, applicant_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        storage.objects.clear()

        with pytest.raises(NotFound):
            await workflow.get_document_url(record.id, applicant_id, "pre_employment")

    @pytest.mark.asyncio
    async def test_document_url_empty_slot(self, db_session, storage, applicant_id):
        workflow = build_workflow(db_session, storage, required_slots=frozenset({DocumentSlot.PRE_EMPLOYMENT}))
        record = await workflow.submit(applicant_id, {"pre_employment": make_pdf()})

        with pytest.raises(NotFound):
            await workflow.get_document_url(record.id, applicant_id, "policy_rules")


class TestStatusInvariant:
    @pytest.mark.asyncio
    async def test_database_rejects_unknown_status(self, workflow, db_session, applicant_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        record.status = "archived"

        with pytest.raises(IntegrityError):
            db_session.commit()
