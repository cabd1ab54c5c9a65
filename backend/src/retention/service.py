"""Retention sweeper for decided applicant records.

A record is expired when its status is approved and approved_at is older
than the cutoff, or its status is rejected and rejected_at is older than the
cutoff. Each expired record is purged in its own transaction: the row delete
is flushed first, which fails if another writer changed the record, then the
stored documents are deleted (best-effort) and the transaction commits. One
bad record never stops the sweep.

All operations are idempotent and can be safely retried.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple
from uuid import UUID

from audit.service import APPLICATION_PURGED
from domain.applicants.errors import Conflict
from domain.applicants.ports import ApplicantRepository, AuditTrail
from domain.applicants.status import ApplicantStatus
from domain.documents.ports.object_storage_port import ObjectStoragePort, StorageError
from models.applicant import Applicant
from models.base import utcnow
from observability.metrics import (
    retention_purged_total,
    retention_sweep_duration_seconds,
    storage_failures_total,
)
from .schemas import RetentionReport, RetentionSettings, RetentionStatistics

logger = logging.getLogger(__name__)


def decided_at(record: Applicant) -> Optional[datetime]:
    """Timestamp of the decision that made the record terminal."""
    if record.status == ApplicantStatus.APPROVED.value:
        return record.approved_at
    if record.status == ApplicantStatus.REJECTED.value:
        return record.rejected_at
    return None


class RetentionSweeper:
    """Purge decided applicant records older than the retention window.

    Args:
        repository: Applicant record store (also the unit of work)
        storage: Object storage holding the documents
        audit: Audit trail for purge events
        settings: Retention window
        clock: Source of "now" when sweep_expired() is called without one
        storage_timeout_seconds: Bound on each storage deletion
    """

    def __init__(
        self,
        repository: ApplicantRepository,
        storage: ObjectStoragePort,
        audit: AuditTrail,
        settings: Optional[RetentionSettings] = None,
        clock: Callable[[], datetime] = utcnow,
        storage_timeout_seconds: float = 30.0,
    ):
        self.repository = repository
        self.storage = storage
        self.audit = audit
        self.settings = settings or RetentionSettings()
        self.clock = clock
        self.storage_timeout_seconds = storage_timeout_seconds

    def calculate_cutoff(self, now: Optional[datetime] = None) -> datetime:
        """Records decided strictly before this instant are expired."""
        now = now or self.clock()
        return now - timedelta(days=self.settings.retention_days)

    def find_expired(self, now: Optional[datetime] = None) -> List[Applicant]:
        """The purge set as of now, without deleting anything."""
        return self.repository.list_expired(self.calculate_cutoff(now))

    def generate_retention_report(self, now: Optional[datetime] = None) -> RetentionReport:
        """Preview what a sweep run at now would purge."""
        cutoff = self.calculate_cutoff(now)
        expired = self.repository.list_expired(cutoff)
        return RetentionReport(
            retention_settings=self.settings,
            cutoff=cutoff,
            approved_eligible=sum(1 for r in expired if r.status == ApplicantStatus.APPROVED.value),
            rejected_eligible=sum(1 for r in expired if r.status == ApplicantStatus.REJECTED.value),
            record_ids=[str(r.id) for r in expired],
        )

    async def sweep_expired(self, now: Optional[datetime] = None) -> RetentionStatistics:
        """Purge every expired record and its stored documents.

        Returns:
            RetentionStatistics: Counts of purged records, deleted documents
            and errors; failed records are listed by id
        """
        start_time = utcnow()
        cutoff = self.calculate_cutoff(now)
        record_ids = [record.id for record in self.repository.list_expired(cutoff)]

        logger.info(
            f"Retention sweep started: {len(record_ids)} expired records, "
            f"cutoff={cutoff.isoformat()}"
        )

        stats = {
            "approved_purged": 0,
            "rejected_purged": 0,
            "documents_deleted": 0,
            "storage_errors": 0,
            "database_errors": 0,
        }
        failed_record_ids = []

        for record_id in record_ids:
            try:
                purged_status, deleted, storage_errors = await self._purge_record(record_id, cutoff)
            except Exception:
                # One bad record must not stop the sweep
                self.repository.rollback()
                stats["database_errors"] += 1
                failed_record_ids.append(str(record_id))
                logger.error(
                    "Failed to purge expired record",
                    exc_info=True,
                    extra={"record_id": record_id},
                )
                continue

            stats["documents_deleted"] += deleted
            stats["storage_errors"] += storage_errors
            if purged_status == ApplicantStatus.APPROVED.value:
                stats["approved_purged"] += 1
            elif purged_status == ApplicantStatus.REJECTED.value:
                stats["rejected_purged"] += 1

        end_time = utcnow()
        duration = (end_time - start_time).total_seconds()
        retention_sweep_duration_seconds.observe(duration)

        statistics = RetentionStatistics(
            job_started_at=start_time,
            job_completed_at=end_time,
            duration_seconds=duration,
            cutoff=cutoff,
            records_examined=len(record_ids),
            failed_record_ids=failed_record_ids,
            **stats
        )

        log = logger.warning if statistics.has_errors else logger.info
        log(
            f"Retention sweep completed: {statistics.total_records_deleted} purged, "
            f"{statistics.storage_errors} storage errors, "
            f"{statistics.database_errors} record errors in {duration:.2f}s"
        )
        if statistics.is_anomaly:
            logger.warning(
                f"Retention sweep purged an unusually large number of records: "
                f"{statistics.total_records_deleted}"
            )
        return statistics

    async def _purge_record(self, record_id: UUID, cutoff: datetime) -> Tuple[Optional[str], int, int]:
        """Delete one record, then its documents, in a single transaction.

        The row delete is flushed before any storage call so the record's
        version is claimed; a writer that touched the record since it was
        loaded makes the flush fail and the documents stay untouched.

        Returns:
            (status purged, documents deleted, storage errors); status is None
            when the record vanished, is no longer expired or changed
            concurrently
        """
        record = self.repository.get(record_id)
        if record is None:
            return None, 0, 0

        decision_time = decided_at(record)
        if decision_time is None or decision_time >= cutoff:
            return None, 0, 0

        status = record.status
        user_id = record.user_id
        paths = record.storage_paths()

        self.repository.delete(record)
        try:
            self.repository.flush()
        except Conflict:
            logger.warning(
                "Expired record changed during retention sweep, skipped",
                extra={"record_id": record_id, "user_id": user_id},
            )
            return None, 0, 0

        deleted = 0
        storage_errors = 0
        for path in paths:
            if await self._delete_object(path, record_id):
                deleted += 1
            else:
                storage_errors += 1

        self.audit.record(
            APPLICATION_PURGED,
            actor_id=None,
            entity_id=record_id,
            metadata={
                "status": status,
                "decided_at": decision_time.isoformat(),
                "retention_days": self.settings.retention_days,
                "storage_errors": storage_errors,
            },
        )
        self.repository.commit()

        retention_purged_total.labels(status=status).inc()
        logger.info(
            f"Purged expired {status} record",
            extra={"record_id": record_id, "user_id": user_id, "status": status},
        )
        return status, deleted, storage_errors

    async def _delete_object(self, path: str, record_id: UUID) -> bool:
        """Delete one stored document; missing objects count as deleted."""
        try:
            await asyncio.wait_for(self.storage.delete_file(path), timeout=self.storage_timeout_seconds)
            return True
        except (StorageError, asyncio.TimeoutError):
            storage_failures_total.labels(operation="delete").inc()
            logger.error(
                "Object storage deletion failed during retention sweep",
                exc_info=True,
                extra={"record_id": record_id, "storage_path": path},
            )
            return False
