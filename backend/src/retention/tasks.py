"""Celery tasks for applicant record retention.

Tasks:
- retention_sweep_task: Daily job (RETENTION_SWEEP_HOUR_UTC, default 02:00 UTC)
"""

import asyncio
import logging
from typing import Any, Dict

from celery import shared_task

from audit.service import SqlAlchemyAuditTrail
from config import get_settings
from database import get_db_session
from infrastructure.repositories.applicant_repository import SqlAlchemyApplicantRepository
from infrastructure.storage.s3_storage_adapter import S3StorageAdapter
from infrastructure.storage.storage_config import load_storage_config
from .schemas import RetentionSettings, RetentionStatistics
from .service import RetentionSweeper

logger = logging.getLogger(__name__)


def statistics_to_result(statistics: RetentionStatistics) -> Dict[str, Any]:
    """Flatten sweep statistics into a JSON-serialisable Celery result."""
    return {
        'status': 'completed',
        'job_started_at': statistics.job_started_at.isoformat(),
        'job_completed_at': statistics.job_completed_at.isoformat(),
        'duration_seconds': statistics.duration_seconds,
        'cutoff': statistics.cutoff.isoformat(),
        'records_examined': statistics.records_examined,
        'approved_purged': statistics.approved_purged,
        'rejected_purged': statistics.rejected_purged,
        'documents_deleted': statistics.documents_deleted,
        'storage_errors': statistics.storage_errors,
        'database_errors': statistics.database_errors,
        'failed_record_ids': statistics.failed_record_ids,
        'total_deleted': statistics.total_records_deleted,
        'has_errors': statistics.has_errors,
        'is_anomaly': statistics.is_anomaly,
    }


@shared_task(name="retention.sweep_applicants", bind=True)
def retention_sweep_task(self) -> Dict[str, Any]:
    """Purge decided applicant records older than the retention window.

    Idempotent: running twice in succession finds nothing more to purge.
    Per-record failures are reported in the result; only a failure to start
    the sweep (database or storage unreachable) marks the task failed.
    """
    logger.info("Retention sweep task started")
    settings = get_settings()

    try:
        with get_db_session() as db:
            sweeper = RetentionSweeper(
                repository=SqlAlchemyApplicantRepository(db),
                storage=S3StorageAdapter.from_config(load_storage_config(settings)),
                audit=SqlAlchemyAuditTrail(db),
                settings=RetentionSettings.from_settings(settings),
                storage_timeout_seconds=settings.STORAGE_TIMEOUT_SECONDS,
            )
            statistics = asyncio.run(sweeper.sweep_expired())
        result = statistics_to_result(statistics)

        logger.info("Retention sweep task completed")
        return result

    except Exception as e:
        logger.error("Retention sweep task failed", exc_info=True)
        return {
            'status': 'failed',
            'error': str(e),
            'total_deleted': 0,
        }

