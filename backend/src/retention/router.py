"""FastAPI router for applicant retention endpoints.

Provides admin APIs for:
- Previewing which records the next sweep would purge
- Running a sweep immediately

All endpoints require the admin role.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from audit.service import SqlAlchemyAuditTrail
from auth.dependencies import require_role
from auth.roles import UserRole
from config import get_settings
from database import get_db
from dependencies import get_storage
from domain.documents.ports.object_storage_port import ObjectStoragePort
from infrastructure.repositories.applicant_repository import SqlAlchemyApplicantRepository
from .schemas import RetentionReport, RetentionSettings, RetentionStatistics
from .service import RetentionSweeper

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applicants/retention", tags=["retention"])


def get_retention_sweeper(
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
) -> RetentionSweeper:
    settings = get_settings()
    return RetentionSweeper(
        repository=SqlAlchemyApplicantRepository(db),
        storage=storage,
        audit=SqlAlchemyAuditTrail(db),
        settings=RetentionSettings.from_settings(settings),
        storage_timeout_seconds=settings.STORAGE_TIMEOUT_SECONDS,
    )


@router.get("/report", response_model=RetentionReport)
def get_retention_report(
    actor_id: UUID = Depends(require_role(UserRole.ADMIN)),
    sweeper: RetentionSweeper = Depends(get_retention_sweeper),
) -> RetentionReport:
    """Preview the records a sweep run now would purge. Nothing is deleted."""
    return sweeper.generate_retention_report()


@router.post("/sweep", response_model=RetentionStatistics)
async def run_retention_sweep(
    actor_id: UUID = Depends(require_role(UserRole.ADMIN)),
    sweeper: RetentionSweeper = Depends(get_retention_sweeper),
) -> RetentionStatistics:
    """Purge expired records now instead of waiting for the daily task.

    Per-record failures are reported in the statistics, not raised.
    """
    logger.info("Manual retention sweep triggered", extra={"actor_id": actor_id})
    return await sweeper.sweep_expired()
