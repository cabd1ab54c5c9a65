"""Applicant repository for database operations"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from domain.applicants.errors import Conflict
from domain.applicants.ports import ApplicantRepository
from domain.applicants.status import ApplicantStatus
from models.applicant import Applicant

logger = logging.getLogger(__name__)


class SqlAlchemyApplicantRepository(ApplicantRepository):
    """Repository for applicant records backed by a SQLAlchemy session.

    The session is the unit of work. Concurrent modification is detected by
    the mapper's version counter (StaleDataError) and a second record for the
    same user by the unique constraint (IntegrityError); both surface as
    Conflict after the session has been rolled back.
    """

    def __init__(self, db: Session):
        """Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def get(self, record_id: UUID) -> Optional[Applicant]:
        return self.db.get(Applicant, record_id)

    def get_by_user(self, user_id: UUID) -> Optional[Applicant]:
        query = select(Applicant).where(Applicant.user_id == user_id)
        return self.db.execute(query).scalars().first()

    def list(self, status: Optional[ApplicantStatus] = None) -> List[Applicant]:
        query = select(Applicant)
        if status is not None:
            query = query.where(Applicant.status == status.value)
        query = query.order_by(Applicant.created_at.desc())
        return list(self.db.execute(query).scalars().all())

    def list_expired(self, cutoff: datetime) -> List[Applicant]:
        """Get decided records older than cutoff.

        Each terminal status is paired with its own decision timestamp, so a
        record re-decided after resubmission is aged from its latest outcome.
        """
        query = select(Applicant).where(
            or_(
                and_(
                    Applicant.status == ApplicantStatus.APPROVED.value,
                    Applicant.approved_at < cutoff,
                ),
                and_(
                    Applicant.status == ApplicantStatus.REJECTED.value,
                    Applicant.rejected_at < cutoff,
                ),
            )
        ).order_by(Applicant.created_at)
        return list(self.db.execute(query).scalars().all())

    def add(self, record: Applicant) -> Applicant:
        self.db.add(record)
        return record

    def delete(self, record: Applicant) -> None:
        self.db.delete(record)

    def flush(self) -> None:
        with self._conflicts():
            self.db.flush()

    def commit(self) -> None:
        with self._conflicts():
            self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    @contextmanager
    def _conflicts(self) -> Iterator[None]:
        try:
            yield
        except StaleDataError as e:
            self.db.rollback()
            logger.warning(f"Concurrent modification detected: {e}")
            raise Conflict("Record was modified by another request; reload and retry")
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Integrity violation: {e.orig}")
            raise Conflict("An application already exists for this user")
