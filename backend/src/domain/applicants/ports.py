"""Ports consumed by the applicant review workflow.

The workflow depends only on these interfaces. Default adapters live in
infrastructure/ (SQLAlchemy repository and role store, SMTP notifier).

Architecture: Hexagonal - Port interfaces in domain layer
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from auth.roles import UserRole
from models.applicant import Applicant
from .status import ApplicantStatus


class ApplicantRepository(ABC):
    """Record store for applicant records.

    Implementations also act as the unit of work: mutations made to loaded
    records become durable on commit(). flush() must detect concurrent
    modification of a record and raise Conflict.
    """

    @abstractmethod
    def get(self, record_id: UUID) -> Optional[Applicant]:
        """Load a record by id, or None."""

    @abstractmethod
    def get_by_user(self, user_id: UUID) -> Optional[Applicant]:
        """Load the record owned by a user, or None."""

    @abstractmethod
    def list(self, status: Optional[ApplicantStatus] = None) -> List[Applicant]:
        """List records, newest first, optionally filtered by status."""

    @abstractmethod
    def list_expired(self, cutoff: datetime) -> List[Applicant]:
        """List decided records whose decision timestamp is older than cutoff.

        approved records are matched on approved_at, rejected records on
        rejected_at.
        """

    @abstractmethod
    def add(self, record: Applicant) -> Applicant:
        """Stage a new record for insertion."""

    @abstractmethod
    def delete(self, record: Applicant) -> None:
        """Stage a record (and its slot rows) for deletion."""

    @abstractmethod
    def flush(self) -> None:
        """Write staged changes without committing.

        Raises:
            Conflict: If a concurrent writer changed the record or the user
                already owns a record
        """

    @abstractmethod
    def commit(self) -> None:
        """Commit the unit of work (same Conflict semantics as flush)."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard staged and flushed changes."""


class AuthorizationPort(ABC):
    """Role lookup and assignment for user accounts."""

    @abstractmethod
    def get_role(self, user_id: UUID) -> Optional[UserRole]:
        """Current role of a user, or None when no role is assigned."""

    @abstractmethod
    def has_role(self, user_id: UUID, role: UserRole) -> bool:
        """Check whether a user currently holds a role."""

    @abstractmethod
    def set_role(self, user_id: UUID, role: UserRole) -> None:
        """Assign a role (staged in the same unit of work as the repository
        when both share a session)."""


@dataclass
class ApprovalNotice:
    """Payload for the post-approval HR notification.

    Attributes:
        record_id: Approved applicant record
        user_id: Owner of the record
        approved_at: Decision timestamp
        applicant_name: Display name if the caller knows it
        document_urls: Signed download URLs keyed by slot name
    """
    record_id: UUID
    user_id: UUID
    approved_at: datetime
    applicant_name: Optional[str] = None
    document_urls: Dict[str, str] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.applicant_name or "New Employee"


class NotificationPort(ABC):
    """Fire-and-forget notification channel."""

    @abstractmethod
    def send_approval(self, notice: ApprovalNotice) -> None:
        """Send the approval notice. May raise; callers log and continue."""


class AuditTrail(ABC):
    """Append-only record of workflow events.

    Entries join the repository's unit of work: a rolled back operation
    leaves no entry behind.
    """

    @abstractmethod
    def record(
        self,
        action: str,
        actor_id: Optional[UUID],
        entity_id: Optional[UUID],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Stage an audit entry for an applicant record."""
