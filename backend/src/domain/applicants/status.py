"""ApplicantStatus state machine for the onboarding review lifecycle.

State flow:
    (new) → PENDING → APPROVED | REJECTED | REVISION_REQUIRED
    REVISION_REQUIRED → APPROVED | REJECTED | REVISION_REQUIRED | PENDING (resubmit)
    REJECTED → PENDING (resubmit)

Terminal States: APPROVED, REJECTED (REJECTED may be resubmitted)
"""

from enum import Enum
from typing import Dict, List, Optional

from .errors import InvalidTransition


class ApplicantStatus(str, Enum):
    """Applicant record status enumeration.

    Values are stored as TEXT in the database and must match exactly.
    """
    PENDING = "pending"
    REVISION_REQUIRED = "revision_required"
    APPROVED = "approved"
    REJECTED = "rejected"


# Outcomes an administrator may choose in a review decision
DECISION_OUTCOMES = (
    ApplicantStatus.APPROVED,
    ApplicantStatus.REJECTED,
    ApplicantStatus.REVISION_REQUIRED,
)

TERMINAL_STATUSES = (ApplicantStatus.APPROVED, ApplicantStatus.REJECTED)

# Statuses from which the owner may upload corrected documents
RESUBMITTABLE_STATUSES = (ApplicantStatus.REVISION_REQUIRED, ApplicantStatus.REJECTED)


ALLOWED_TRANSITIONS: Dict[Optional[ApplicantStatus], List[ApplicantStatus]] = {
    None: [ApplicantStatus.PENDING],
    ApplicantStatus.PENDING: [
        ApplicantStatus.APPROVED,
        ApplicantStatus.REJECTED,
        ApplicantStatus.REVISION_REQUIRED,
    ],
    ApplicantStatus.REVISION_REQUIRED: [
        ApplicantStatus.APPROVED,
        ApplicantStatus.REJECTED,
        ApplicantStatus.REVISION_REQUIRED,
        ApplicantStatus.PENDING,
    ],
    ApplicantStatus.REJECTED: [ApplicantStatus.PENDING],
    ApplicantStatus.APPROVED: [],  # Terminal state
}


def can_transition(
    from_status: Optional[ApplicantStatus],
    to_status: ApplicantStatus
) -> bool:
    """Check if a status transition is allowed without raising.

    Args:
        from_status: Current status (None for a record not yet created)
        to_status: Target status

    Returns:
        True if transition is allowed, False otherwise

    Example:
        >>> can_transition(ApplicantStatus.PENDING, ApplicantStatus.APPROVED)
        True
        >>> can_transition(ApplicantStatus.REJECTED, ApplicantStatus.APPROVED)
        False
    """
    allowed = ALLOWED_TRANSITIONS.get(from_status, [])
    return to_status in allowed


def validate_transition(
    from_status: Optional[ApplicantStatus],
    to_status: ApplicantStatus
) -> None:
    """Validate that a status transition is allowed.

    Raises:
        InvalidTransition: If transition is not allowed
    """
    if not can_transition(from_status, to_status):
        allowed = ALLOWED_TRANSITIONS.get(from_status, [])
        current = from_status.value if from_status else "none"
        raise InvalidTransition(
            f"Invalid transition: {current} -> {to_status.value}. "
            f"Allowed transitions from {current}: {[s.value for s in allowed]}"
        )


def get_allowed_transitions(from_status: Optional[ApplicantStatus]) -> List[ApplicantStatus]:
    """Get list of allowed target statuses from the current status."""
    return ALLOWED_TRANSITIONS.get(from_status, [])
