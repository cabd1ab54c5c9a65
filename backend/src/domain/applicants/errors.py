"""Error kinds raised by the applicant review workflow.

Every error carries an HTTP status so the API layer can translate it without
a lookup table; the workflow itself never depends on FastAPI.
"""

from typing import Optional


class ApplicantWorkflowError(Exception):
    """Base class for all workflow errors."""

    status_code = 400
    kind = "workflow_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ApplicantWorkflowError):
    """Unknown record or user."""
    status_code = 404
    kind = "not_found"


class PermissionDenied(ApplicantWorkflowError):
    """Actor lacks the capability required by the operation."""
    status_code = 403
    kind = "permission_denied"


class Conflict(ApplicantWorkflowError):
    """Duplicate active submission, or a lost race on a transition."""
    status_code = 409
    kind = "conflict"


class InvalidTransition(ApplicantWorkflowError):
    """Status preconditions violated."""
    status_code = 409
    kind = "invalid_transition"


class ValidationError(ApplicantWorkflowError):
    """Input rejected before any state change."""
    status_code = 422
    kind = "validation_error"


class PromotionFailed(ApplicantWorkflowError):
    """Role write did not succeed after approval; the approval was rolled back."""
    status_code = 502
    kind = "promotion_failed"


class RoleConflict(PromotionFailed):
    """User's current role is neither the source nor the target role."""
    kind = "role_conflict"


class StorageFailure(ApplicantWorkflowError):
    """Object store upload, delete or URL issuance failed."""
    status_code = 503
    kind = "storage_failure"

    def __init__(self, message: str, retryable: bool = False, path: Optional[str] = None):
        super().__init__(message)
        self.retryable = retryable
        self.path = path
