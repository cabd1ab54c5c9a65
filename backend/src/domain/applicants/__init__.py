"""Applicants domain module - review lifecycle, document slots, error kinds

Ports are imported from domain.applicants.ports directly (they depend on the
ORM models, which depend on this package).
"""

from .errors import (
    ApplicantWorkflowError,
    NotFound,
    PermissionDenied,
    Conflict,
    InvalidTransition,
    ValidationError,
    PromotionFailed,
    RoleConflict,
    StorageFailure,
)
from .status import (
    ApplicantStatus,
    ALLOWED_TRANSITIONS,
    DECISION_OUTCOMES,
    RESUBMITTABLE_STATUSES,
    TERMINAL_STATUSES,
    can_transition,
    validate_transition,
)
from .slots import DocumentSlot, ALL_SLOTS, parse_slot, parse_slots

__all__ = [
    "ApplicantWorkflowError",
    "NotFound",
    "PermissionDenied",
    "Conflict",
    "InvalidTransition",
    "ValidationError",
    "PromotionFailed",
    "RoleConflict",
    "StorageFailure",
    "ApplicantStatus",
    "ALLOWED_TRANSITIONS",
    "DECISION_OUTCOMES",
    "RESUBMITTABLE_STATUSES",
    "TERMINAL_STATUSES",
    "can_transition",
    "validate_transition",
    "DocumentSlot",
    "ALL_SLOTS",
    "parse_slot",
    "parse_slots",
]
