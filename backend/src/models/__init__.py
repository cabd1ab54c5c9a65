"""SQLAlchemy Models for the onboarding portal"""

from .base import Base
from .applicant import Applicant, ApplicantDocument
from .user_role import UserRoleAssignment
from .audit_log import AuditLog

__all__ = [
    "Base",
    "Applicant",
    "ApplicantDocument",
    "UserRoleAssignment",
    "AuditLog",
]
