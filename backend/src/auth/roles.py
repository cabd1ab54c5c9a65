"""User roles for the onboarding portal.

Roles (one per user, stored in the user_role table):
- ADMIN: Reviews applications, decides outcomes, deletes records, runs retention
- EMPLOYEE: Promoted applicant; no access to the review workflow
- APPLICANT: Pre-employment user; owns at most one applicant record

Permission Matrix:
┌──────────────────────────┬───────┬──────────┬───────────┐
│ Action                   │ ADMIN │ EMPLOYEE │ APPLICANT │
├──────────────────────────┼───────┼──────────┼───────────┤
│ Submit / resubmit own    │       │          │     ✓     │
│ View own record          │   ✓   │    ✓     │     ✓     │
│ View all records         │   ✓   │          │           │
│ Decide / delete          │   ✓   │          │           │
│ Trigger retention sweep  │   ✓   │          │           │
└──────────────────────────┴───────┴──────────┴───────────┘
"""

from enum import Enum
from typing import Set


class UserRole(str, Enum):
    """User roles in the onboarding portal.

    Values are stored as TEXT in the database and must match exactly.
    """
    ADMIN = "admin"
    EMPLOYEE = "employee"
    APPLICANT = "applicant"


# Roles a newly promoted applicant moves between
PROMOTION_SOURCE_ROLE = UserRole.APPLICANT
PROMOTION_TARGET_ROLE = UserRole.EMPLOYEE

# Roles that may review applications
REVIEWER_ROLES: Set[UserRole] = {UserRole.ADMIN}


def is_reviewer(role: UserRole) -> bool:
    """Check if a role may act on other users' applicant records.

    Examples:
        >>> is_reviewer(UserRole.ADMIN)
        True
        >>> is_reviewer(UserRole.EMPLOYEE)
        False
    """
    return role in REVIEWER_ROLES
