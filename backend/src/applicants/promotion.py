"""Role promotion applied when an applicant record is approved."""

import logging
from uuid import UUID

from auth.roles import PROMOTION_SOURCE_ROLE, PROMOTION_TARGET_ROLE, UserRole
from domain.applicants.errors import RoleConflict
from domain.applicants.ports import AuthorizationPort

logger = logging.getLogger(__name__)


class RolePromotionService:
    """Move a user from the applicant role to the employee role.

    promote() is idempotent: a user already holding the target role is left
    alone. The role write is staged in the caller's unit of work; committing
    or rolling it back is the caller's job.
    """

    def __init__(self, authorization: AuthorizationPort):
        self.authorization = authorization

    def promote(
        self,
        user_id: UUID,
        from_role: UserRole = PROMOTION_SOURCE_ROLE,
        to_role: UserRole = PROMOTION_TARGET_ROLE,
    ) -> bool:
        """Promote user_id from from_role to to_role.

        Returns:
            True if the role was changed, False if it already was to_role

        Raises:
            RoleConflict: If the current role is neither from_role nor to_role
        """
        current = self.authorization.get_role(user_id)

        if current == to_role:
            logger.info(
                f"Promotion skipped, user already {to_role.value}",
                extra={"user_id": user_id},
            )
            return False

        if current != from_role:
            raise RoleConflict(
                f"Cannot promote user {user_id}: role is "
                f"{current.value if current else 'unassigned'}, expected {from_role.value}"
            )

        self.authorization.set_role(user_id, to_role)
        logger.info(
            f"Promoted user {from_role.value} -> {to_role.value}",
            extra={"user_id": user_id},
        )
        return True
