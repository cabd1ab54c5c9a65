"""SQLAlchemy implementation of AuthorizationPort over the user_role table."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from auth.roles import UserRole
from domain.applicants.ports import AuthorizationPort
from models.user_role import UserRoleAssignment

logger = logging.getLogger(__name__)


class SqlAlchemyRoleStore(AuthorizationPort):
    """Role lookups and writes through a session.

    set_role only stages the change (no flush); it becomes durable when the session
    owner commits, so a role write shares the unit of work of the
    applicant repository built on the same session.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_role(self, user_id: UUID) -> Optional[UserRole]:
        assignment = self.db.get(UserRoleAssignment, user_id)
        if assignment is None:
            return None
        return UserRole(assignment.role)

    def has_role(self, user_id: UUID, role: UserRole) -> bool:
        return self.get_role(user_id) == role

    def set_role(self, user_id: UUID, role: UserRole) -> None:
        assignment = self.db.get(UserRoleAssignment, user_id)
        if assignment is None:
            assignment = UserRoleAssignment(user_id=user_id, role=role.value)
            self.db.add(assignment)
        else:
            assignment.role = role.value
        logger.info(f"Role set to {role.value}", extra={"user_id": user_id})
