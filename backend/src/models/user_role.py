"""UserRoleAssignment SQLAlchemy model"""

from sqlalchemy import Column, Text, CheckConstraint, Uuid

from auth.roles import UserRole
from .base import Base, UTCDateTime, utcnow


class UserRoleAssignment(Base):
    """Authorization role held by a user account.

    One row per user. Accounts are created by the external auth provider; the
    row is written when the account signs up (role applicant) and updated on
    promotion.
    """
    __tablename__ = "user_role"
    __table_args__ = (
        CheckConstraint(
            "role IN ({})".format(", ".join(f"'{r.value}'" for r in UserRole)),
            name="ck_user_role_role",
        ),
    )

    user_id = Column(Uuid(as_uuid=True), primary_key=True)
    role = Column(Text, nullable=False, default=UserRole.APPLICANT.value)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "user_id": str(self.user_id),
            "role": self.role,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
