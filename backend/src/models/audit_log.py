"""AuditLog SQLAlchemy model"""

import uuid

from sqlalchemy import Column, Text, Index, Uuid

from .base import Base, PortableJSONB, UTCDateTime, utcnow


class AuditLog(Base):
    """AuditLog model for immutable workflow event logging.

    Records every submission, decision, resubmission, deletion, promotion and
    retention purge. Entries are append-only and should never be updated or
    deleted; entity_id is not a foreign key so entries outlive purged records.
    """
    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_entity", "entity_type", "entity_id"),
        Index("ix_audit_log_created_at", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    actor_id = Column(Uuid(as_uuid=True), nullable=True)
    action = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=True)
    entity_id = Column(Uuid(as_uuid=True), nullable=True)
    metadata_json = Column(PortableJSONB, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    def to_dict(self):
        """Convert audit log entry to dictionary representation"""
        return {
            "id": str(self.id),
            "actor_id": str(self.actor_id) if self.actor_id else None,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "metadata": self.metadata_json,
            "created_at": self.created_at.isoformat()
        }
