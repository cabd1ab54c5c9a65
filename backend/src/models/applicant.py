"""Applicant and ApplicantDocument SQLAlchemy models

Applicant is the single review record owned by a pre-employment user.
ApplicantDocument holds one row per document slot with the object storage
path and the reviewer's per-slot feedback.
"""

import uuid
from typing import Optional

from sqlalchemy import (
    Column,
    Text,
    Integer,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Index,
    Uuid,
)
from sqlalchemy.orm import relationship

from domain.applicants.status import ApplicantStatus
from domain.applicants.slots import DocumentSlot
from .base import Base, UTCDateTime, utcnow


def _in_clause(column: str, enum_cls) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"


class Applicant(Base):
    """Applicant review record.

    Exactly one record exists per user. Status changes go through the review
    workflow; the version column gives optimistic concurrency so two
    reviewers cannot both win a transition.
    """
    __tablename__ = "applicant"
    __table_args__ = (
        CheckConstraint(_in_clause("status", ApplicantStatus), name="ck_applicant_status"),
        UniqueConstraint("user_id", name="uq_applicant_user_id"),
        Index("ix_applicant_status_approved_at", "status", "approved_at"),
        Index("ix_applicant_status_rejected_at", "status", "rejected_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False)
    status = Column(Text, nullable=False, default=ApplicantStatus.PENDING.value)
    overall_comment = Column(Text, nullable=True)
    approved_at = Column(UTCDateTime, nullable=True)
    approved_by = Column(Uuid(as_uuid=True), nullable=True)
    rejected_at = Column(UTCDateTime, nullable=True)
    rejected_by = Column(Uuid(as_uuid=True), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow)
    version = Column(Integer, nullable=False)

    documents = relationship(
        "ApplicantDocument",
        back_populates="applicant",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ApplicantDocument.slot",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def status_enum(self) -> ApplicantStatus:
        return ApplicantStatus(self.status)

    def find_document(self, slot: DocumentSlot) -> Optional["ApplicantDocument"]:
        for doc in self.documents:
            if doc.slot == slot.value:
                return doc
        return None

    def document(self, slot: DocumentSlot) -> "ApplicantDocument":
        """Return the row for a slot, creating an empty one if missing."""
        doc = self.find_document(slot)
        if doc is not None:
            return doc
        doc = ApplicantDocument(slot=slot.value)
        self.documents.append(doc)
        return doc

    def storage_paths(self) -> list:
        """All object storage paths referenced by this record."""
        return [doc.storage_path for doc in self.documents if doc.storage_path]

    def to_dict(self):
        """Convert applicant record to dictionary representation"""
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "status": self.status,
            "overall_comment": self.overall_comment,
            "documents": {
                slot.value: doc.to_dict() if doc else None
                for slot, doc in ((s, self.find_document(s)) for s in DocumentSlot)
            },
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "approved_by": str(self.approved_by) if self.approved_by else None,
            "rejected_at": self.rejected_at.isoformat() if self.rejected_at else None,
            "rejected_by": str(self.rejected_by) if self.rejected_by else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ApplicantDocument(Base):
    """One document slot of an applicant record."""
    __tablename__ = "applicant_document"
    __table_args__ = (
        CheckConstraint(_in_clause("slot", DocumentSlot), name="ck_applicant_document_slot"),
        UniqueConstraint("applicant_id", "slot", name="uq_applicant_document_slot"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    applicant_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("applicant.id", ondelete="CASCADE"),
        nullable=False,
    )
    slot = Column(Text, nullable=False)
    storage_path = Column(Text, nullable=True)
    feedback = Column(Text, nullable=True)
    uploaded_at = Column(UTCDateTime, nullable=True)

    applicant = relationship("Applicant", back_populates="documents")

    def to_dict(self):
        return {
            "storage_path": self.storage_path,
            "feedback": self.feedback,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }
