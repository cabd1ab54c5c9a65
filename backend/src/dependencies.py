"""Global FastAPI dependencies for collaborators shared across routers.

This module provides:
- get_storage: Object storage adapter (one boto3 client per process)
- get_notifier: Approval notification channel chosen from settings
- get_review_workflow: ReviewWorkflow bound to the request's session

Tests override get_storage and get_notifier through app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from applicants.service import ReviewWorkflow, WorkflowOptions
from audit.service import SqlAlchemyAuditTrail
from config import get_settings
from database import get_db
from domain.applicants.ports import NotificationPort
from domain.documents.ports.object_storage_port import ObjectStoragePort
from infrastructure.authorization.role_store import SqlAlchemyRoleStore
from infrastructure.notifications.email_notifier import build_notifier
from infrastructure.repositories.applicant_repository import SqlAlchemyApplicantRepository
from infrastructure.storage.s3_storage_adapter import S3StorageAdapter
from infrastructure.storage.storage_config import load_storage_config


@lru_cache()
def get_storage() -> ObjectStoragePort:
    """S3 adapter built from settings; cached because boto3 clients are thread-safe."""
    return S3StorageAdapter.from_config(load_storage_config())


def get_notifier() -> NotificationPort:
    return build_notifier(get_settings())


def get_review_workflow(
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
    notifier: NotificationPort = Depends(get_notifier),
) -> ReviewWorkflow:
    """ReviewWorkflow whose repository, role store and audit trail share one session."""
    return ReviewWorkflow(
        repository=SqlAlchemyApplicantRepository(db),
        storage=storage,
        authorization=SqlAlchemyRoleStore(db),
        audit=SqlAlchemyAuditTrail(db),
        notifier=notifier,
        options=WorkflowOptions.from_settings(get_settings()),
    )
