"""Pytest fixtures for the applicant review workflow.

Provides reusable test fixtures for:
- In-memory SQLite database and session (tables created per test)
- In-memory object storage with failure and latency injection
- Seeded users holding the applicant / admin / employee roles
- A ReviewWorkflow wired to the session, storage and a recording notifier
- An API client with database, storage and notifier overridden

Usage:
    @pytest.mark.asyncio
    async def test_submit(workflow, applicant_id, both_documents):
        record = await workflow.submit(applicant_id, both_documents)
        assert record.status == "pending"
"""

import asyncio
import hashlib
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Generator, List, Optional
from uuid import UUID, uuid4

# Set environment variables BEFORE any imports to ensure they take effect
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("S3_ENDPOINT_URL", "http://localhost:9000")

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from applicants.service import ReviewWorkflow, WorkflowOptions
from audit.service import SqlAlchemyAuditTrail
from auth.jwt import create_access_token
from auth.roles import UserRole
from database import init_db
from domain.applicants.ports import ApprovalNotice, NotificationPort
from domain.documents.ports.object_storage_port import ObjectStoragePort, StorageError, StoredFile
from domain.documents.validation import DocumentUpload
from infrastructure.authorization.role_store import SqlAlchemyRoleStore
from infrastructure.repositories.applicant_repository import SqlAlchemyApplicantRepository
from models.base import Base
from models.user_role import UserRoleAssignment


PDF_BYTES = b"%PDF-1.4\n%\xE2\xE3\xCF\xD3\n1 0 obj\n<<>>\nendobj\n"

T0 = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


def make_pdf(filename: str = "signed.pdf", data: bytes = PDF_BYTES) -> DocumentUpload:
    return DocumentUpload(filename=filename, content_type="application/pdf", data=data)


class InMemoryObjectStorage(ObjectStoragePort):
    """ObjectStoragePort kept in a dict.

    Failure injection:
        fail_put_keys: substrings; a put whose key contains one raises StorageError
        fail_deletes: every delete raises StorageError
        fail_urls: every URL issuance raises StorageError
        delay_seconds: sleep before every call (for timeout tests)
    """

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.fail_put_keys: List[str] = []
        self.fail_deletes = False
        self.fail_urls = False
        self.delay_seconds = 0.0
        self.deleted: List[str] = []

    async def _maybe_wait(self):
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

    async def put_object(self, storage_key: str, data: bytes, mime_type: str) -> StoredFile:
        await self._maybe_wait()
        if not data:
            raise ValueError("Cannot store empty file")
        if any(marker in storage_key for marker in self.fail_put_keys):
            raise StorageError(f"injected put failure for {storage_key}")
        self.objects[storage_key] = data
        return StoredFile(
            storage_key=storage_key,
            sha256=hashlib.sha256(data).hexdigest(),
            size_bytes=len(data),
            mime_type=mime_type,
        )

    async def delete_file(self, storage_key: str) -> bool:
        await self._maybe_wait()
        if self.fail_deletes:
            raise StorageError(f"injected delete failure for {storage_key}")
        if storage_key not in self.objects:
            return False
        del self.objects[storage_key]
        self.deleted.append(storage_key)
        return True

    async def file_exists(self, storage_key: str) -> bool:
        await self._maybe_wait()
        return storage_key in self.objects

    async def generate_presigned_url(self, storage_key: str, expires_in_seconds: int = 3600) -> str:
        await self._maybe_wait()
        if self.fail_urls:
            raise StorageError("injected URL failure")
        if storage_key not in self.objects:
            raise FileNotFoundError(f"File not found: {storage_key}")
        return f"https://storage.test/{storage_key}?expires={expires_in_seconds}"


class RecordingNotifier(NotificationPort):
    """Collects approval notices; raises when fail is set."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.notices: List[ApprovalNotice] = []

    def send_approval(self, notice: ApprovalNotice) -> None:
        if self.fail:
            raise RuntimeError("SMTP server unavailable")
        self.notices.append(notice)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def build_workflow(
    db: Session,
    storage: ObjectStoragePort,
    notifier: Optional[NotificationPort] = None,
    clock: Optional[FakeClock] = None,
    authorization=None,
    **options,
) -> ReviewWorkflow:
    """ReviewWorkflow on one session, the way dependencies.get_review_workflow wires it."""
    options.setdefault("storage_timeout_seconds", 0.5)
    return ReviewWorkflow(
        repository=SqlAlchemyApplicantRepository(db),
        storage=storage,
        authorization=authorization or SqlAlchemyRoleStore(db),
        audit=SqlAlchemyAuditTrail(db),
        notifier=notifier,
        options=WorkflowOptions(**options),
        clock=clock or FakeClock(),
    )


def seed_role(db: Session, role: UserRole, user_id: Optional[UUID] = None) -> UUID:
    user_id = user_id or uuid4()
    db.add(UserRoleAssignment(user_id=user_id, role=role.value))
    db.commit()
    return user_id


def role_of(db: Session, user_id: UUID) -> Optional[str]:
    """Role as committed in the database (bypasses the identity map)."""
    db.expire_all()
    assignment = db.get(UserRoleAssignment, user_id)
    return assignment.role if assignment else None


@pytest.fixture(scope="function")
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Fresh session per test; expire_on_commit=False like database.SessionLocal."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=db_engine,
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage() -> InMemoryObjectStorage:
    return InMemoryObjectStorage()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def applicant_id(db_session: Session) -> UUID:
    return seed_role(db_session, UserRole.APPLICANT)


@pytest.fixture
def other_applicant_id(db_session: Session) -> UUID:
    return seed_role(db_session, UserRole.APPLICANT)


@pytest.fixture
def admin_id(db_session: Session) -> UUID:
    return seed_role(db_session, UserRole.ADMIN)


@pytest.fixture
def employee_id(db_session: Session) -> UUID:
    return seed_role(db_session, UserRole.EMPLOYEE)


@pytest.fixture
def workflow(db_session, storage, notifier, clock) -> ReviewWorkflow:
    return build_workflow(db_session, storage, notifier=notifier, clock=clock)


@pytest.fixture
def both_documents() -> Dict[str, DocumentUpload]:
    return {
        "pre_employment": make_pdf("pre_employment.pdf"),
        "policy_rules": make_pdf("policy_rules.pdf"),
    }


@pytest.fixture(scope="function")
def client(db_session: Session, storage: InMemoryObjectStorage, notifier: RecordingNotifier):
    """TestClient with the database, object storage and notifier overridden."""
    from fastapi.testclient import TestClient

    from database import get_db
    from dependencies import get_notifier, get_storage
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def auth_headers(user_id: UUID) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}
