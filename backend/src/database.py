"""Database session factory and configuration.

Provides database connectivity and session management for the onboarding
portal backend.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from config import get_settings
from models.base import Base

DATABASE_URL = get_settings().DATABASE_URL


def build_engine(database_url: str) -> Engine:
    """Create an engine; pool settings only apply to non-SQLite databases."""
    engine_kwargs = {
        "pool_pre_ping": True,
        "echo": False,
    }
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10
    return create_engine(database_url, **engine_kwargs)


engine = build_engine(DATABASE_URL)

# expire_on_commit=False keeps committed records readable after the workflow
# returns them to the router
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


def init_db(bind: Engine = None) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=bind or engine)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions outside a request.

    Usage:
        with get_db_session() as session:
            sweeper = RetentionSweeper(SqlAlchemyApplicantRepository(session), ...)

    Commits on success, rolls back on exception.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI endpoints.

    Usage:
        @router.get("/applicants/me")
        def get_mine(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
