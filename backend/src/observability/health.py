"""Health probes for the database and object storage.

Each probe returns a ComponentHealth; HealthReport folds them into the
payload served by /health.
"""

import asyncio
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from domain.documents.ports.object_storage_port import ObjectStoragePort, StorageError
from .logging_config import get_logger

logger = get_logger(__name__)

# HEAD on a key that never exists: a 404 proves the bucket is reachable
STORAGE_PROBE_KEY = "_healthcheck/probe"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None

    @classmethod
    def ok(cls, name: str, started: float) -> "ComponentHealth":
        elapsed = (time.perf_counter() - started) * 1000
        return cls(HealthStatus.HEALTHY, f"{name} reachable", round(elapsed, 2))

    @classmethod
    def failed(cls, name: str, error: BaseException) -> "ComponentHealth":
        logger.error(f"{name} health probe failed: {error!r}", extra={"error_type": type(error).__name__})
        return cls(HealthStatus.UNHEALTHY, f"{name} error: {type(error).__name__}")


@dataclass
class HealthReport:
    components: Dict[str, ComponentHealth] = field(default_factory=dict)

    @property
    def status(self) -> HealthStatus:
        statuses = {c.status for c in self.components.values()}
        if HealthStatus.UNHEALTHY in statuses:
            return HealthStatus.UNHEALTHY
        if statuses <= {HealthStatus.HEALTHY}:
            return HealthStatus.HEALTHY
        return HealthStatus.DEGRADED

    @property
    def http_status(self) -> int:
        return 503 if self.status == HealthStatus.UNHEALTHY else 200

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "components": {
                name: {**asdict(comp), "status": comp.status.value}
                for name, comp in self.components.items()
            },
        }


def check_database_health(db: Session) -> ComponentHealth:
    """Round-trip a SELECT 1."""
    started = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return ComponentHealth.failed("Database", e)
    return ComponentHealth.ok("Database", started)


async def check_object_storage_health(
    storage: ObjectStoragePort,
    timeout_seconds: float = 5.0,
) -> ComponentHealth:
    """HEAD the probe key within timeout_seconds."""
    started = time.perf_counter()
    try:
        await asyncio.wait_for(storage.file_exists(STORAGE_PROBE_KEY), timeout=timeout_seconds)
    except (StorageError, asyncio.TimeoutError) as e:
        return ComponentHealth.failed("Object storage", e)
    return ComponentHealth.ok("Object storage", started)
