"""Pydantic schemas for retention settings and statistics.

This module defines retention-related schemas:
- RetentionSettings: Retention window for decided applicant records
- RetentionStatistics: Statistics about one sweep execution
- RetentionReport: Preview of records eligible for purge
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from config import Settings


class RetentionSettings(BaseModel):
    """Retention window configuration.

    Approved and rejected records are purged, together with their stored
    documents, once their decision is older than retention_days.
    """

    retention_days: int = Field(
        default=45,
        ge=1,
        le=3650,
        description="Days a decided applicant record is kept (1-3650)"
    )

    sweep_hour_utc: int = Field(
        default=2,
        ge=0,
        le=23,
        description="Hour of day (UTC) the scheduled sweep runs"
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetentionSettings":
        return cls(
            retention_days=settings.APPLICANT_RETENTION_DAYS,
            sweep_hour_utc=settings.RETENTION_SWEEP_HOUR_UTC,
        )


class RetentionStatistics(BaseModel):
    """Statistics from a retention sweep execution.

    Used for monitoring and alerting on sweep health.
    """

    job_started_at: datetime = Field(description="When the sweep started")
    job_completed_at: datetime = Field(description="When the sweep completed")
    duration_seconds: float = Field(ge=0.0, description="Sweep duration in seconds")
    cutoff: datetime = Field(description="Records decided before this instant were eligible")

    records_examined: int = Field(default=0, ge=0, description="Eligible records found")
    approved_purged: int = Field(default=0, ge=0, description="Approved records purged")
    rejected_purged: int = Field(default=0, ge=0, description="Rejected records purged")
    documents_deleted: int = Field(default=0, ge=0, description="Stored documents deleted")

    storage_errors: int = Field(
        default=0,
        ge=0,
        description="Number of object storage deletion errors"
    )

    database_errors: int = Field(
        default=0,
        ge=0,
        description="Number of records whose deletion failed"
    )

    failed_record_ids: List[str] = Field(
        default_factory=list,
        description="Records left in place because their deletion failed"
    )

    @property
    def total_records_deleted(self) -> int:
        return self.approved_purged + self.rejected_purged

    @property
    def has_errors(self) -> bool:
        """Whether any errors occurred during execution."""
        return self.storage_errors > 0 or self.database_errors > 0

    @property
    def is_anomaly(self) -> bool:
        """Whether deletion volume exceeds normal thresholds (alert condition)."""
        return self.total_records_deleted > 1000


class RetentionReport(BaseModel):
    """Records that a sweep run now would purge."""

    retention_settings: RetentionSettings
    cutoff: datetime
    approved_eligible: int = Field(default=0, ge=0)
    rejected_eligible: int = Field(default=0, ge=0)
    record_ids: List[str] = Field(default_factory=list)
