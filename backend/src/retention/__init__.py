"""Retention of decided applicant records.

Approved and rejected records, and their stored documents, are purged once
their decision is older than the retention window (45 days by default).

This module provides:
- RetentionSweeper: finds and purges expired records
- retention_sweep_task: daily Celery task
- Admin endpoints to preview and trigger a sweep
"""

from .schemas import (
    RetentionSettings,
    RetentionStatistics,
    RetentionReport,
)

# Service and tasks are imported lazily to avoid circular dependencies
# Use: from retention.service import RetentionSweeper
# Use: from retention.tasks import retention_sweep_task

__all__ = [
    "RetentionSettings",
    "RetentionStatistics",
    "RetentionReport",
]
