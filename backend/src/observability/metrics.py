"""Prometheus metrics for the applicant review workflow."""

from prometheus_client import Counter, Histogram

applications_submitted_total = Counter(
    "onboard_applications_submitted_total",
    "Applicant records created by a first submission",
)

applications_resubmitted_total = Counter(
    "onboard_applications_resubmitted_total",
    "Resubmissions that moved a record back to pending",
)

applications_deleted_total = Counter(
    "onboard_applications_deleted_total",
    "Applicant records removed by an administrator",
)

decisions_total = Counter(
    "onboard_decisions_total",
    "Reviewer decisions applied",
    ["outcome"]  # approved|rejected|revision_required
)

promotions_total = Counter(
    "onboard_promotions_total",
    "Role promotion attempts after approval",
    ["status"]  # promoted|noop|failed
)

storage_failures_total = Counter(
    "onboard_storage_failures_total",
    "Object storage calls that failed or timed out",
    ["operation"]  # put|delete|url
)

retention_purged_total = Counter(
    "onboard_retention_purged_total",
    "Records purged by the retention sweeper",
    ["status"]  # approved|rejected
)

retention_sweep_duration_seconds = Histogram(
    "onboard_retention_sweep_duration_seconds",
    "Wall time of one retention sweep in seconds",
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0]
)
