"""Background workers (Celery) for scheduled jobs."""

from .celery_app import celery_app

__all__ = ["celery_app"]
