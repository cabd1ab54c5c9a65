"""Celery application and beat schedule.

Start a worker with beat:
    celery -A workers.celery_app worker -B --loglevel=INFO
"""

from celery import Celery
from celery.schedules import crontab
from celery.signals import task_postrun, task_prerun

from config import get_settings
from observability.logging_config import configure_logging
from observability.request_id import request_id_var

settings = get_settings()

celery_app = Celery(
    "onboard",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["retention.tasks"],
)

celery_app.conf.update(
    timezone="UTC",
    enable_utc=True,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    worker_hijack_root_logger=False,
)

celery_app.conf.beat_schedule = {
    'retention-sweep-daily': {
        'task': 'retention.sweep_applicants',
        'schedule': crontab(hour=settings.RETENTION_SWEEP_HOUR_UTC, minute=0),
        'options': {
            'expires': 3600,  # Task expires after 1 hour if not picked up
        },
    },
}

configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)


@task_prerun.connect
def _bind_task_id(task_id=None, task=None, **kwargs):
    # Log lines of a task carry its id as request_id
    task.request.request_id_token = request_id_var.set(task_id)


@task_postrun.connect
def _unbind_task_id(task=None, **kwargs):
    token = getattr(task.request, "request_id_token", None)
    if token is not None:
        request_id_var.reset(token)
