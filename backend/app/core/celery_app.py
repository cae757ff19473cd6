"""Celery application configuration."""

from celery import Celery

from app.core.config import settings

celery_app = Celery(
    "document_desk",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=600,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    beat_schedule={
        "assign-unassigned-paid-files": {
            "task": "assignment.assign_unassigned_paid_files",
            "schedule": float(settings.BACKGROUND_ASSIGNMENT_INTERVAL_SECONDS),
        },
    },
)

celery_app.autodiscover_tasks(["app.modules.assignment"])
