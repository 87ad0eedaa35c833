"""Celery application configuration and beat schedule."""

from celery import Celery
from celery.schedules import crontab

from wdtp.config import get_settings

settings = get_settings()

celery_app = Celery(
    "wdtp",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "wdtp.tasks.maintenance_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    task_track_started=True,
    task_time_limit=600,
    task_soft_time_limit=540,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)

celery_app.conf.beat_schedule = {
    "reconcile-wage-report-counters": {
        "task": "wdtp.tasks.maintenance_tasks.reconcile_wage_report_counters",
        "schedule": crontab(minute=15, hour=4),
    },
    "ensure-cache-versions": {
        "task": "wdtp.tasks.maintenance_tasks.ensure_cache_versions",
        "schedule": crontab(minute=0),
    },
}
