"""
Celery application: broker and result backend from settings.
Periodic subscription sweep lives in exam_portal.workers.tasks.subscriptions.
"""
from celery import Celery
from celery.schedules import crontab

from exam_portal.core.config import settings
from exam_portal.core.logging import configure_logging

configure_logging()

celery_app = Celery(
    "exam_portal",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "exam_portal.workers.tasks.subscriptions",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,
    task_time_limit=600,
    result_expires=86400,
    timezone="UTC",
    worker_hijack_root_logger=False,
    beat_schedule={
        "deactivate-expired-subscriptions": {
            "task": "exam_portal.workers.tasks.subscriptions.deactivate_expired_subscriptions",
            "schedule": crontab(hour=0, minute=0),
        },
    },
)
