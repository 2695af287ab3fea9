"""Celery application with a periodic task to clean up deleted accounts."""

from celery import Celery

from .config import settings


celery_app = Celery(
    "wireline",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["wireline.tasks"],
)

celery_app.conf.beat_schedule = {
    "cleanup-scheduled-users": {
        "task": "wireline.tasks.cleanup_scheduled_users",
        "schedule": settings.cleanup_frequency,
    }
}
celery_app.conf.timezone = "UTC"
