"""Celery application configuration for background statement imports."""

import os
from celery import Celery

# Use Redis as broker and backend
redis_url = os.getenv("REDIS_URL", "redis://redis:6379/0")

celery_app = Celery(
    "statement_ingestion",
    broker=redis_url,
    backend=redis_url,
    include=["apps.api.tasks.ingestion_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=600,  # a statement import is seconds, not minutes
    task_acks_late=True,  # imports are idempotent; redeliver on worker loss
    worker_prefetch_multiplier=1,
    result_expires=3600 * 24,
)

celery_app.conf.task_routes = {
    "apps.api.tasks.ingestion_tasks.*": {"queue": "ingestion"},
}

if __name__ == "__main__":
    celery_app.start()
