from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_process_init

from brand_analytics.core.config import settings

celery_app = Celery(
    "brand_analytics",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    # At-least-once delivery: every write in the fact pipeline is idempotent
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)

# Celery Beat schedule
celery_app.conf.beat_schedule = {
    "repair-null-canonical-brands": {
        "task": "repair_null_canonical_brands",
        "schedule": crontab(hour=5, minute=0),  # daily at 05:00
    },
}

# Explicit include (needed for CLI worker startup)
celery_app.conf.include = [
    "brand_analytics.tasks.answer_tasks",
    "brand_analytics.tasks.maintenance_tasks",
]


@worker_process_init.connect
def _init_worker_process(**kwargs) -> None:
    """Logging and error tracking for each forked worker process."""
    from brand_analytics.core.config import validate_settings_for_production
    from brand_analytics.core.logging import setup_logging
    from brand_analytics.core.sentry import init_sentry

    setup_logging()
    validate_settings_for_production()
    init_sentry()
