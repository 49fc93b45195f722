from celery import Celery
from celery.schedules import crontab

from tradewatch.config import settings

celery_app = Celery(
    "tradewatch",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["tradewatch.tasks.sync_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="US/Eastern",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)

celery_app.conf.beat_schedule = {
    "sync-congressional-trades-every-6h": {
        "task": "tradewatch.tasks.sync_tasks.sync_congressional_trades",
        "schedule": crontab(minute=0, hour="*/6"),
    },
    "sync-insider-trades-daily": {
        "task": "tradewatch.tasks.sync_tasks.sync_insider_trades",
        "schedule": crontab(minute=30, hour=6),  # 6:30 AM ET, after overnight Form 4 filings
    },
}

celery_app.autodiscover_tasks(["tradewatch.tasks"])
