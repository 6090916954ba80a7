from celery import Celery
from netaudit.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "netaudit",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "netaudit.tasks.audit",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    beat_schedule={
        "audit-all-sites": {
            "task": "audit.run_all_sites",
            "schedule": settings.audit_interval_seconds,
        },
        "audit-purge": {
            "task": "audit.purge_old_audits",
            "schedule": 86400.0,  # daily
        },
    },
)
