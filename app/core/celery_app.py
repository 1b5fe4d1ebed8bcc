from celery import Celery
from app.core.config import settings
import sys

# Create Celery app
celery_app = Celery(
    "inventory_procurement",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.workers.celery_tasks.procurement_tasks",
    ]
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    result_expires=3600,
    worker_hijack_root_logger=False,
)

# Windows-specific configuration
if sys.platform == 'win32':
    celery_app.conf.update(
        worker_pool='threads',
        worker_concurrency=4
    )

celery_app.conf.beat_schedule = {
    "run-reorder-cycle": {
        "task": "app.workers.celery_tasks.procurement_tasks.run_reorder_cycle_task",
        "schedule": settings.REORDER_CYCLE_INTERVAL_SECONDS,
    },
    "scan-alerts": {
        "task": "app.workers.celery_tasks.procurement_tasks.scan_alerts_task",
        "schedule": settings.ALERT_SCAN_INTERVAL_SECONDS,
    },
}
