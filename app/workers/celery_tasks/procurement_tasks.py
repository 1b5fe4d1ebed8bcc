"""
Scheduled procurement jobs: the reorder cycle and the alert sweep
"""
import asyncio
import logging
from celery.signals import setup_logging as celery_setup_logging
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from app.core.celery_app import celery_app
from app.core.config import settings
from app.core.database import engine_options
from app.core.logging_config import setup_logging

logger = logging.getLogger("celery")

# Dedicated engine for background tasks
async_engine = create_async_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))

async_session_maker = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

@celery_setup_logging.connect
def configure_worker_logging(**kwargs):
    setup_logging()

def run_async_in_celery(coro):
    """
    Run a coroutine on a fresh event loop.
    Pending tasks are cancelled and the pool is disposed before the loop closes.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        try:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            # Pooled connections belong to this loop
            loop.run_until_complete(async_engine.dispose())
        finally:
            asyncio.set_event_loop(None)
            loop.close()

@celery_app.task(bind=True)
def run_reorder_cycle_task(self, warehouse_id: int = None):
    """Turn low stock into submitted purchase orders"""
    async def _run_cycle():
        async with async_session_maker() as db:
            from app.services.procurement.procurement_orchestrator import ProcurementOrchestrator

            orchestrator = ProcurementOrchestrator(db)
            result = await orchestrator.run_cycle(warehouse_id=warehouse_id)
            return result.model_dump(mode="json")

    try:
        result = run_async_in_celery(_run_cycle())
        logger.info(
            f"✅ Reorder cycle: {len(result['orders_created'])} created, "
            f"{len(result['orders_updated'])} updated, {len(result['failures'])} failed"
        )
        return result
    except Exception as e:
        logger.error(f"❌ Reorder cycle failed: {e}")
        raise

@celery_app.task(bind=True)
def scan_alerts_task(self):
    """Raise and auto-resolve stock and delivery alerts"""
    async def _scan():
        async with async_session_maker() as db:
            from app.services.alerts.alert_service import AlertService

            service = AlertService(db)
            result = await service.scan()
            return result.model_dump()

    try:
        result = run_async_in_celery(_scan())
        logger.info(f"🔔 Alert scan: {result['raised']} raised, {result['resolved']} resolved")
        return result
    except Exception as e:
        logger.error(f"❌ Alert scan failed: {e}")
        raise
