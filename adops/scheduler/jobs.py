"""Ad Ops Hub - Scheduled Snapshot.

Once a day the campaign log is copied to the snapshot sheet and the cached
dashboard is dropped.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from adops.config import settings
from adops.api.deps import SheetFactory, build_service
from adops.core.cache import CacheBackend
from adops.core.logging import get_logger

logger = get_logger("scheduler")

SNAPSHOT_JOB_ID = "daily_snapshot"

scheduler = AsyncIOScheduler()


async def daily_snapshot_job(backend: CacheBackend) -> None:
    factory = SheetFactory()
    try:
        service = build_service(factory, backend)
        rows = await service.refresh_snapshot(factory.sheet(settings.snapshot_sheet_name))
    except Exception as e:
        logger.error(f"Snapshot job failed: {e}", extra={"sheet": settings.source_sheet_name})
    else:
        logger.info(f"Snapshot job copied {rows} rows", extra={"sheet": settings.snapshot_sheet_name})
    finally:
        await factory.close()


def start_scheduler(backend: CacheBackend) -> None:
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled")
        return

    scheduler.add_job(
        daily_snapshot_job,
        trigger="cron",
        hour=settings.snapshot_hour,
        minute=0,
        args=[backend],
        id=SNAPSHOT_JOB_ID,
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.start()
    logger.info(f"Scheduler running; snapshot daily at {settings.snapshot_hour:02d}:00")


def stop_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
