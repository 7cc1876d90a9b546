"""
Celery task for migrating wallpapers from BaaS storage into R2.

Each task run migrates one batch. With continue_until_done the task
re-enqueues itself after MIGRATION_BATCH_DELAY_SECONDS for as long as
batches find records to attempt. Ids that failed earlier in the chain are
passed along and skipped, so failing rows cannot block the rest.
"""
import asyncio
import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from wallvault.config import settings
from wallvault.database import _build_async_url
from wallvault.schemas.migration import MigrationBatchResult
from wallvault.services.migration_service import MigrationService
from wallvault.storage.exceptions import StorageConfigError
from wallvault.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


async def _run_batch_async(batch_size: int, exclude_ids: List[str]) -> MigrationBatchResult:
    """Run one batch with an engine bound to this event loop."""
    # Create engine and sessionmaker within the current event loop
    # to avoid sharing connections across asyncio.run calls
    engine = create_async_engine(_build_async_url(settings.database_url), pool_pre_ping=True)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_factory() as db:
            return await MigrationService(db).run_batch(batch_size, exclude_ids=exclude_ids)
    finally:
        await engine.dispose()


@celery_app.task(name="migrate_to_r2_batch", bind=True)
def migrate_to_r2_batch(
    self,
    batch_size: Optional[int] = None,
    continue_until_done: bool = False,
    failed_ids: Optional[List[str]] = None,
) -> dict:
    """
    Migrate one batch of wallpapers to R2.

    Args:
        batch_size: Records per batch (default: MIGRATION_BATCH_SIZE)
        continue_until_done: Re-enqueue while batches find records to attempt
        failed_ids: Ids that already failed earlier in this chain

    Returns:
        Dict with attempted, migrated, errors and whether another batch was queued
    """
    batch_size = batch_size or settings.migration_batch_size
    failed_ids = list(failed_ids or [])

    try:
        result = asyncio.run(_run_batch_async(batch_size, failed_ids))
    except StorageConfigError as e:
        # Nothing will succeed until the configuration is fixed
        logger.error(f"R2 migration stopped: {e}", extra={"event": "migration_config_error"})
        return {"attempted": 0, "migrated": 0, "errors": [str(e)], "next_batch_queued": False}

    next_batch_queued = False
    if continue_until_done and result.attempted > 0:
        self.apply_async(
            kwargs={
                "batch_size": batch_size,
                "continue_until_done": True,
                "failed_ids": failed_ids + result.failed_ids,
            },
            countdown=settings.migration_batch_delay_seconds,
        )
        next_batch_queued = True
        logger.info(
            f"Queued next migration batch in {settings.migration_batch_delay_seconds}s",
            extra={"event": "migration_batch_queued"}
        )

    return {**result.model_dump(), "next_batch_queued": next_batch_queued}
