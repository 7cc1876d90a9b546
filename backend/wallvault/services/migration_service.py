"""
Migration of wallpaper files from BaaS storage into Cloudflare R2.

A batch selects wallpapers that have no R2 key yet, and for each one,
sequentially:
1. Downloads the source file (bounded timeout)
2. Uploads it to R2 through a presigned PUT
3. Records r2_key, r2_url and migrated_at, only if r2_key is still NULL

A failure on one record is collected in the batch's error list and the
batch moves on. Failed records keep a NULL key and are picked up again
by the next batch; there are no retries inside a batch.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import AsyncGenerator, Iterable, List, Optional
from urllib.parse import urlparse

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wallvault.config import Settings, settings
from wallvault.repositories.wallpaper_repository import WallpaperRepository
from wallvault.schemas.migration import MAX_BATCH_SIZE, MigrationBatchResult, MigrationStatus
from wallvault.storage.exceptions import StorageError
from wallvault.storage.keys import migration_key
from wallvault.storage.r2_client import R2Client, create_r2_client
from wallvault.utils.logging import (
    log_migration_batch_completed,
    log_migration_batch_started,
    log_migration_item_failed,
    log_migration_item_migrated,
)
from wallvault.utils.metrics import migration_batches_total, migration_records_total

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_CONTENT_TYPE = "image/jpeg"


class MigrationItemError(Exception):
    """A single record could not be migrated; the message names the record."""


@dataclass(frozen=True)
class _PendingWallpaper:
    # Plain copy of the row, still readable after a session rollback
    id: str
    url: str
    file_path: Optional[str]


class MigrationService:
    """
    Moves wallpapers from BaaS storage into R2.

    The R2 client and the source HTTP client can be injected; when they
    are not, each batch builds its own from settings and closes it.
    """

    def __init__(
        self,
        db: AsyncSession,
        r2_client: Optional[R2Client] = None,
        source_client: Optional[httpx.AsyncClient] = None,
        app_settings: Settings = settings,
    ):
        self.db = db
        self.r2_client = r2_client
        self.source_client = source_client
        self.settings = app_settings
        self.timeout = app_settings.r2_http_timeout_seconds

    async def get_status(self) -> MigrationStatus:
        """Count migrated and remaining wallpapers."""
        total = await WallpaperRepository.count_all(self.db)
        migrated = await WallpaperRepository.count_migrated(self.db)
        return MigrationStatus(total=total, migrated=migrated, remaining=total - migrated)

    async def run_batch(
        self,
        batch_size: Optional[int] = None,
        exclude_ids: Optional[Iterable[str]] = None,
    ) -> MigrationBatchResult:
        """
        Migrate up to batch_size wallpapers that have no R2 key.

        Args:
            batch_size: Records to attempt, 1..100 (default: MIGRATION_BATCH_SIZE)
            exclude_ids: Records to skip, e.g. ones that already failed in this run

        Returns:
            MigrationBatchResult with attempted, migrated and per-record errors

        Raises:
            ValueError: If batch_size is out of range
            StorageConfigError: If R2 credentials are incomplete (no record is touched)
        """
        if batch_size is None:
            batch_size = self.settings.migration_batch_size
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}")

        # Credentials are checked before any record is selected
        r2_client = self.r2_client or create_r2_client(self.settings)
        source_client = self.source_client or httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
        )

        try:
            return await self._run_batch(r2_client, source_client, batch_size, exclude_ids)
        finally:
            if source_client is not self.source_client:
                await source_client.aclose()
            if r2_client is not self.r2_client:
                await r2_client.aclose()

    async def _run_batch(
        self,
        r2_client: R2Client,
        source_client: httpx.AsyncClient,
        batch_size: int,
        exclude_ids: Optional[Iterable[str]] = None,
    ) -> MigrationBatchResult:
        start_time = time.time()
        rows = await WallpaperRepository.select_unmigrated(self.db, batch_size, exclude_ids)
        pending = [_PendingWallpaper(id=w.id, url=w.url, file_path=w.file_path) for w in rows]

        migration_batches_total.inc()
        log_migration_batch_started(logger, batch_size=batch_size, pending=len(pending))

        migrated = 0
        errors: List[str] = []
        failed_ids: List[str] = []

        for wallpaper in pending:
            try:
                await self._migrate_one(r2_client, source_client, wallpaper)
                migrated += 1
                migration_records_total.labels(outcome="migrated").inc()
            except MigrationItemError as e:
                errors.append(str(e))
                failed_ids.append(wallpaper.id)
                migration_records_total.labels(outcome="failed").inc()
                log_migration_item_failed(logger, wallpaper.id, str(e))
            except Exception as e:
                # Unexpected failures still only cost this record
                message = f"Error migrating wallpaper {wallpaper.id}: {e}"
                errors.append(message)
                failed_ids.append(wallpaper.id)
                migration_records_total.labels(outcome="failed").inc()
                log_migration_item_failed(logger, wallpaper.id, str(e), include_traceback=True)

        result = MigrationBatchResult(
            attempted=len(pending),
            migrated=migrated,
            errors=errors,
            failed_ids=failed_ids,
        )
        log_migration_batch_completed(
            logger,
            attempted=result.attempted,
            migrated=result.migrated,
            failed=result.failed,
            duration_ms=(time.time() - start_time) * 1000,
        )
        return result

    async def _migrate_one(
        self,
        r2_client: R2Client,
        source_client: httpx.AsyncClient,
        wallpaper: _PendingWallpaper,
    ) -> str:
        """
        Copy one wallpaper into R2 and record its key.

        Returns:
            The new object key

        Raises:
            MigrationItemError: On download, upload or database failure
        """
        # 1. Download from source storage
        try:
            response = await source_client.get(wallpaper.url, timeout=self.timeout)
        except httpx.TimeoutException:
            raise MigrationItemError(
                f"Failed to download wallpaper {wallpaper.id}: timed out after {self.timeout}s"
            )
        except httpx.HTTPError as e:
            raise MigrationItemError(f"Failed to download wallpaper {wallpaper.id}: {e}")

        if not response.is_success:
            raise MigrationItemError(
                f"Failed to download wallpaper {wallpaper.id}: "
                f"{response.status_code} {response.reason_phrase}"
            )

        data = response.content
        content_type = response.headers.get("content-type") or DEFAULT_SOURCE_CONTENT_TYPE

        # 2. Upload to R2
        source_path = wallpaper.file_path or urlparse(wallpaper.url).path
        object_key = migration_key(source_path, wallpaper.id)
        try:
            await r2_client.put_object(object_key, data, content_type)
        except StorageError as e:
            raise MigrationItemError(f"Failed to upload wallpaper {wallpaper.id} to R2: {e}")

        # 3. Record the new location
        try:
            updated = await WallpaperRepository.mark_migrated(
                self.db,
                wallpaper.id,
                r2_key=object_key,
                r2_url=r2_client.public_url(object_key),
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            await self._discard_upload(r2_client, wallpaper.id, object_key)
            raise MigrationItemError(f"Failed to update database for wallpaper {wallpaper.id}: {e}")

        if not updated:
            await self._discard_upload(r2_client, wallpaper.id, object_key)
            raise MigrationItemError(
                f"Wallpaper {wallpaper.id} already has an R2 key, uploaded {object_key} was not recorded"
            )

        log_migration_item_migrated(logger, wallpaper.id, object_key, size_bytes=len(data))
        return object_key

    @staticmethod
    async def _discard_upload(r2_client: R2Client, wallpaper_id: str, object_key: str) -> None:
        """Remove an uploaded object whose key could not be recorded."""
        try:
            await r2_client.delete_object(object_key)
        except StorageError as e:
            logger.warning(
                f"Could not remove unrecorded object {object_key} for wallpaper {wallpaper_id}: {e}",
                extra={"event": "migration_orphan_left", "wallpaper_id": wallpaper_id, "object_key": object_key},
            )

    async def run_full_migration(
        self,
        batch_size: Optional[int] = None,
        delay_seconds: float = 2.0,
        max_batches: Optional[int] = None,
    ) -> MigrationBatchResult:
        """
        Run batches until every record has been attempted once.

        Records that fail are skipped by the following batches of this run,
        so a block of permanently failing rows cannot hide newer ones. Stops
        when a batch finds nothing new to attempt, or after max_batches.

        Args:
            batch_size: Records per batch
            delay_seconds: Pause between batches
            max_batches: Optional upper bound on batches

        Returns:
            Aggregated MigrationBatchResult over all batches
        """
        total = MigrationBatchResult()
        batches = 0

        while max_batches is None or batches < max_batches:
            result = await self.run_batch(batch_size, exclude_ids=total.failed_ids)
            batches += 1
            total = total.merge(result)

            if result.attempted == 0:
                break
            if max_batches is not None and batches >= max_batches:
                break

            logger.info(f"Batch {batches} done, waiting {delay_seconds}s before the next one")
            await asyncio.sleep(delay_seconds)

        logger.info(
            f"Full migration finished after {batches} batches: "
            f"{total.migrated}/{total.attempted} migrated, {total.failed} errors"
        )
        return total


async def get_source_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    FastAPI dependency yielding the HTTP client used to fetch source files.
    Usage: source_client: httpx.AsyncClient = Depends(get_source_client)
    """
    async with httpx.AsyncClient(
        timeout=settings.r2_http_timeout_seconds,
        follow_redirects=True,
    ) as client:
        yield client
