"""
Repository for wallpaper queries used by migration and downloads.
"""
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wallvault.models.base import utcnow
from wallvault.models.wallpaper import Wallpaper


class WallpaperRepository:
    """Repository for wallpaper database operations."""

    @staticmethod
    async def get(db: AsyncSession, wallpaper_id: str) -> Optional[Wallpaper]:
        return await db.get(Wallpaper, wallpaper_id)

    @staticmethod
    async def select_unmigrated(
        db: AsyncSession,
        limit: int,
        exclude_ids: Optional[Iterable[str]] = None
    ) -> List[Wallpaper]:
        """
        Wallpapers that have no R2 key yet, oldest first.

        Args:
            db: Database session
            limit: Maximum number of rows
            exclude_ids: Ids to skip (records that already failed in this run)

        Returns:
            List of Wallpaper instances with r2_key NULL
        """
        query = select(Wallpaper).where(Wallpaper.r2_key.is_(None))
        excluded = list(exclude_ids or ())
        if excluded:
            query = query.where(Wallpaper.id.not_in(excluded))

        result = await db.execute(
            query.order_by(Wallpaper.created_at, Wallpaper.id).limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def mark_migrated(
        db: AsyncSession,
        wallpaper_id: str,
        r2_key: str,
        r2_url: str,
        migrated_at: Optional[datetime] = None
    ) -> bool:
        """
        Record the R2 location of a migrated wallpaper.

        The update only applies while r2_key is still NULL, so a key that
        was already recorded is never overwritten.

        Returns:
            True if the row was updated, False if it already had a key
            (or no longer exists)
        """
        result = await db.execute(
            update(Wallpaper)
            .where(Wallpaper.id == wallpaper_id, Wallpaper.r2_key.is_(None))
            .values(
                r2_key=r2_key,
                r2_url=r2_url,
                migrated_at=migrated_at or utcnow()
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount == 1

    @staticmethod
    async def count_all(db: AsyncSession) -> int:
        result = await db.execute(select(func.count(Wallpaper.id)))
        return result.scalar_one()

    @staticmethod
    async def count_migrated(db: AsyncSession) -> int:
        result = await db.execute(
            select(func.count(Wallpaper.id)).where(Wallpaper.r2_key.is_not(None))
        )
        return result.scalar_one()

    @staticmethod
    async def increment_download_count(db: AsyncSession, wallpaper_id: str) -> None:
        await db.execute(
            update(Wallpaper)
            .where(Wallpaper.id == wallpaper_id)
            .values(download_count=Wallpaper.download_count + 1)
            .execution_options(synchronize_session=False)
        )
