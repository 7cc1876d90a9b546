"""
Download service: short-lived presigned GET URLs for wallpapers.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from wallvault.models.download_log import DownloadLog
from wallvault.models.user import User
from wallvault.models.wallpaper import Wallpaper
from wallvault.repositories.wallpaper_repository import WallpaperRepository
from wallvault.schemas.downloads import DownloadResponse
from wallvault.services.exceptions import NotFoundError
from wallvault.storage.keys import legacy_key_from_file_path
from wallvault.storage.r2_client import R2Client
from wallvault.utils.metrics import downloads_signed_total

logger = logging.getLogger(__name__)


class DownloadService:
    """Service for signing wallpaper downloads."""

    @staticmethod
    def resolve_object_key(wallpaper: Wallpaper) -> Optional[str]:
        """R2 key of a wallpaper, falling back to wallpapers/<basename of file_path>."""
        return wallpaper.r2_key or legacy_key_from_file_path(wallpaper.file_path)

    @staticmethod
    async def create_download(
        db: AsyncSession,
        r2_client: R2Client,
        wallpaper_id: str,
        user: Optional[User] = None
    ) -> DownloadResponse:
        """
        Sign a download URL for a wallpaper.

        Args:
            db: Database session
            r2_client: Configured R2 client
            wallpaper_id: Wallpaper to download
            user: Signed-in user, if any (downloads are logged per user)

        Returns:
            DownloadResponse with download_url and expires_in

        Raises:
            NotFoundError: If the wallpaper or its R2 object key is unknown
        """
        wallpaper = await WallpaperRepository.get(db, wallpaper_id)
        if not wallpaper:
            raise NotFoundError("Wallpaper not found")

        object_key = DownloadService.resolve_object_key(wallpaper)
        if not object_key:
            raise NotFoundError("File not found in R2 storage")

        expires_in = r2_client.download_expiration
        download_url = r2_client.presigned_download_url(object_key, expires_in=expires_in)
        downloads_signed_total.inc()

        await WallpaperRepository.increment_download_count(db, wallpaper_id)
        if user:
            db.add(DownloadLog(user_id=user.id, wallpaper_id=wallpaper_id))
        await db.commit()

        logger.info(f"Generated download URL for wallpaper {wallpaper_id}, r2_key: {object_key}")
        return DownloadResponse(download_url=download_url, expires_in=expires_in)
