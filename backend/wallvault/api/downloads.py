"""
Download endpoint.
Returns a short-lived presigned GET URL; downloads by signed-in users are logged.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from wallvault.auth.dependencies import get_optional_user
from wallvault.database import get_db
from wallvault.models.user import User
from wallvault.schemas.downloads import DownloadResponse
from wallvault.services.download_service import DownloadService
from wallvault.services.exceptions import NotFoundError
from wallvault.storage.r2_client import R2Client, get_r2_client

router = APIRouter()


@router.post("/{wallpaper_id}", response_model=DownloadResponse)
async def create_download(
    wallpaper_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
    r2_client: R2Client = Depends(get_r2_client)
):
    """Sign a download URL for a wallpaper (valid for R2_DOWNLOAD_EXPIRATION seconds)."""
    try:
        return await DownloadService.create_download(db, r2_client, wallpaper_id, user=current_user)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
