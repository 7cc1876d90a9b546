"""
Upload endpoints.

1. POST /uploads/presign  - presigned PUT URL, the browser uploads straight to R2
2. POST /uploads/direct   - API receives the file and publishes it immediately
3. POST /uploads/requests - file is staged for admin review

Security:
- All endpoints require a creator or admin account
- Presigned upload URLs expire after R2_UPLOAD_EXPIRATION seconds
- Presigned URLs are returned to the caller but never logged
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from wallvault.auth.dependencies import require_creator
from wallvault.database import get_db
from wallvault.models.user import User
from wallvault.schemas.uploads import (
    PresignUploadRequest,
    PresignUploadResponse,
    UploadRequestResponse,
    WallpaperResponse,
)
from wallvault.services.exceptions import UploadValidationError
from wallvault.services.upload_service import UploadService
from wallvault.storage.r2_client import R2Client, get_r2_client

router = APIRouter()


def _parse_tags(tags: Optional[str]) -> List[str]:
    """Comma-separated form field -> list of trimmed, non-empty tags."""
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",") if tag.strip()]


@router.post("/presign", response_model=PresignUploadResponse)
async def presign_upload(
    request: PresignUploadRequest,
    current_user: User = Depends(require_creator),
    r2_client: R2Client = Depends(get_r2_client)
):
    """
    Generate a presigned URL for direct upload to R2.

    Client then PUTs the file to upload_url with the same Content-Type
    and stores `key` on the wallpaper it creates.
    """
    try:
        return UploadService.presign_client_upload(
            r2_client,
            filename=request.filename,
            content_type=request.content_type,
        )
    except UploadValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/direct", response_model=WallpaperResponse, status_code=status.HTTP_201_CREATED)
async def upload_direct(
    file: UploadFile = File(...),
    type: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_creator),
    r2_client: R2Client = Depends(get_r2_client)
):
    """Upload a wallpaper file through the API and publish it."""
    data = await file.read()
    try:
        return await UploadService.upload_direct(
            db,
            r2_client,
            current_user,
            data=data,
            filename=file.filename or "wallpaper",
            content_type=file.content_type,
            wallpaper_type=type,
            tags=_parse_tags(tags),
        )
    except UploadValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/requests", response_model=UploadRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_upload_request(
    file: UploadFile = File(...),
    type: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_creator),
    r2_client: R2Client = Depends(get_r2_client)
):
    """Stage a wallpaper for moderation."""
    data = await file.read()
    try:
        return await UploadService.create_upload_request(
            db,
            r2_client,
            current_user,
            data=data,
            filename=file.filename or "wallpaper",
            content_type=file.content_type,
            wallpaper_type=type,
            tags=_parse_tags(tags),
        )
    except UploadValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
