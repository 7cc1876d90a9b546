"""
Upload service for new wallpapers.

Three paths into the bucket, all signed by the shared SigV4 signer:
- presigned client upload: the browser PUTs straight to R2
- direct upload: the API receives the bytes and PUTs them itself
- moderated upload: bytes go to staging/ and wait for an admin
"""
import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from wallvault.models.upload_request import UploadRequest, UploadRequestStatus
from wallvault.models.user import User
from wallvault.models.wallpaper import Wallpaper
from wallvault.schemas.uploads import PresignUploadResponse
from wallvault.services.exceptions import UploadValidationError
from wallvault.storage.keys import (
    ALLOWED_CONTENT_TYPES,
    client_upload_key,
    staging_key,
    wallpaper_key,
)
from wallvault.storage.r2_client import R2Client

logger = logging.getLogger(__name__)


def _validate_upload(content_type: Optional[str], data: Optional[bytes] = None) -> None:
    if not content_type or content_type.lower() not in ALLOWED_CONTENT_TYPES:
        raise UploadValidationError(
            f"Unsupported content type: {content_type}. "
            f"Allowed: {', '.join(sorted(ALLOWED_CONTENT_TYPES))}"
        )
    if data is not None and len(data) == 0:
        raise UploadValidationError("Uploaded file is empty")


class UploadService:
    """Service for getting wallpaper files into R2."""

    @staticmethod
    def presign_client_upload(
        r2_client: R2Client,
        filename: str,
        content_type: str
    ) -> PresignUploadResponse:
        """
        Generate a presigned PUT URL for a browser upload.

        Args:
            r2_client: Configured R2 client
            filename: Original filename (sanitised into the key)
            content_type: MIME type the client will send

        Returns:
            PresignUploadResponse with upload_url, key, public_url, expires_in

        Raises:
            UploadValidationError: If the content type is not an image/video type
        """
        _validate_upload(content_type)

        object_key = client_upload_key(filename)
        expires_in = r2_client.upload_expiration
        upload_url = r2_client.presigned_upload_url(object_key, expires_in=expires_in)

        logger.info(f"Generated presigned upload URL for key {object_key}")
        return PresignUploadResponse(
            upload_url=upload_url,
            key=object_key,
            public_url=r2_client.public_url(object_key),
            expires_in=expires_in,
        )

    @staticmethod
    async def upload_direct(
        db: AsyncSession,
        r2_client: R2Client,
        user: User,
        data: bytes,
        filename: str,
        content_type: str,
        wallpaper_type: Optional[str] = None,
        tags: Optional[List[str]] = None
    ) -> Wallpaper:
        """
        Upload bytes to R2 and publish them as a wallpaper.

        The object is stored before the row is inserted, so a wallpaper
        never points at a missing object.

        Raises:
            UploadValidationError: If the file is empty or of the wrong type
            StorageError: If R2 rejects the upload
        """
        _validate_upload(content_type, data)

        object_key = wallpaper_key(data, filename, content_type)
        await r2_client.put_object(object_key, data, content_type)

        public_url = r2_client.public_url(object_key)
        wallpaper = Wallpaper(
            uploaded_by=user.id,
            type=wallpaper_type,
            tags=tags or [],
            url=public_url,
            compressed_url=public_url,
            file_path=object_key,
            r2_key=object_key,
            r2_url=public_url,
        )
        db.add(wallpaper)
        await db.commit()
        await db.refresh(wallpaper)

        logger.info(f"Uploaded wallpaper {wallpaper.id} to {object_key} ({len(data)} bytes)")
        return wallpaper

    @staticmethod
    async def create_upload_request(
        db: AsyncSession,
        r2_client: R2Client,
        user: User,
        data: bytes,
        filename: str,
        content_type: str,
        wallpaper_type: Optional[str] = None,
        tags: Optional[List[str]] = None
    ) -> UploadRequest:
        """
        Stage an upload for moderation.

        Args:
            db: Database session
            r2_client: Configured R2 client
            user: Requesting creator
            data: File bytes
            filename: Original filename
            content_type: MIME type
            wallpaper_type: Optional category (mobile, desktop, ...)
            tags: Optional tag list

        Returns:
            UploadRequest with status STAGED
        """
        _validate_upload(content_type, data)

        object_key = staging_key(data, filename)
        await r2_client.put_object(object_key, data, content_type)

        upload_request = UploadRequest(
            requested_by=user.id,
            status=UploadRequestStatus.STAGED,
            type=wallpaper_type,
            tags=tags or [],
            original_filename=filename,
            mime_type=content_type,
            bytes=len(data),
            staging_key=object_key,
            r2_bucket=r2_client.bucket,
        )
        db.add(upload_request)
        await db.commit()
        await db.refresh(upload_request)

        logger.info(f"Staged upload request {upload_request.id} at {object_key}")
        return upload_request
