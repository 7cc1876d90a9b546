"""
Moderation of creator uploads and delete requests.

Upload requests move staged -> approved | rejected; delete requests move
pending -> approved | rejected. Any other transition raises ModerationError.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from wallvault.models.base import utcnow
from wallvault.models.delete_request import DeleteRequest, DeleteRequestStatus
from wallvault.models.upload_request import UploadRequest, UploadRequestStatus
from wallvault.models.user import User
from wallvault.models.wallpaper import Wallpaper
from wallvault.services.exceptions import ModerationError, NotFoundError
from wallvault.storage.exceptions import StorageError
from wallvault.storage.keys import approved_key, legacy_key_from_file_path
from wallvault.storage.r2_client import R2Client

logger = logging.getLogger(__name__)


async def _delete_staging_object(r2_client: R2Client, upload_request: UploadRequest) -> None:
    # The request is already decided; a leftover staging object is only logged
    try:
        await r2_client.delete_object(upload_request.staging_key)
    except StorageError as e:
        logger.warning(
            f"Could not delete staging object {upload_request.staging_key} "
            f"for upload request {upload_request.id}: {e}"
        )


class ModerationService:
    """Service for admin moderation actions."""

    @staticmethod
    async def _get_upload_request(db: AsyncSession, request_id: str) -> UploadRequest:
        upload_request = await db.get(UploadRequest, request_id)
        if not upload_request:
            raise NotFoundError(f"Upload request {request_id} not found")
        if upload_request.status != UploadRequestStatus.STAGED:
            raise ModerationError(
                f"Upload request {request_id} is already {upload_request.status.value}"
            )
        return upload_request

    @staticmethod
    async def approve_upload_request(
        db: AsyncSession,
        r2_client: R2Client,
        request_id: str,
        admin: User
    ) -> UploadRequest:
        """
        Publish a staged upload.

        Flow:
        1. Copy staging/<key> to its final wallpapers/ key
        2. Create the wallpaper row
        3. Mark the request approved
        4. Delete the staging object

        Raises:
            NotFoundError: If the request does not exist
            ModerationError: If the request is not staged
            StorageError: If the copy fails (request stays staged)
        """
        upload_request = await ModerationService._get_upload_request(db, request_id)

        final_key = approved_key(upload_request.original_filename)
        await r2_client.copy_object(upload_request.staging_key, final_key)

        public_url = r2_client.public_url(final_key)
        wallpaper = Wallpaper(
            uploaded_by=upload_request.requested_by,
            type=upload_request.type,
            tags=list(upload_request.tags or []),
            url=public_url,
            compressed_url=public_url,
            file_path=final_key,
            r2_key=final_key,
            r2_url=public_url,
        )
        db.add(wallpaper)
        await db.flush()  # Flush to get ID without committing

        upload_request.status = UploadRequestStatus.APPROVED
        upload_request.final_key = final_key
        upload_request.wallpaper_id = wallpaper.id
        upload_request.reviewed_by = admin.id
        upload_request.reviewed_at = utcnow()
        await db.commit()
        await db.refresh(upload_request)

        await _delete_staging_object(r2_client, upload_request)

        logger.info(f"Approved upload request {request_id} as wallpaper {wallpaper.id}")
        return upload_request

    @staticmethod
    async def reject_upload_request(
        db: AsyncSession,
        r2_client: R2Client,
        request_id: str,
        admin: User,
        reason: Optional[str] = None
    ) -> UploadRequest:
        """
        Reject a staged upload and remove its staging object.

        Raises:
            NotFoundError: If the request does not exist
            ModerationError: If the request is not staged
        """
        upload_request = await ModerationService._get_upload_request(db, request_id)

        upload_request.status = UploadRequestStatus.REJECTED
        upload_request.rejection_reason = reason
        upload_request.reviewed_by = admin.id
        upload_request.reviewed_at = utcnow()
        await db.commit()
        await db.refresh(upload_request)

        await _delete_staging_object(r2_client, upload_request)

        logger.info(f"Rejected upload request {request_id}")
        return upload_request

    @staticmethod
    async def _get_delete_request(db: AsyncSession, request_id: str) -> DeleteRequest:
        delete_request = await db.get(DeleteRequest, request_id)
        if not delete_request:
            raise NotFoundError(f"Delete request {request_id} not found")
        if delete_request.status != DeleteRequestStatus.PENDING:
            raise ModerationError(
                f"Delete request {request_id} is already {delete_request.status.value}"
            )
        return delete_request

    @staticmethod
    async def approve_delete_request(
        db: AsyncSession,
        r2_client: R2Client,
        request_id: str,
        admin: User
    ) -> DeleteRequest:
        """
        Remove a wallpaper and its R2 object.

        An object that is already gone (404) does not block the approval;
        file_deleted records whether R2 actually deleted something.

        Raises:
            NotFoundError: If the request does not exist
            ModerationError: If the request is not pending
            StorageError: If R2 fails to delete the object
        """
        delete_request = await ModerationService._get_delete_request(db, request_id)
        wallpaper = await db.get(Wallpaper, delete_request.wallpaper_id)

        object_key = delete_request.r2_key
        if not object_key and wallpaper:
            object_key = wallpaper.r2_key or legacy_key_from_file_path(wallpaper.file_path)

        file_deleted = False
        if object_key:
            file_deleted = await r2_client.delete_object(object_key)

        if wallpaper:
            await db.delete(wallpaper)

        delete_request.status = DeleteRequestStatus.APPROVED
        delete_request.r2_key = object_key
        delete_request.file_deleted = file_deleted
        delete_request.reviewed_by = admin.id
        delete_request.reviewed_at = utcnow()
        await db.commit()
        await db.refresh(delete_request)

        logger.info(
            f"Approved delete request {request_id} for wallpaper {delete_request.wallpaper_id} "
            f"(file_deleted={file_deleted})"
        )
        return delete_request

    @staticmethod
    async def reject_delete_request(
        db: AsyncSession,
        request_id: str,
        admin: User
    ) -> DeleteRequest:
        """Reject a pending delete request; the wallpaper stays published."""
        delete_request = await ModerationService._get_delete_request(db, request_id)

        delete_request.status = DeleteRequestStatus.REJECTED
        delete_request.reviewed_by = admin.id
        delete_request.reviewed_at = utcnow()
        await db.commit()
        await db.refresh(delete_request)

        logger.info(f"Rejected delete request {request_id}")
        return delete_request
