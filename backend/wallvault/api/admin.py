"""
Admin endpoints for the R2 migration and moderation.
All routes require an admin account.
"""
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wallvault.auth.dependencies import require_admin
from wallvault.database import get_db
from wallvault.models.upload_request import UploadRequest, UploadRequestStatus
from wallvault.models.user import User
from wallvault.schemas.migration import MigrationBatchRequest, MigrationBatchResult, MigrationStatus
from wallvault.schemas.moderation import DeleteRequestResponse, RejectUploadRequest
from wallvault.schemas.uploads import UploadRequestResponse
from wallvault.services.exceptions import ModerationError, NotFoundError
from wallvault.services.migration_service import MigrationService, get_source_client
from wallvault.services.moderation_service import ModerationService
from wallvault.storage.r2_client import R2Client, get_r2_client

router = APIRouter()


def _translate(error: Exception) -> HTTPException:
    """Map service errors to HTTP errors."""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))


# ============================================================================
# Migration
# ============================================================================

@router.post("/migration/batch", response_model=MigrationBatchResult)
async def run_migration_batch(
    request: MigrationBatchRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    r2_client: R2Client = Depends(get_r2_client),
    source_client: httpx.AsyncClient = Depends(get_source_client)
):
    """
    Migrate one batch of wallpapers from BaaS storage to R2.

    Per-record failures are returned in `errors`; the records stay
    unmigrated and are retried by the next batch.
    """
    service = MigrationService(db, r2_client=r2_client, source_client=source_client)
    return await service.run_batch(request.batch_size)


@router.post("/migration/enqueue", status_code=status.HTTP_202_ACCEPTED)
async def enqueue_migration(
    request: MigrationBatchRequest,
    current_user: User = Depends(require_admin)
):
    """Run the full migration in the background, one Celery task per batch."""
    from wallvault.tasks.migrate_to_r2 import migrate_to_r2_batch

    task = migrate_to_r2_batch.delay(batch_size=request.batch_size, continue_until_done=True)
    return {"message": "Migration started", "task_id": task.id}


@router.get("/migration/status", response_model=MigrationStatus)
async def migration_status(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Migrated vs remaining wallpapers."""
    return await MigrationService(db).get_status()


# ============================================================================
# Upload requests
# ============================================================================

@router.get("/upload-requests", response_model=List[UploadRequestResponse])
async def list_upload_requests(
    status_filter: Optional[UploadRequestStatus] = UploadRequestStatus.STAGED,
    limit: int = 50,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """List upload requests, staged ones by default."""
    query = select(UploadRequest).order_by(UploadRequest.created_at).limit(min(limit, 200))
    if status_filter:
        query = query.where(UploadRequest.status == status_filter)
    result = await db.execute(query)
    return result.scalars().all()


@router.post("/upload-requests/{request_id}/approve", response_model=UploadRequestResponse)
async def approve_upload_request(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    r2_client: R2Client = Depends(get_r2_client)
):
    """Publish a staged upload as a wallpaper."""
    try:
        return await ModerationService.approve_upload_request(db, r2_client, request_id, current_user)
    except (NotFoundError, ModerationError) as e:
        raise _translate(e)


@router.post("/upload-requests/{request_id}/reject", response_model=UploadRequestResponse)
async def reject_upload_request(
    request_id: str,
    request: Optional[RejectUploadRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    r2_client: R2Client = Depends(get_r2_client)
):
    """Reject a staged upload and delete its staging object."""
    reason = request.reason if request else None
    try:
        return await ModerationService.reject_upload_request(
            db, r2_client, request_id, current_user, reason=reason
        )
    except (NotFoundError, ModerationError) as e:
        raise _translate(e)


# ============================================================================
# Delete requests
# ============================================================================

@router.post("/delete-requests/{request_id}/approve", response_model=DeleteRequestResponse)
async def approve_delete_request(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    r2_client: R2Client = Depends(get_r2_client)
):
    """Delete the wallpaper and its R2 object."""
    try:
        return await ModerationService.approve_delete_request(db, r2_client, request_id, current_user)
    except (NotFoundError, ModerationError) as e:
        raise _translate(e)


@router.post("/delete-requests/{request_id}/reject", response_model=DeleteRequestResponse)
async def reject_delete_request(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Keep the wallpaper and close the request."""
    try:
        return await ModerationService.reject_delete_request(db, request_id, current_user)
    except (NotFoundError, ModerationError) as e:
        raise _translate(e)
