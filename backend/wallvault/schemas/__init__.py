"""
Pydantic schemas for API request/response validation.
"""
from wallvault.schemas.migration import (
    MigrationBatchRequest,
    MigrationBatchResult,
    MigrationStatus,
)
from wallvault.schemas.uploads import (
    PresignUploadRequest,
    PresignUploadResponse,
    UploadRequestResponse,
    WallpaperResponse,
)
from wallvault.schemas.moderation import (
    DeleteRequestResponse,
    RejectUploadRequest,
)
from wallvault.schemas.downloads import DownloadResponse

__all__ = [
    "MigrationBatchRequest",
    "MigrationBatchResult",
    "MigrationStatus",
    "PresignUploadRequest",
    "PresignUploadResponse",
    "UploadRequestResponse",
    "WallpaperResponse",
    "DeleteRequestResponse",
    "RejectUploadRequest",
    "DownloadResponse",
]
