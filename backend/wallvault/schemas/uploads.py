"""
Pydantic schemas for upload endpoints.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from wallvault.models.upload_request import UploadRequestStatus


class PresignUploadRequest(BaseModel):
    """Schema for requesting a presigned client upload URL."""
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., description="MIME type of the file (e.g., image/jpeg)")


class PresignUploadResponse(BaseModel):
    """Presigned PUT URL plus the key the client must report back."""
    upload_url: str
    key: str
    public_url: str
    expires_in: int


class WallpaperResponse(BaseModel):
    """Schema for wallpaper response."""
    id: str
    uploaded_by: Optional[str] = None
    type: Optional[str] = None
    tags: List[str] = []
    url: str
    r2_key: Optional[str] = None
    r2_url: Optional[str] = None
    migrated_at: Optional[datetime] = None
    download_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class UploadRequestResponse(BaseModel):
    """Schema for a moderated upload request."""
    id: str
    requested_by: str
    status: UploadRequestStatus
    type: Optional[str] = None
    tags: List[str] = []
    original_filename: str
    mime_type: str
    bytes: int
    staging_key: str
    final_key: Optional[str] = None
    wallpaper_id: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
