"""
Pydantic schemas for moderation endpoints.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from wallvault.models.delete_request import DeleteRequestStatus


class RejectUploadRequest(BaseModel):
    """Schema for rejecting a staged upload."""
    reason: Optional[str] = Field(None, max_length=1000)


class DeleteRequestResponse(BaseModel):
    """Schema for a delete request."""
    id: str
    requested_by: str
    wallpaper_id: str
    r2_key: Optional[str] = None
    reason: Optional[str] = None
    status: DeleteRequestStatus
    file_deleted: Optional[bool] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
