"""
Pydantic schemas for download endpoints.
"""
from pydantic import BaseModel


class DownloadResponse(BaseModel):
    """Short-lived presigned download URL."""
    download_url: str
    expires_in: int
