"""
Database models package.
"""
from wallvault.models.base import Base
from wallvault.models.user import User
from wallvault.models.wallpaper import Wallpaper
from wallvault.models.upload_request import UploadRequest, UploadRequestStatus
from wallvault.models.delete_request import DeleteRequest, DeleteRequestStatus
from wallvault.models.download_log import DownloadLog

__all__ = [
    "Base",
    "User",
    "Wallpaper",
    "UploadRequest",
    "UploadRequestStatus",
    "DeleteRequest",
    "DeleteRequestStatus",
    "DownloadLog",
]
