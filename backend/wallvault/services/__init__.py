"""
Business logic services.
"""
from wallvault.services.download_service import DownloadService
from wallvault.services.migration_service import MigrationService
from wallvault.services.moderation_service import ModerationService
from wallvault.services.upload_service import UploadService

__all__ = [
    "DownloadService",
    "MigrationService",
    "ModerationService",
    "UploadService",
]
