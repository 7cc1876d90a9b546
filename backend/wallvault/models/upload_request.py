"""
UploadRequest model for moderated creator uploads.

Lifecycle (explicit status, never inferred from the key prefix):
1. Creator uploads -> file stored under staging/, status="staged"
2. Admin approves -> file copied to wallpapers/, wallpaper row created, status="approved"
3. Admin rejects -> staging file deleted, status="rejected"
"""
import enum
from sqlalchemy import Column, String, Enum, Integer, DateTime, JSON, Text, Index

from wallvault.models.base import Base, generate_uuid, utcnow


class UploadRequestStatus(str, enum.Enum):
    """Moderation state of an upload request."""
    STAGED = "staged"        # File in staging, awaiting review
    APPROVED = "approved"    # Copied to final key, wallpaper created
    REJECTED = "rejected"    # Staging file removed


class UploadRequest(Base):
    """Upload awaiting admin approval."""

    __tablename__ = "upload_requests"

    id = Column(String, primary_key=True, default=generate_uuid)
    requested_by = Column(String(64), nullable=False, index=True)

    status = Column(
        Enum(UploadRequestStatus),
        nullable=False,
        default=UploadRequestStatus.STAGED
    )

    type = Column(String(32), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    original_filename = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    bytes = Column(Integer, nullable=False)

    staging_key = Column(String, nullable=False, unique=True)
    r2_bucket = Column(String, nullable=True)
    final_key = Column(String, nullable=True)
    wallpaper_id = Column(String, nullable=True)

    reviewed_by = Column(String(64), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index('ix_upload_requests_status', 'status'),
    )

    def __repr__(self):
        return f"<UploadRequest(id={self.id}, status={self.status.value})>"
