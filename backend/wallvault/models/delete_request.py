"""
DeleteRequest model.
Creators ask for a wallpaper to be removed; an admin approves or rejects.
Approval deletes the R2 object and the wallpaper row.
"""
import enum
from sqlalchemy import Column, String, Enum, DateTime, Boolean, Text

from wallvault.models.base import Base, generate_uuid, utcnow


class DeleteRequestStatus(str, enum.Enum):
    """Moderation state of a delete request."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DeleteRequest(Base):
    """Request to remove a published wallpaper."""

    __tablename__ = "delete_requests"

    id = Column(String, primary_key=True, default=generate_uuid)
    requested_by = Column(String(64), nullable=False)
    wallpaper_id = Column(String, nullable=False, index=True)
    r2_key = Column(String, nullable=True)
    reason = Column(Text, nullable=True)

    status = Column(
        Enum(DeleteRequestStatus),
        nullable=False,
        default=DeleteRequestStatus.PENDING
    )
    # False when the object was already gone from R2
    file_deleted = Column(Boolean, nullable=True)

    reviewed_by = Column(String(64), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<DeleteRequest(id={self.id}, wallpaper={self.wallpaper_id}, status={self.status.value})>"
