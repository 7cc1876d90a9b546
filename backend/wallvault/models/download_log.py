"""
DownloadLog model - one row per presigned download issued to a signed-in user.
"""
from sqlalchemy import Column, String, DateTime, Index

from wallvault.models.base import Base, generate_uuid, utcnow


class DownloadLog(Base):
    """Audit trail of wallpaper downloads."""

    __tablename__ = "download_logs"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String(64), nullable=False)
    wallpaper_id = Column(String, nullable=False)
    downloaded_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index('ix_download_logs_user_wallpaper', 'user_id', 'wallpaper_id'),
    )
