"""
Wallpaper model.

Stores metadata about wallpaper files. The bytes live in object storage:
legacy rows point at BaaS storage through `url`/`file_path`, migrated and
new rows carry an R2 key.

Migration lifecycle:
1. Row inserted without r2_key -> eligible for migration
2. Migration batch copies the file to R2 -> r2_key, r2_url, migrated_at set
3. r2_key is never overwritten once set
"""
from sqlalchemy import Column, String, Integer, DateTime, JSON, Index

from wallvault.models.base import Base, generate_uuid, utcnow


class Wallpaper(Base):
    """
    Wallpaper metadata model.

    Attributes:
        id: Unique identifier (UUID)
        uploaded_by: Creator user ID
        type: Image category (e.g., mobile, desktop)
        tags: List of tag strings
        url: Source URL (BaaS storage for legacy rows, public R2 URL otherwise)
        compressed_url: Preview URL
        file_path: Original storage path
        r2_key: Object key in the R2 bucket (null until migrated)
        r2_url: URL of the object in R2
        migrated_at: When the migration batch copied the file
        download_count: Downloads served through presigned URLs
    """
    __tablename__ = "wallpapers"

    id = Column(String, primary_key=True, default=generate_uuid)
    uploaded_by = Column(String(64), nullable=True, index=True)
    type = Column(String(32), nullable=True)
    tags = Column(JSON, nullable=False, default=list)

    url = Column(String, nullable=False)
    compressed_url = Column(String, nullable=True)
    file_path = Column(String, nullable=True)

    # Destination in R2 - the migration invariant hangs on this being null
    r2_key = Column(String, nullable=True, unique=True)
    r2_url = Column(String, nullable=True)
    migrated_at = Column(DateTime, nullable=True)

    download_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        # Migration batches scan oldest-first
        Index('ix_wallpapers_created_at', 'created_at'),
    )

    @property
    def is_migrated(self) -> bool:
        return self.r2_key is not None

    def __repr__(self):
        return f"<Wallpaper(id={self.id}, r2_key={self.r2_key})>"
