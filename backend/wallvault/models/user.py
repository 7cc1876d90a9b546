"""
User profile mirrored from the auth provider.
The id is the subject claim of the provider's access token.
Role flags gate uploads (creators) and moderation (admins).
"""
from sqlalchemy import Column, String, Boolean, DateTime

from wallvault.models.base import Base, utcnow


class User(Base):
    """Marketplace account with creator/admin role flags."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True)  # Auth provider user ID (JWT "sub")
    email = Column(String(255), nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    is_creator = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    @property
    def can_upload(self) -> bool:
        return bool(self.is_creator or self.is_admin)

    def __repr__(self):
        return f"<User(id={self.id}, admin={self.is_admin}, creator={self.is_creator})>"
