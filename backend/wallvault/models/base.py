"""
Declarative base and column helpers shared by the wallvault models.

Timestamps are stored as naive UTC datetimes so PostgreSQL and the SQLite
test database compare them the same way.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def generate_uuid() -> str:
    """Primary key default for every table."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current UTC time without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
