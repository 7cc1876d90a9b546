"""
Object key generation for the wallpaper bucket.

Keys are immutable once assigned. Every generator mixes a millisecond
timestamp with a random suffix (plus a content hash where the bytes are
known), so two uploads in the same millisecond get distinct keys even
when their content is identical.

Layout:
    wallpapers/{ms}_{sha256[:12]}_{uuid[:8]}.{ext}     direct uploads
    wallpapers/{ms}_{uuid[:8]}_{name}                 client presigned uploads
    wallpapers/migrated_{ms}_{uuid[:8]}_{name}        migrated from BaaS storage
    staging/{ms}_{sha256[:8]}_{uuid[:8]}_{name}        awaiting moderation
    wallpapers/{ms}_{uuid[:8]}_{name}                 approved from staging
"""
import hashlib
import re
import time
import uuid
from typing import Optional

WALLPAPER_PREFIX = "wallpapers"
STAGING_PREFIX = "staging"

# Mapping of content types to file extensions
CONTENT_TYPE_EXTENSIONS = {
    'image/jpeg': 'jpg',
    'image/jpg': 'jpg',
    'image/png': 'png',
    'image/webp': 'webp',
    'image/gif': 'gif',
    'image/avif': 'avif',
    'image/heic': 'heic',
    'image/heif': 'heif',
    'video/mp4': 'mp4',
    'video/webm': 'webm',
}

ALLOWED_CONTENT_TYPES = frozenset(CONTENT_TYPE_EXTENSIONS)

_UNSAFE_CHARS = re.compile(r'[^a-zA-Z0-9.-]')


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def _random_suffix(length: int = 8) -> str:
    return uuid.uuid4().hex[:length]


def sanitize_filename(filename: str) -> str:
    """Replace everything outside [A-Za-z0-9.-] with '_'."""
    name = filename.rsplit("/", 1)[-1]
    return _UNSAFE_CHARS.sub("_", name) or "file"


def get_extension(filename: Optional[str] = None, content_type: Optional[str] = None) -> str:
    """
    File extension (without dot) for an upload.

    The filename wins when it has an extension, then the content type,
    then 'jpg'.
    """
    if filename and "." in filename.rsplit("/", 1)[-1]:
        return filename.rsplit(".", 1)[-1].lower()
    if content_type:
        return CONTENT_TYPE_EXTENSIONS.get(content_type.lower(), 'jpg')
    return 'jpg'


def wallpaper_key(data: bytes, filename: Optional[str] = None, content_type: Optional[str] = None) -> str:
    """Key for a server-side upload: timestamp, 12 hex chars of the SHA-256, random suffix."""
    short_hash = hashlib.sha256(data).hexdigest()[:12]
    extension = get_extension(filename, content_type)
    return f"{WALLPAPER_PREFIX}/{_timestamp_ms()}_{short_hash}_{_random_suffix()}.{extension}"


def client_upload_key(filename: str) -> str:
    """Key for a presigned client upload, where the bytes are not known yet."""
    return f"{WALLPAPER_PREFIX}/{_timestamp_ms()}_{_random_suffix()}_{sanitize_filename(filename)}"


def migration_key(source_path: Optional[str], record_id: str) -> str:
    """Key for a file migrated from BaaS storage."""
    filename = None
    if source_path:
        filename = source_path.rsplit("/", 1)[-1]
    if not filename:
        filename = f"wallpaper_{record_id}"
    return (
        f"{WALLPAPER_PREFIX}/migrated_{_timestamp_ms()}_{_random_suffix()}_"
        f"{sanitize_filename(filename)}"
    )


def staging_key(data: bytes, filename: str) -> str:
    """Temporary key holding an upload until an admin reviews it."""
    short_hash = hashlib.sha256(data).hexdigest()[:8]
    return (
        f"{STAGING_PREFIX}/{_timestamp_ms()}_{short_hash}_{_random_suffix()}_"
        f"{sanitize_filename(filename)}"
    )


def approved_key(filename: str) -> str:
    """Final key for an upload promoted out of staging."""
    return f"{WALLPAPER_PREFIX}/{_timestamp_ms()}_{_random_suffix()}_{sanitize_filename(filename)}"


def legacy_key_from_file_path(file_path: Optional[str]) -> Optional[str]:
    """
    Guess the R2 key for a record that has a file_path but no r2_key.

    Files copied before keys were recorded kept their basename under
    wallpapers/.
    """
    if not file_path:
        return None
    name = file_path.rsplit("/", 1)[-1]
    if not name:
        return None
    return f"{WALLPAPER_PREFIX}/{name}"
