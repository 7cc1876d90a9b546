"""
Storage module for S3-compatible object storage (Cloudflare R2).

Signing lives in wallvault.storage.sigv4; the HTTP client in
wallvault.storage.r2_client (imported directly to keep config imports acyclic).
"""
from wallvault.storage.credentials import SigningCredentials
from wallvault.storage.exceptions import (
    SignatureRejectedError,
    StorageConfigError,
    StorageError,
    StorageTimeoutError,
)

__all__ = [
    "SigningCredentials",
    "StorageError",
    "StorageConfigError",
    "SignatureRejectedError",
    "StorageTimeoutError",
]
