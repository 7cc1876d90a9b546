"""
Exceptions raised by the R2 storage layer.
"""
from typing import Optional


class StorageError(Exception):
    """Base error for object storage operations."""

    def __init__(self, message: str, status_code: Optional[int] = None, key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.key = key


class StorageConfigError(StorageError):
    """Credentials or bucket name missing. Fatal for the whole invocation."""


class SignatureRejectedError(StorageError):
    """
    Storage provider answered 403 to a signed request.

    Usually a wrong secret or clock skew on the signing host.
    Never retried automatically.
    """


class StorageTimeoutError(StorageError):
    """A storage or source request exceeded the configured timeout."""
