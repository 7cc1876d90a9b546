"""
Cloudflare R2 / S3-compatible storage client.

Talks to R2 over plain HTTPS with httpx, authenticating every request with
the shared SigV4 signer in wallvault.storage.sigv4:
- PUT and GET use presigned URLs (payload is not hashed)
- COPY and DELETE use Authorization-header signing

Why presigned URLs?
- Browsers upload directly to R2 with a URL we hand out
- The bucket stays private; the public domain only serves approved keys
- Download links expire after a few minutes
"""
import logging
import time
from typing import AsyncGenerator, Optional, Tuple

import httpx

from wallvault.config import Settings, settings
from wallvault.storage import sigv4
from wallvault.storage.credentials import SigningCredentials
from wallvault.storage.exceptions import (
    SignatureRejectedError,
    StorageError,
    StorageTimeoutError,
)
from wallvault.utils.logging import log_storage_failure, log_storage_request
from wallvault.utils.metrics import r2_request_duration_seconds, r2_requests_total

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class R2Client:
    """
    Async client for a single R2 bucket.

    Owns the httpx client it creates; an injected client is left open
    for its owner to close.
    """

    def __init__(
        self,
        credentials: SigningCredentials,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        upload_expiration: int = 3600,
        download_expiration: int = 300,
    ):
        self.credentials = credentials
        self.timeout = timeout
        self.upload_expiration = upload_expiration
        self.download_expiration = download_expiration
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> "R2Client":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @property
    def bucket(self) -> str:
        """Get configured bucket name."""
        return self.credentials.bucket_name

    def public_url(self, object_key: str) -> str:
        return self.credentials.public_url(object_key)

    # ------------------------------------------------------------------
    # Presigned URLs (no network I/O)
    # ------------------------------------------------------------------

    def presigned_upload_url(self, object_key: str, expires_in: Optional[int] = None) -> str:
        """
        Generate a presigned PUT URL for direct upload.

        Args:
            object_key: Object key (path in bucket)
            expires_in: URL expiration in seconds (default: upload_expiration)

        Returns:
            Presigned URL string
        """
        return sigv4.presign_upload(
            self.credentials,
            object_key,
            expires_in=expires_in or self.upload_expiration,
        )

    def presigned_download_url(
        self,
        object_key: str,
        filename: Optional[str] = None,
        expires_in: Optional[int] = None,
    ) -> str:
        """
        Generate a short-lived presigned GET URL that forces a download.

        Args:
            object_key: Object key (path in bucket)
            filename: Name offered to the browser (default: last key segment)
            expires_in: URL expiration in seconds (default: download_expiration)

        Returns:
            Presigned URL string
        """
        return sigv4.presign_download(
            self.credentials,
            object_key,
            filename=filename,
            expires_in=expires_in or self.download_expiration,
        )

    # ------------------------------------------------------------------
    # Object operations
    # ------------------------------------------------------------------

    async def put_object(self, object_key: str, data: bytes, content_type: str) -> None:
        """
        Upload bytes to R2 through a presigned PUT URL.

        Raises:
            SignatureRejectedError: If R2 answers 403
            StorageTimeoutError: If the upload exceeds the timeout
            StorageError: For any other non-2xx response or transport error
        """
        url = self.presigned_upload_url(object_key)
        await self._request(
            "put_object",
            "PUT",
            url,
            object_key,
            content=data,
            headers={"Content-Type": content_type or DEFAULT_CONTENT_TYPE},
        )
        logger.debug(f"Uploaded {len(data)} bytes to {object_key}")

    async def get_object(self, object_key: str) -> Tuple[bytes, str]:
        """
        Read an object through a presigned GET URL.

        Returns:
            Tuple of (body bytes, content type)
        """
        url = sigv4.presign_read(self.credentials, object_key, expires_in=self.upload_expiration)
        response = await self._request("get_object", "GET", url, object_key)
        content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        return response.content, content_type

    async def copy_object(self, source_key: str, dest_key: str) -> None:
        """
        Server-side copy inside the bucket (staging -> final location).
        """
        headers = sigv4.sign_request_headers(
            self.credentials,
            "PUT",
            dest_key,
            extra_headers={"x-amz-copy-source": f"/{self.bucket}/{sigv4.uri_encode(source_key, safe='/')}"},
        )
        await self._request(
            "copy_object",
            "PUT",
            sigv4.object_url(self.credentials, dest_key),
            dest_key,
            headers=headers,
        )
        logger.debug(f"Copied {source_key} to {dest_key}")

    async def delete_object(self, object_key: str) -> bool:
        """
        Delete an object from the bucket.

        Returns:
            True if R2 deleted it, False if it was already absent (404)
        """
        headers = sigv4.sign_request_headers(self.credentials, "DELETE", object_key)
        response = await self._request(
            "delete_object",
            "DELETE",
            sigv4.object_url(self.credentials, object_key),
            object_key,
            headers=headers,
            allowed_statuses=(404,),
        )
        if response.status_code == 404:
            logger.debug(f"Object {object_key} not found in R2 (already deleted)")
            return False
        return True

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        object_key: str,
        allowed_statuses: Tuple[int, ...] = (),
        **kwargs,
    ) -> httpx.Response:
        start_time = time.time()
        try:
            response = await self.http_client.request(method, url, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            r2_requests_total.labels(operation=operation, status="timeout").inc()
            log_storage_failure(logger, operation, object_key, error=f"timeout after {self.timeout}s")
            raise StorageTimeoutError(
                f"{operation} timed out after {self.timeout}s for {object_key}",
                key=object_key,
            ) from e
        except httpx.HTTPError as e:
            r2_requests_total.labels(operation=operation, status="error").inc()
            log_storage_failure(logger, operation, object_key, error=str(e))
            raise StorageError(f"{operation} failed for {object_key}: {e}", key=object_key) from e

        duration = time.time() - start_time
        r2_request_duration_seconds.labels(operation=operation).observe(duration)
        r2_requests_total.labels(operation=operation, status=str(response.status_code)).inc()

        if response.is_success or response.status_code in allowed_statuses:
            log_storage_request(
                logger,
                operation,
                object_key,
                status_code=response.status_code,
                duration_ms=duration * 1000,
            )
            return response

        log_storage_failure(
            logger,
            operation,
            object_key,
            error=response.reason_phrase,
            status_code=response.status_code,
        )
        if response.status_code == 403:
            raise SignatureRejectedError(
                f"R2 rejected the signature for {operation} on {object_key} (403)",
                status_code=403,
                key=object_key,
            )
        raise StorageError(
            f"{operation} failed for {object_key}: {response.status_code} {response.reason_phrase}",
            status_code=response.status_code,
            key=object_key,
        )


def create_r2_client(
    app_settings: Settings = settings,
    http_client: Optional[httpx.AsyncClient] = None,
) -> R2Client:
    """
    Build an R2Client from settings.

    Raises:
        StorageConfigError: If R2 credentials are missing
    """
    credentials = app_settings.signing_credentials()
    logger.debug(f"R2 client for {credentials.describe()}")
    return R2Client(
        credentials,
        http_client=http_client,
        timeout=app_settings.r2_http_timeout_seconds,
        upload_expiration=app_settings.r2_upload_expiration,
        download_expiration=app_settings.r2_download_expiration,
    )


async def get_r2_client() -> AsyncGenerator[R2Client, None]:
    """
    FastAPI dependency yielding a configured R2 client.
    Usage: r2: R2Client = Depends(get_r2_client)
    """
    client = create_r2_client()
    try:
        yield client
    finally:
        await client.aclose()
