"""
AWS Signature Version 4 signing for Cloudflare R2.

Every call site that talks to R2 (client uploads, server-side uploads,
downloads, the image proxy, migration) goes through this module, so there
is exactly one implementation of the signing rules.

Two flavours are provided:
- presign(): query-string authentication, produces a URL that authorizes a
  single GET or PUT until it expires. Only the host header is signed and
  the payload is never hashed (UNSIGNED-PAYLOAD).
- sign_request_headers(): Authorization-header authentication for requests
  that cannot be expressed as a presigned URL (server-side copy, delete).

Reference: https://docs.aws.amazon.com/AmazonS3/latest/API/sigv4-query-string-auth.html
"""
import enum
import hashlib
import hmac
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional
from urllib.parse import quote

from wallvault.storage.credentials import SigningCredentials

ALGORITHM = "AWS4-HMAC-SHA256"
KEY_PREFIX = "AWS4"
SCOPE_TERMINATOR = "aws4_request"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"

# SigV4 presigned URLs are valid for at most seven days
MAX_EXPIRES_SECONDS = 7 * 24 * 60 * 60


class PresignOperation(str, enum.Enum):
    """HTTP operation a presigned URL authorizes."""
    PUT = "PUT"
    GET = "GET"


# ============================================================================
# Encoding helpers
# ============================================================================

def uri_encode(value: str, safe: str = "") -> str:
    """
    RFC 3986 percent-encoding as SigV4 expects it.

    Only unreserved characters (A-Z a-z 0-9 - _ . ~) are left as-is,
    plus anything listed in `safe`. Spaces become %20, never '+'.
    """
    return quote(value, safe=safe)


def canonical_uri(object_key: str) -> str:
    """Encode an object key as a request path, keeping '/' separators."""
    return "/" + uri_encode(object_key.lstrip("/"), safe="/")


def canonical_query_string(params: Mapping[str, str]) -> str:
    """Encode and sort query parameters for the canonical request."""
    encoded = sorted(
        (uri_encode(str(name)), uri_encode(str(value)))
        for name, value in params.items()
    )
    return "&".join(f"{name}={value}" for name, value in encoded)


def _canonical_header_value(value: str) -> str:
    # Trim and collapse inner whitespace runs to a single space
    return " ".join(str(value).split())


def format_amz_date(now: datetime) -> str:
    """Format a timestamp as the SigV4 basic ISO8601 form (YYYYMMDDTHHMMSSZ)."""
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y%m%dT%H%M%SZ")


def credential_scope(date_stamp: str, region: str, service: str) -> str:
    return f"{date_stamp}/{region}/{service}/{SCOPE_TERMINATOR}"


def sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _hmac_sha256(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


# ============================================================================
# Signing steps
# ============================================================================

def build_canonical_request(
    method: str,
    object_key: str,
    query_params: Mapping[str, str],
    headers: Mapping[str, str],
    payload_hash: str = UNSIGNED_PAYLOAD,
) -> str:
    """
    Build the SigV4 canonical request.

    The result has seven newline-separated parts: method, encoded path,
    canonical query string, canonical headers block, an empty line,
    the signed header list and the payload hash.

    Args:
        method: HTTP method (GET, PUT, DELETE)
        object_key: Object key inside the bucket
        query_params: Query parameters to sign (X-Amz-Signature excluded)
        headers: Headers to sign, must include host
        payload_hash: Hex SHA-256 of the body, or UNSIGNED-PAYLOAD

    Returns:
        Canonical request string
    """
    normalized = {
        name.lower(): _canonical_header_value(value)
        for name, value in headers.items()
    }
    header_names = sorted(normalized)
    header_block = "\n".join(f"{name}:{normalized[name]}" for name in header_names)

    return "\n".join([
        method.upper(),
        canonical_uri(object_key),
        canonical_query_string(query_params),
        header_block,
        "",
        ";".join(header_names),
        payload_hash,
    ])


def derive_signing_key(secret_access_key: str, date_stamp: str, region: str, service: str) -> bytes:
    """
    Derive the date/region/service scoped signing key.

    kDate    = HMAC("AWS4" + secret, date_stamp)
    kRegion  = HMAC(kDate, region)
    kService = HMAC(kRegion, service)
    kSigning = HMAC(kService, "aws4_request")

    Args:
        secret_access_key: Secret half of the key pair
        date_stamp: Date in YYYYMMDD form
        region: Region name ("auto" for R2)
        service: Service name ("s3")

    Returns:
        Raw 32-byte signing key
    """
    k_date = _hmac_sha256(f"{KEY_PREFIX}{secret_access_key}".encode("utf-8"), date_stamp)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, SCOPE_TERMINATOR)


def build_string_to_sign(amz_date: str, scope: str, canonical_request: str) -> str:
    """Algorithm, timestamp, credential scope and hashed canonical request."""
    return "\n".join([
        ALGORITHM,
        amz_date,
        scope,
        sha256_hex(canonical_request),
    ])


def compute_signature(signing_key: bytes, string_to_sign: str) -> str:
    """Lowercase hex HMAC-SHA256 of the string to sign."""
    return hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


def _sign(credentials: SigningCredentials, amz_date: str, canonical_request: str) -> str:
    date_stamp = amz_date[:8]
    scope = credential_scope(date_stamp, credentials.region, credentials.service)
    signing_key = derive_signing_key(
        credentials.secret_access_key,
        date_stamp,
        credentials.region,
        credentials.service,
    )
    return compute_signature(signing_key, build_string_to_sign(amz_date, scope, canonical_request))


# ============================================================================
# Presigned URLs
# ============================================================================

def presign(
    credentials: SigningCredentials,
    operation: PresignOperation,
    object_key: str,
    *,
    expires_in: int,
    content_disposition: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Generate a presigned URL for a single GET or PUT.

    Query parameters are fixed first and the signature is appended last,
    since it covers all of them.

    Args:
        credentials: Account, key pair and bucket
        operation: PresignOperation.PUT or PresignOperation.GET
        object_key: Object key inside the bucket
        expires_in: Validity in seconds (1..604800), written verbatim to X-Amz-Expires
        content_disposition: Optional response-content-disposition override
        now: Signing time, defaults to the current UTC time

    Returns:
        Presigned URL string

    Raises:
        ValueError: If expires_in is out of range or the operation is unknown
    """
    operation = PresignOperation(operation)
    if not 1 <= int(expires_in) <= MAX_EXPIRES_SECONDS:
        raise ValueError(
            f"expires_in must be between 1 and {MAX_EXPIRES_SECONDS} seconds, got {expires_in}"
        )

    amz_date = format_amz_date(now or datetime.now(timezone.utc))
    scope = credential_scope(amz_date[:8], credentials.region, credentials.service)

    params: Dict[str, str] = {
        "X-Amz-Algorithm": ALGORITHM,
        "X-Amz-Credential": f"{credentials.access_key_id}/{scope}",
        "X-Amz-Date": amz_date,
        "X-Amz-Expires": str(int(expires_in)),
        "X-Amz-SignedHeaders": "host",
    }
    if content_disposition:
        params["response-content-disposition"] = content_disposition

    canonical_request = build_canonical_request(
        operation.value,
        object_key,
        params,
        {"host": credentials.host},
    )
    signature = _sign(credentials, amz_date, canonical_request)

    query = "&".join(f"{uri_encode(name)}={uri_encode(value)}" for name, value in params.items())
    return f"{credentials.endpoint_url}{canonical_uri(object_key)}?{query}&X-Amz-Signature={signature}"


def presign_upload(
    credentials: SigningCredentials,
    object_key: str,
    expires_in: int = 3600,
    now: Optional[datetime] = None,
) -> str:
    """
    Presigned PUT URL for uploading an object.

    Uploads get a long window (an hour by default) so slow clients can finish.
    """
    return presign(credentials, PresignOperation.PUT, object_key, expires_in=expires_in, now=now)


def download_disposition(filename: str) -> str:
    """Content-Disposition value that makes browsers save the file."""
    safe_name = filename.replace('"', "").replace("\\", "")
    return f'attachment; filename="{safe_name}"'


def presign_download(
    credentials: SigningCredentials,
    object_key: str,
    filename: Optional[str] = None,
    expires_in: int = 300,
    now: Optional[datetime] = None,
) -> str:
    """
    Presigned GET URL that downloads the object under a clean filename.

    Download links are short-lived (five minutes by default) to limit
    exposure of a leaked link.

    Args:
        credentials: Account, key pair and bucket
        object_key: Object key inside the bucket
        filename: Name offered to the browser, defaults to the last key segment
        expires_in: Validity in seconds
        now: Signing time override

    Returns:
        Presigned URL string
    """
    if not filename:
        filename = object_key.rsplit("/", 1)[-1] or "wallpaper"
    return presign(
        credentials,
        PresignOperation.GET,
        object_key,
        expires_in=expires_in,
        content_disposition=download_disposition(filename),
        now=now,
    )


def presign_read(
    credentials: SigningCredentials,
    object_key: str,
    expires_in: int = 3600,
    now: Optional[datetime] = None,
) -> str:
    """Presigned GET URL without a disposition override (inline reads)."""
    return presign(credentials, PresignOperation.GET, object_key, expires_in=expires_in, now=now)


# ============================================================================
# Header-based signing
# ============================================================================

def sign_request_headers(
    credentials: SigningCredentials,
    method: str,
    object_key: str,
    extra_headers: Optional[Mapping[str, str]] = None,
    payload_hash: str = UNSIGNED_PAYLOAD,
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    """
    Sign a request with an Authorization header.

    Used for server-side copy (x-amz-copy-source) and DELETE.

    Args:
        credentials: Account, key pair and bucket
        method: HTTP method
        object_key: Object key inside the bucket
        extra_headers: Additional headers to sign (e.g. x-amz-copy-source)
        payload_hash: Hex SHA-256 of the body, or UNSIGNED-PAYLOAD
        now: Signing time override

    Returns:
        Headers to send, including Authorization
    """
    amz_date = format_amz_date(now or datetime.now(timezone.utc))
    headers: Dict[str, str] = {
        "host": credentials.host,
        "x-amz-content-sha256": payload_hash,
        "x-amz-date": amz_date,
    }
    for name, value in (extra_headers or {}).items():
        headers[name.lower()] = value

    canonical_request = build_canonical_request(method, object_key, {}, headers, payload_hash)
    signature = _sign(credentials, amz_date, canonical_request)

    scope = credential_scope(amz_date[:8], credentials.region, credentials.service)
    signed_headers = ";".join(sorted(headers))
    headers["authorization"] = (
        f"{ALGORITHM} Credential={credentials.access_key_id}/{scope}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )
    return headers


def object_url(credentials: SigningCredentials, object_key: str) -> str:
    """Unsigned endpoint URL for an object (used with header signing)."""
    return f"{credentials.endpoint_url}{canonical_uri(object_key)}"
