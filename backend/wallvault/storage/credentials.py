"""
Signing credentials for Cloudflare R2.

Built once per invocation (see Settings.signing_credentials) and passed
explicitly to the signer and the R2 client, so signing can be tested
without touching the process environment.
"""
from dataclasses import dataclass, field
from typing import Optional


def _mask(value: str, visible: int = 4) -> str:
    if len(value) <= visible:
        return "*" * len(value)
    return value[:visible] + "*" * (len(value) - visible)


@dataclass(frozen=True)
class SigningCredentials:
    """
    R2 account, key pair and bucket.

    Attributes:
        account_id: Cloudflare account ID (part of the endpoint host)
        access_key_id: R2 access key ID
        secret_access_key: R2 secret access key
        bucket_name: Destination bucket
        region: SigV4 region, R2 accepts "auto"
        storage_host: Storage domain, r2.cloudflarestorage.com for R2
        public_base_url: Optional public alias (https://pub-<id>.r2.dev)
        endpoint_host: Overrides the virtual-hosted host when set
    """
    account_id: str
    access_key_id: str = field(repr=False)
    secret_access_key: str = field(repr=False)
    bucket_name: str
    region: str = "auto"
    storage_host: str = "r2.cloudflarestorage.com"
    public_base_url: Optional[str] = None
    endpoint_host: Optional[str] = None
    service: str = "s3"

    @property
    def host(self) -> str:
        """Virtual-hosted bucket host: <bucket>.<account>.<storage-host>."""
        if self.endpoint_host:
            return self.endpoint_host
        return f"{self.bucket_name}.{self.account_id}.{self.storage_host}"

    @property
    def endpoint_url(self) -> str:
        return f"https://{self.host}"

    def public_url(self, key: str) -> str:
        """
        URL for anonymous reads of an uploaded object.

        Falls back to the (private) bucket endpoint when no public
        domain is configured.
        """
        base = self.public_base_url or self.endpoint_url
        return f"{base.rstrip('/')}/{key}"

    def describe(self) -> str:
        """Log-safe description of these credentials."""
        return (
            f"bucket={self.bucket_name} account={_mask(self.account_id)} "
            f"access_key={_mask(self.access_key_id)}"
        )
