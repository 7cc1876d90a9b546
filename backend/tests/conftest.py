"""
Test configuration and fixtures.
Uses in-memory SQLite (aiosqlite) for the record store and an in-memory
S3-compatible fake (httpx.MockTransport) for R2 and the source storage.
"""
import os
import uuid as uuid_module
from datetime import datetime

# Set test environment before any imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["ENVIRONMENT"] = "test"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-with-at-least-32-bytes!!"
os.environ["CLOUDFLARE_ACCOUNT_ID"] = "testaccount"
os.environ["CLOUDFLARE_R2_ACCESS_KEY_ID"] = "AKIDTESTKEY"
os.environ["CLOUDFLARE_R2_SECRET_ACCESS_KEY"] = "test-secret-access-key"
os.environ["CLOUDFLARE_R2_BUCKET_NAME"] = "wallpapers-test"
os.environ["R2_PUBLIC_BASE_URL"] = "https://pub-test.r2.dev"
os.environ["WORKER_METRICS_PORT"] = "0"

import pytest
import httpx
from typing import AsyncGenerator, Dict, Optional, Set, Tuple
from urllib.parse import unquote

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from wallvault.models.base import Base
from wallvault.models.user import User
from wallvault.models.wallpaper import Wallpaper
from wallvault.storage import sigv4
from wallvault.storage.credentials import SigningCredentials
from wallvault.storage.r2_client import R2Client


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
SOURCE_BASE_URL = "https://baas.example.com/storage/v1/object/public/wallpapers"


# ============================================================================
# Fake storage backends
# ============================================================================

class FakeR2:
    """
    In-memory S3-compatible bucket.

    Every request must carry a valid SigV4 signature (presigned query or
    Authorization header) for the configured credentials, otherwise it
    gets a 403 like R2 would.
    """

    def __init__(self, credentials: SigningCredentials):
        self.credentials = credentials
        self.objects: Dict[str, Tuple[bytes, str]] = {}
        self.requests = []
        self.failing_keys: Set[str] = set()

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def _expected_presigned_signature(self, request: httpx.Request, key: str) -> Optional[str]:
        params = dict(request.url.params)
        params.pop("X-Amz-Signature", None)
        amz_date = params.get("X-Amz-Date", "")
        if not params.get("X-Amz-Credential", "").startswith(f"{self.credentials.access_key_id}/"):
            return None
        canonical_request = sigv4.build_canonical_request(
            request.method, key, params, {"host": request.url.host}
        )
        return sigv4._sign(self.credentials, amz_date, canonical_request)

    def _expected_header_signature(self, request: httpx.Request, key: str) -> Optional[str]:
        authorization = request.headers.get("authorization", "")
        parts = dict(
            part.strip().split("=", 1)
            for part in authorization.replace(sigv4.ALGORITHM, "", 1).split(",")
            if "=" in part
        )
        if not parts.get("Credential", "").startswith(f"{self.credentials.access_key_id}/"):
            return None
        signed = parts.get("SignedHeaders", "").split(";")
        headers = {name: request.headers.get(name, "") for name in signed}
        canonical_request = sigv4.build_canonical_request(
            request.method,
            key,
            {},
            headers,
            request.headers.get("x-amz-content-sha256", sigv4.UNSIGNED_PAYLOAD),
        )
        return sigv4._sign(self.credentials, request.headers.get("x-amz-date", ""), canonical_request)

    def _is_signed(self, request: httpx.Request, key: str) -> bool:
        if "X-Amz-Signature" in request.url.params:
            expected = self._expected_presigned_signature(request, key)
            return expected is not None and expected == request.url.params["X-Amz-Signature"]
        authorization = request.headers.get("authorization", "")
        if "Signature=" in authorization:
            expected = self._expected_header_signature(request, key)
            return expected is not None and authorization.endswith(f"Signature={expected}")
        return False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = request.url.path.lstrip("/")

        if request.url.host != self.credentials.host:
            return httpx.Response(404, text="NoSuchBucket")
        if not self._is_signed(request, key):
            return httpx.Response(403, text="SignatureDoesNotMatch")
        if key in self.failing_keys:
            return httpx.Response(500, text="InternalError")

        if request.method == "PUT":
            copy_source = request.headers.get("x-amz-copy-source")
            if copy_source:
                _, source_key = unquote(copy_source).lstrip("/").split("/", 1)
                if source_key not in self.objects:
                    return httpx.Response(404, text="NoSuchKey")
                self.objects[key] = self.objects[source_key]
                return httpx.Response(200, text="<CopyObjectResult/>")
            content_type = request.headers.get("content-type", "application/octet-stream")
            self.objects[key] = (request.content, content_type)
            return httpx.Response(200)

        if request.method == "GET":
            if key not in self.objects:
                return httpx.Response(404, text="NoSuchKey")
            data, content_type = self.objects[key]
            return httpx.Response(200, content=data, headers={"content-type": content_type})

        if request.method == "DELETE":
            if key not in self.objects:
                return httpx.Response(404, text="NoSuchKey")
            del self.objects[key]
            return httpx.Response(204)

        return httpx.Response(405)


class FakeSourceStorage:
    """Public BaaS storage bucket serving the legacy wallpaper files."""

    def __init__(self):
        self.files: Dict[str, Tuple[bytes, str]] = {}
        self.timeout_urls: Set[str] = set()

    def add(self, name: str, data: bytes, content_type: Optional[str] = "image/jpeg") -> str:
        url = f"{SOURCE_BASE_URL}/{name}"
        self.files[url] = (data, content_type)
        return url

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url in self.timeout_urls:
            raise httpx.ReadTimeout("timed out", request=request)
        if url not in self.files:
            return httpx.Response(404)
        data, content_type = self.files[url]
        headers = {"content-type": content_type} if content_type else {}
        return httpx.Response(200, content=data, headers=headers)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def credentials() -> SigningCredentials:
    return SigningCredentials(
        account_id="testaccount",
        access_key_id="AKIDTESTKEY",
        secret_access_key="test-secret-access-key",
        bucket_name="wallpapers-test",
        public_base_url="https://pub-test.r2.dev",
    )


@pytest.fixture
def fake_r2(credentials: SigningCredentials) -> FakeR2:
    return FakeR2(credentials)


@pytest.fixture
def source_storage() -> FakeSourceStorage:
    return FakeSourceStorage()


@pytest.fixture
async def r2_client(credentials: SigningCredentials, fake_r2: FakeR2) -> AsyncGenerator[R2Client, None]:
    async with httpx.AsyncClient(transport=fake_r2.transport()) as http_client:
        yield R2Client(credentials, http_client=http_client, timeout=5.0)


@pytest.fixture
async def source_client(source_storage: FakeSourceStorage) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=source_storage.transport()) as client:
        yield client


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session

    await engine.dispose()


async def _create_user(db_session: AsyncSession, **flags) -> User:
    user = User(
        id=str(uuid_module.uuid4()),
        email=f"user-{uuid_module.uuid4().hex[:8]}@example.com",
        **flags
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture(scope="function")
async def test_user(db_session: AsyncSession) -> User:
    """Create a regular (non-creator) user."""
    return await _create_user(db_session)


@pytest.fixture(scope="function")
async def creator_user(db_session: AsyncSession) -> User:
    """Create a creator allowed to upload."""
    return await _create_user(db_session, is_creator=True)


@pytest.fixture(scope="function")
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin user."""
    return await _create_user(db_session, is_admin=True)


@pytest.fixture
def make_wallpaper(db_session: AsyncSession, source_storage: FakeSourceStorage):
    """Factory inserting an unmigrated wallpaper whose file lives in source storage."""
    async def _make(
        name: Optional[str] = None,
        data: Optional[bytes] = None,
        in_source: bool = True,
        created_at: Optional[datetime] = None,
    ) -> Wallpaper:
        name = name or f"{uuid_module.uuid4().hex[:8]}.jpg"
        url = f"{SOURCE_BASE_URL}/{name}"
        if in_source:
            url = source_storage.add(name, data or f"image-bytes-{name}".encode())
        wallpaper = Wallpaper(
            url=url,
            compressed_url=url,
            file_path=name,
            type="mobile",
            tags=["nature"],
        )
        if created_at is not None:
            wallpaper.created_at = created_at
        db_session.add(wallpaper)
        await db_session.commit()
        await db_session.refresh(wallpaper)
        return wallpaper

    return _make


def get_test_app(
    db_session: AsyncSession,
    user: Optional[User],
    r2_client: R2Client,
    source_client: httpx.AsyncClient,
) -> FastAPI:
    """Create a test FastAPI app with overridden dependencies."""
    from wallvault.main import app
    from wallvault.database import get_db
    from wallvault.auth.dependencies import get_current_user, get_optional_user
    from wallvault.services.migration_service import get_source_client
    from wallvault.storage.r2_client import get_r2_client

    async def override_get_db():
        yield db_session

    async def override_get_current_user():
        return user

    async def override_get_r2_client():
        yield r2_client

    async def override_get_source_client():
        yield source_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_r2_client] = override_get_r2_client
    app.dependency_overrides[get_source_client] = override_get_source_client
    if user is not None:
        app.dependency_overrides[get_current_user] = override_get_current_user
        app.dependency_overrides[get_optional_user] = override_get_current_user

    return app


async def _client_for(db_session, user, r2_client, source_client) -> AsyncGenerator[AsyncClient, None]:
    app = get_test_app(db_session, user, r2_client, source_client)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    # Clean up overrides
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(db_session, test_user, r2_client, source_client) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client authenticated as a regular user."""
    async for ac in _client_for(db_session, test_user, r2_client, source_client):
        yield ac


@pytest.fixture(scope="function")
async def creator_client(db_session, creator_user, r2_client, source_client) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client authenticated as a creator."""
    async for ac in _client_for(db_session, creator_user, r2_client, source_client):
        yield ac


@pytest.fixture(scope="function")
async def admin_client(db_session, admin_user, r2_client, source_client) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client authenticated as an admin."""
    async for ac in _client_for(db_session, admin_user, r2_client, source_client):
        yield ac


@pytest.fixture(scope="function")
async def anonymous_client(db_session, r2_client, source_client) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client without authentication overrides (real JWT checks)."""
    async for ac in _client_for(db_session, None, r2_client, source_client):
        yield ac
