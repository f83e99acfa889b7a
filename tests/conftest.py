"""Shared test fixtures.

Engine tests run against the in-memory stores and providers; no database or
Redis is needed unless a test opts into the PostgreSQL fixtures.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient

from discovery.auth.jwt import create_access_token, reset_keys
from discovery.config import Settings, get_settings
from discovery.dependencies import get_discovery
from discovery.engine import DiscoveryEngine
from discovery.errors import TransientStoreError
from discovery.providers.memory import MemoryIdentityProvider, MemoryProgressProvider
from discovery.stores.base import Stores
from discovery.stores.memory import build_memory_stores


def _ensure_test_keys() -> None:
    """Generate an RSA key pair for signing test tokens."""
    tmpdir = Path(tempfile.mkdtemp(prefix="discovery_test_keys_"))
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_path = tmpdir / "jwt_private.pem"
    public_path = tmpdir / "jwt_public.pem"
    private_path.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    public_path.write_bytes(
        key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )
    os.environ["DSC_JWT_PRIVATE_KEY_PATH"] = str(private_path)
    os.environ["DSC_JWT_PUBLIC_KEY_PATH"] = str(public_path)
    os.environ["DSC_STORE_BACKEND"] = "memory"
    os.environ["DSC_TRENDING_BACKEND"] = "memory"
    os.environ["DSC_LOG_FORMAT"] = "console"
    get_settings.cache_clear()
    reset_keys()


@pytest.fixture(scope="session", autouse=True)
def test_keys() -> None:
    _ensure_test_keys()


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def progress() -> MemoryProgressProvider:
    return MemoryProgressProvider()


@pytest.fixture
def identity() -> MemoryIdentityProvider:
    return MemoryIdentityProvider()


@pytest.fixture
def stores() -> Stores:
    return build_memory_stores()


@pytest.fixture
def engine(
    stores: Stores,
    progress: MemoryProgressProvider,
    identity: MemoryIdentityProvider,
    settings: Settings,
) -> DiscoveryEngine:
    return DiscoveryEngine.build(stores, progress, settings, identity=identity)


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Build bearer headers for a user id."""

    def _headers(user_id: str, *, is_admin: bool = False) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id, is_admin=is_admin)}"}

    return _headers


@pytest.fixture
def transient_error() -> TransientStoreError:
    return TransientStoreError("test.operation", ConnectionError("connection refused"))


@pytest_asyncio.fixture
async def client(engine: DiscoveryEngine) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app, wired to the in-memory engine."""
    from discovery.main import create_app

    app = create_app()
    app.dependency_overrides[get_discovery] = lambda: engine
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
