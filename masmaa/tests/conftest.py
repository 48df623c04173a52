"""Shared fixtures for masmaa tests."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import jwt
import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError
from httpx import ASGITransport, AsyncClient

TEST_JWT_SECRET = "test-jwt-secret"  # noqa: S105


class FakeBlobClient:
    """Just enough of BlobClient for download/upload of JSON documents."""

    def __init__(self, container: "FakeContainer", name: str):
        self.container = container
        self.name = name

    def download_blob(self):
        if self.container.fail_reads:
            raise HttpResponseError(message="read failed")
        if self.name not in self.container.blobs:
            raise ResourceNotFoundError("The specified blob does not exist.")
        downloader = MagicMock()
        downloader.readall.return_value = self.container.blobs[self.name]
        return downloader

    def upload_blob(self, data, overwrite=False, content_settings=None):
        if self.container.fail_writes:
            raise HttpResponseError(message="write failed")
        self.container.blobs[self.name] = data.encode() if isinstance(data, str) else data
        self.container.uploads.append(self.name)


class FakeContainer:
    """In-memory stand-in for an Azure ContainerClient."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.uploads: list[str] = []
        self.fail_reads = False
        self.fail_writes = False

    def get_blob_client(self, name: str) -> FakeBlobClient:
        return FakeBlobClient(self, name)

    def list_blobs(self, results_per_page=None):
        return iter(list(self.blobs))

    def seed(self, name: str, data) -> None:
        self.blobs[name] = json.dumps(data).encode()

    def read(self, name: str):
        return json.loads(self.blobs[name])


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset all module-level singletons and caches between tests."""
    yield

    # 1. Settings LRU cache
    from masmaa.config import get_settings

    get_settings.cache_clear()

    # 2. Blob storage singletons
    import masmaa.services.blob_storage as blob_mod
    import masmaa.services.media_storage as media_mod

    blob_mod._container_client = None
    media_mod._service_client = None

    # 3. HTTP client singleton
    import masmaa.services.http_client as http_mod

    http_mod._client = None

    # 4. Health check cache
    import masmaa.main as main_mod

    main_mod._health_cache = None


@pytest.fixture
def mock_settings(monkeypatch):
    """Provide a Settings object with safe test defaults."""
    from masmaa.config import Settings, get_settings

    test_settings = Settings(
        azure_storage_account="teststorage",
        azure_content_container="test-content",
        azure_media_container="test-media",
        media_public_domain="media.masmaa.test",
        managed_identity_client_id="test-client-id",
        auth_jwt_secret=TEST_JWT_SECRET,
        site_url="https://masmaa.test",
        editors_choice_max_slots=6,
        editors_choice_window_days=7,
    )

    get_settings.cache_clear()
    monkeypatch.setattr("masmaa.config.get_settings", lambda: test_settings)

    # Patch get_settings in every module that imports it directly
    # (from masmaa.config import get_settings creates a local binding that
    # the masmaa.config monkeypatch above does not affect)
    for mod_path in [
        "masmaa.services.blob_storage",
        "masmaa.services.media_storage",
        "masmaa.services.editors_choice",
        "masmaa.services.identity",
        "masmaa.routers.blog",
        "masmaa.main",
    ]:
        monkeypatch.setattr(f"{mod_path}.get_settings", lambda: test_settings)

    return test_settings


@pytest.fixture
def content_store(mock_settings, monkeypatch):
    """In-memory content container behind the blob storage service."""
    container = FakeContainer()
    monkeypatch.setattr(
        "masmaa.services.blob_storage._get_container_client", lambda: container
    )
    return container


@pytest.fixture
def media_service(mock_settings, monkeypatch):
    """Mock BlobServiceClient for media; SAS generation returns a fixed token."""
    service = MagicMock()
    monkeypatch.setattr(
        "masmaa.services.media_storage._get_service_client", lambda: service
    )
    monkeypatch.setattr(
        "masmaa.services.media_storage.generate_blob_sas",
        lambda **kwargs: "sv=2024&sig=test",
    )
    return service


def make_token(
    role: str = "admin",
    sub: str = "user-1",
    secret: str = TEST_JWT_SECRET,
    expires_in: int = 3600,
    audience: str = "authenticated",
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": sub,
        "email": f"{sub}@masmaa.test",
        "aud": audience,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
        "app_metadata": {"role": role},
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def admin_headers(mock_settings):
    return {"Authorization": f"Bearer {make_token('admin', sub='admin-1')}"}


@pytest.fixture
def user_headers(mock_settings):
    return {"Authorization": f"Bearer {make_token('user', sub='reader-1')}"}


@pytest.fixture
async def client(mock_settings):
    """HTTP client bound to the ASGI app."""
    from masmaa.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as http_client:
        yield http_client


@pytest.fixture
def token_factory(mock_settings):
    """Build signed bearer tokens with custom claims."""
    return make_token
