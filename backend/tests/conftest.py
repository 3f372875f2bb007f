"""
Test configuration and fixtures.
Uses the in-memory document store and fakes for R2, the AI provider and
outbound HTTP, so no external service is needed.
"""
import os

# Set test environment before any imports
os.environ["ENVIRONMENT"] = "test"
os.environ["STORE_BACKEND"] = "memory"
os.environ["AI_API_KEY"] = ""
os.environ["FIREBASE_PROJECT_ID"] = ""
os.environ["MIDTRANS_SERVER_KEY"] = ""
os.environ["MIDTRANS_CLIENT_KEY"] = ""

import pytest
from typing import AsyncGenerator, Callable, Dict, List, Optional, Union

import httpx
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from app.ai.base import ImageGenerationProvider
from app.auth.dependencies import CurrentUser
from app.db import collections
from app.db.memory import InMemoryDocumentStore
from app.models.base import utcnow
from app.models.style import Style
from app.repositories.style_repository import StyleRepository
from app.services.rehost_service import ImageRehoster
from app.storage.image_host import ImageHost


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32
PUBLIC_BASE = "https://img.editaja.test"
TEST_UID = "user-test-uid"
ADMIN_UID = "admin-test-uid"


class FakeR2Client:
    """In-memory stand-in for R2Client."""

    def __init__(self, configured: bool = True, fail_uploads: bool = False):
        self.objects: Dict[str, bytes] = {}
        self.metadata: Dict[str, dict] = {}
        self.deleted: List[str] = []
        self.configured = configured
        self.fail_uploads = fail_uploads

    @property
    def is_configured(self) -> bool:
        return self.configured

    @property
    def public_base(self) -> str:
        return PUBLIC_BASE

    def public_url(self, object_key: str) -> str:
        return f"{PUBLIC_BASE}/{object_key}"

    def key_from_url(self, url: str) -> Optional[str]:
        if not url.startswith(PUBLIC_BASE + "/"):
            return None
        return url[len(PUBLIC_BASE) + 1:]

    def upload_bytes(self, object_key, data, content_type, metadata=None) -> str:
        if self.fail_uploads:
            raise RuntimeError("R2 storage not configured")
        self.objects[object_key] = data
        self.metadata[object_key] = metadata or {}
        return self.public_url(object_key)

    def delete_object(self, object_key: str) -> bool:
        self.deleted.append(object_key)
        return self.objects.pop(object_key, None) is not None

    def delete_prefix(self, prefix: str) -> tuple:
        keys = [key for key in self.objects if key.startswith(prefix)]
        for key in keys:
            self.delete_object(key)
        return (len(keys), 0)


class FakeProvider(ImageGenerationProvider):
    """Returns canned URLs or raises a canned error; records every call."""

    name = "fake"

    def __init__(self, urls: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.urls = urls if urls is not None else ["https://cdn.ai.test/result-0.png"]
        self.error = error
        self.calls: List[Dict[str, Union[bytes, str]]] = []

    async def generate(self, image_bytes: bytes, prompt: str) -> List[str]:
        self.calls.append({"image_bytes": image_bytes, "prompt": prompt})
        if self.error is not None:
            raise self.error
        return list(self.urls)

    async def test_connection(self) -> bool:
        return True

    def is_configured(self) -> bool:
        return True


PRIVATE_HOSTS = {
    "localhost": ["127.0.0.1"],
    "metadata.internal.test": ["169.254.169.254"],
    "intranet.test": ["10.0.0.5", "93.184.216.34"],
}


async def fake_resolve_host(host: str) -> List[str]:
    """Resolves PRIVATE_HOSTS to their addresses and everything else to a public one."""
    return PRIVATE_HOSTS.get(host, ["93.184.216.34"])


def image_download_transport(
    broken: Callable[[str, int], bool] = lambda url, attempt: False
) -> httpx.MockTransport:
    """
    MockTransport serving PNG bytes for any URL.

    `broken(url, attempt)` decides whether the attempt-th request (1-based)
    for that URL fails with a 500.
    """
    attempts: Dict[str, int] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        attempts[url] = attempts.get(url, 0) + 1
        if broken(url, attempts[url]):
            return httpx.Response(500, text="upstream error")
        return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})

    transport = httpx.MockTransport(handler)
    transport.attempts = attempts
    return transport


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Fresh in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def r2() -> FakeR2Client:
    return FakeR2Client()


@pytest.fixture
def image_host(r2: FakeR2Client) -> ImageHost:
    return ImageHost(client=r2)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(urls=[
        "https://cdn.ai.test/result-0.png",
        "https://cdn.ai.test/result-1.png",
    ])


@pytest.fixture
async def rehoster(image_host: ImageHost) -> AsyncGenerator[ImageRehoster, None]:
    async with httpx.AsyncClient(transport=image_download_transport()) as http_client:
        yield ImageRehoster(image_host, http_client=http_client)


@pytest.fixture
async def test_style(store: InMemoryDocumentStore) -> Style:
    """An active style."""
    return await StyleRepository.create(store, Style(
        name="Anime",
        prompt="Turn the photo into an anime illustration",
        image_url=f"{PUBLIC_BASE}/style/anonymous/anime.png",
        category="Art",
    ))


@pytest.fixture
async def funded_user(store: InMemoryDocumentStore) -> str:
    """A user with 25 tokens."""
    now = utcnow()
    await store.set(collections.USER_TOKENS, TEST_UID, {
        "userId": TEST_UID,
        "tokens": 25,
        "createdAt": now,
        "updatedAt": now,
    })
    return TEST_UID


def get_test_app(
    store: InMemoryDocumentStore,
    image_host: ImageHost,
    provider: ImageGenerationProvider,
    rehoster: ImageRehoster,
    user: Optional[CurrentUser]
) -> FastAPI:
    """Create a test FastAPI app with overridden dependencies."""
    from app.main import app
    from app.api.deps import get_host_resolver, get_image_host, get_provider, get_rehoster
    from app.auth.dependencies import get_current_user, get_optional_user
    from app.database import get_store

    app.state.store = store
    app.state.image_host = image_host

    async def override_get_current_user():
        if user is None:
            from fastapi import HTTPException
            raise HTTPException(status_code=401, detail="Missing authentication token")
        return user

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_image_host] = lambda: image_host
    app.dependency_overrides[get_provider] = lambda: provider
    app.dependency_overrides[get_rehoster] = lambda: rehoster
    app.dependency_overrides[get_host_resolver] = lambda: fake_resolve_host
    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_optional_user] = lambda: user

    return app


async def _client_for(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def client(store, image_host, provider, rehoster, funded_user) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client authenticated as a user with 25 tokens."""
    app = get_test_app(store, image_host, provider, rehoster, CurrentUser(uid=funded_user, email="test@example.com"))
    async for ac in _client_for(app):
        yield ac


@pytest.fixture
async def anonymous_client(store, image_host, provider, rehoster) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client without a signed-in user."""
    app = get_test_app(store, image_host, provider, rehoster, None)
    async for ac in _client_for(app):
        yield ac


@pytest.fixture
async def admin_client(store, image_host, provider, rehoster) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client signed in as a user listed in the admins collection."""
    await store.set(collections.ADMINS, ADMIN_UID, {"email": "admin@example.com"})
    app = get_test_app(store, image_host, provider, rehoster, CurrentUser(uid=ADMIN_UID, email="admin@example.com"))
    async for ac in _client_for(app):
        yield ac
