"""Pytest configuration and fixtures for the Storeforge webhook test suite.

Provides:
- Test settings with a known Shopify client secret
- Mock Redis (fakeredis) wired into the app's Redis dependency
- An app + async client built from the test settings
- Webhook signing helpers
- Mocks for the Celery compliance task and the Resend email call
"""

import base64
import hashlib
import hmac
from collections.abc import AsyncGenerator, Callable, Generator
from unittest.mock import AsyncMock, MagicMock, patch

import fakeredis
import fakeredis.aioredis
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from storeforge.core.config import Settings
from storeforge.core.deps import get_redis
from storeforge.main import create_app
from storeforge.services.shop_data_store import ShopDataStore

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
SHOPIFY_TEST_CLIENT_SECRET = "test-shopify-client-secret"
SHOPIFY_TEST_SHOP = "test-store.myshopify.com"
LEDGER_TTL = 3600


def sign(body: bytes, secret: str = SHOPIFY_TEST_CLIENT_SECRET) -> str:
    """Compute a Shopify webhook signature independently of the app code."""
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Build Settings isolated from the environment's .env file."""

    def _build(**overrides: object) -> Settings:
        values: dict[str, object] = {
            "shopify_client_secret": SHOPIFY_TEST_CLIENT_SECRET,
            "redis_url": "redis://localhost:6379/15",
            "resend_api_key": "re_test_key",
            "compliance_mode": "inline",
            "compliance_inline_timeout": 2.0,
            "compliance_ledger_ttl_seconds": LEDGER_TTL,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)  # type: ignore[arg-type, call-arg]

    return _build


@pytest.fixture
def test_settings(settings_factory: Callable[..., Settings]) -> Settings:
    """Default test settings."""
    return settings_factory()


# ---------------------------------------------------------------------------
# Fake Redis
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_redis() -> fakeredis.aioredis.FakeRedis:
    """Provide a fakeredis instance with its own empty server per test."""
    return fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def shop_store(fake_redis: fakeredis.aioredis.FakeRedis) -> ShopDataStore:
    """Shop data store over the fake Redis."""
    return ShopDataStore(fake_redis, ledger_ttl=LEDGER_TTL)


# ---------------------------------------------------------------------------
# App + client
# ---------------------------------------------------------------------------


@pytest.fixture
def app_factory(
    fake_redis: fakeredis.aioredis.FakeRedis,
) -> Callable[[Settings], FastAPI]:
    """Create an app from the given settings with Redis overridden."""

    async def _override_redis() -> AsyncGenerator[fakeredis.aioredis.FakeRedis, None]:
        yield fake_redis

    def _create(settings: Settings) -> FastAPI:
        application = create_app(settings)
        application.dependency_overrides[get_redis] = _override_redis
        return application

    return _create


@pytest.fixture
def app(app_factory: Callable[[Settings], FastAPI], test_settings: Settings) -> FastAPI:
    """Application built from the default test settings."""
    return app_factory(test_settings)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async test client for the default test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Webhook helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def shopify_webhook_headers() -> Callable[..., dict[str, str]]:
    """Generate complete Shopify webhook headers for a given body.

    Usage:
        body = b'{"shop_id": 1}'
        headers = shopify_webhook_headers(body, topic="shop/redact")
        response = await client.post("/webhooks/shop/redact", content=body, headers=headers)
    """

    def _headers(
        body: bytes,
        topic: str = "",
        shop: str = SHOPIFY_TEST_SHOP,
    ) -> dict[str, str]:
        headers = {
            "X-Shopify-Hmac-Sha256": sign(body),
            "X-Shopify-Shop-Domain": shop,
            "Content-Type": "application/json",
        }
        if topic:
            headers["X-Shopify-Topic"] = topic
        return headers

    return _headers


# ---------------------------------------------------------------------------
# External collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_compliance_task() -> Generator[MagicMock, None, None]:
    """Mock the Celery compliance task so nothing reaches a broker."""
    with patch("storeforge.services.compliance_dispatcher.process_compliance_request") as task:
        yield task


@pytest.fixture
def mock_send_export() -> Generator[AsyncMock, None, None]:
    """Mock the Resend call used for data exports."""
    with patch(
        "storeforge.services.email_service.EmailService.send_data_export",
        new_callable=AsyncMock,
        return_value="email_123",
    ) as send:
        yield send


@pytest.fixture
def sample_data_request() -> dict[str, object]:
    """A customers/data_request payload as Shopify sends it."""
    return {
        "shop_id": 954889,
        "shop_domain": SHOPIFY_TEST_SHOP,
        "orders_requested": [299938, 280263],
        "customer": {"id": 191167, "email": "john@example.com", "phone": "555-625-1199"},
        "data_request": {"id": 9999},
    }


@pytest.fixture
def sample_customer_redact() -> dict[str, object]:
    """A customers/redact payload as Shopify sends it."""
    return {
        "shop_id": 954889,
        "shop_domain": SHOPIFY_TEST_SHOP,
        "customer": {"id": 191167, "email": "john@example.com", "phone": "555-625-1199"},
        "orders_to_redact": [299938],
    }
