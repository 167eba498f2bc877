"""Dependency injection for FastAPI routes."""

from collections.abc import AsyncGenerator
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends, Request

from storeforge.core.config import Settings
from storeforge.integrations.shopify.webhooks import WebhookVerifier
from storeforge.services.compliance_dispatcher import ComplianceDispatcher
from storeforge.services.compliance_service import ComplianceService
from storeforge.services.email_service import EmailService
from storeforge.services.shop_data_store import ShopDataStore


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    settings: Settings = request.app.state.settings
    return settings


def get_webhook_verifier(request: Request) -> WebhookVerifier:
    """Verifier built once at startup from the configured client secret."""
    verifier: WebhookVerifier = request.app.state.webhook_verifier
    return verifier


async def get_redis(request: Request) -> AsyncGenerator[aioredis.Redis, None]:
    """Yield a Redis client from the application's connection pool."""
    pool: aioredis.ConnectionPool = request.app.state.redis_pool
    r = aioredis.Redis(connection_pool=pool)
    try:
        yield r
    finally:
        await r.aclose()


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
RedisDep = Annotated[aioredis.Redis, Depends(get_redis)]


def get_compliance_service(redis: RedisDep, settings: SettingsDep) -> ComplianceService:
    """Compliance actions backed by the request's Redis client."""
    return ComplianceService(
        ShopDataStore(redis, ledger_ttl=settings.compliance_ledger_ttl_seconds),
        EmailService(settings),
    )


def get_compliance_dispatcher(
    service: Annotated[ComplianceService, Depends(get_compliance_service)],
    settings: SettingsDep,
) -> ComplianceDispatcher:
    """Dispatcher applying the configured inline/deferred strategy."""
    return ComplianceDispatcher(
        service,
        mode=settings.compliance_mode,
        inline_timeout=settings.compliance_inline_timeout,
    )


__all__ = [
    "RedisDep",
    "SettingsDep",
    "get_app_settings",
    "get_compliance_dispatcher",
    "get_compliance_service",
    "get_redis",
    "get_webhook_verifier",
]
