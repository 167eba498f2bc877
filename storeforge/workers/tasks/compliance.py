"""Celery task finishing GDPR compliance actions outside the request."""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar

import redis.asyncio as aioredis

from storeforge.core.config import settings
from storeforge.schemas.compliance import ComplianceTopic
from storeforge.services.compliance_service import ComplianceService, ExportInProgressError
from storeforge.services.email_service import EmailService
from storeforge.services.shop_data_store import CLAIM_TTL_SECONDS, ShopDataStore
from storeforge.workers.celery_app import BaseTask, celery_app

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Waits out a pending export claim, which either completes or expires by then
IN_PROGRESS_RETRY_SECONDS = CLAIM_TTL_SECONDS + 60


def _run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine in a fresh event loop.

    Each Celery prefork worker creates a new event loop per task; Redis
    connections are opened and closed inside it.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.compliance.process_compliance_request",
    base=BaseTask,
    bind=True,
)
def process_compliance_request(
    self: BaseTask,
    topic: str,
    shop_domain: str,
    payload: dict[str, Any],
) -> dict[str, Any]:
    """Run one compliance action. Retried with backoff on failure."""
    try:
        return _run_async(
            _process_compliance_request_async(ComplianceTopic(topic), shop_domain, payload)
        )
    except ExportInProgressError as exc:
        logger.info(
            "Export for %s still claimed, retrying in %ds",
            shop_domain or "-",
            IN_PROGRESS_RETRY_SECONDS,
        )
        raise self.retry(exc=exc, countdown=IN_PROGRESS_RETRY_SECONDS) from exc


async def _process_compliance_request_async(
    topic: ComplianceTopic,
    shop_domain: str,
    payload: dict[str, Any],
    redis_client: aioredis.Redis | None = None,
) -> dict[str, Any]:
    """Async implementation; ``redis_client`` is injectable for tests."""
    r = redis_client or aioredis.from_url(str(settings.redis_url), decode_responses=True)
    try:
        service = ComplianceService(
            ShopDataStore(r, ledger_ttl=settings.compliance_ledger_ttl_seconds),
            EmailService(settings),
        )
        result = await service.run(topic, shop_domain, payload)
    finally:
        if redis_client is None:
            await r.aclose()

    logger.info(
        "Compliance task finished: topic=%s shop=%s status=%s",
        topic.value,
        shop_domain or "-",
        result["status"],
    )
    return result
