"""Health check endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status
from redis.exceptions import RedisError

from storeforge.core.deps import RedisDep
from storeforge.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health/live")
async def liveness_check() -> HealthResponse:
    """
    Liveness probe for Kubernetes/container orchestration.

    Simple check that the service is running.
    """
    return HealthResponse(status="alive")


@router.get("/health/ready")
async def readiness_check(redis: RedisDep) -> HealthResponse:
    """
    Readiness probe for Kubernetes/container orchestration.

    Redis holds the shop data and the task queue; without it webhooks can
    only fail.
    """
    try:
        await redis.ping()
    except RedisError as e:
        logger.warning("Readiness check failed: redis unreachable (%s)", e)
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Redis unavailable") from e

    return HealthResponse(status="ready")
