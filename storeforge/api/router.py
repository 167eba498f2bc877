"""API router combining all route modules."""

from fastapi import APIRouter

from storeforge.api import health
from storeforge.api.webhooks import compliance

api_router = APIRouter()

# Health probes (no prefix)
api_router.include_router(health.router)

# Shopify GDPR webhooks (no auth - verified via HMAC)
api_router.include_router(
    compliance.router,
    prefix="/webhooks",
    tags=["webhooks"],
)
