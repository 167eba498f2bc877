"""Pydantic schemas for request/response validation."""

from storeforge.schemas.common import HealthResponse
from storeforge.schemas.compliance import (
    ComplianceTopic,
    CustomerDataRequestPayload,
    CustomerRedactPayload,
    ShopRedactPayload,
)

__all__ = [
    "ComplianceTopic",
    "CustomerDataRequestPayload",
    "CustomerRedactPayload",
    "HealthResponse",
    "ShopRedactPayload",
]
