"""Pydantic schemas for Shopify GDPR compliance webhook payloads.

Every field is optional: Shopify's test deliveries and retries may carry an
empty object, and the handlers must still succeed on those.
"""

import enum

from pydantic import ConfigDict

from storeforge.schemas.common import BaseSchema


class ComplianceTopic(str, enum.Enum):
    """The three mandatory GDPR webhook topics."""

    CUSTOMERS_DATA_REQUEST = "customers/data_request"
    CUSTOMERS_REDACT = "customers/redact"
    SHOP_REDACT = "shop/redact"


class CompliancePayload(BaseSchema):
    """Fields shared by all compliance payloads."""

    model_config = ConfigDict(extra="ignore")

    shop_id: int | str | None = None
    shop_domain: str | None = None


class CustomerRef(BaseSchema):
    """The customer a request is about."""

    model_config = ConfigDict(extra="ignore")

    id: int | str | None = None
    email: str | None = None
    phone: str | None = None


class DataRequestRef(BaseSchema):
    """Shopify's identifier for one data request."""

    model_config = ConfigDict(extra="ignore")

    id: int | str | None = None


class CustomerDataRequestPayload(CompliancePayload):
    """Body of ``customers/data_request``."""

    customer: CustomerRef | None = None
    orders_requested: list[int | str] = []
    data_request: DataRequestRef | None = None


class CustomerRedactPayload(CompliancePayload):
    """Body of ``customers/redact``."""

    customer: CustomerRef | None = None
    orders_to_redact: list[int | str] = []


class ShopRedactPayload(CompliancePayload):
    """Body of ``shop/redact``."""
