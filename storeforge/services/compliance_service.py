"""GDPR compliance actions: customer data export and redaction.

Each action is idempotent. Shopify retries any delivery that does not get a
2xx in time, so the same request can arrive several times, possibly while a
previous attempt is still running in a worker.
"""

import asyncio
import base64
import json
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import ValidationError

from storeforge.schemas.compliance import (
    CompliancePayload,
    ComplianceTopic,
    CustomerDataRequestPayload,
    CustomerRedactPayload,
    ShopRedactPayload,
)
from storeforge.services.email_service import EmailService
from storeforge.services.shop_data_store import ShopDataStore, ledger_key

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=CompliancePayload)


class ExportDeliveryError(Exception):
    """A customer data export could not be delivered."""


class ExportInProgressError(Exception):
    """Another attempt holds the claim for this data request.

    Its outcome is unknown until the claim is completed or expires, so the
    caller retries later instead of sending a second export.
    """


def load_payload(model: type[M], payload: dict[str, Any]) -> M:
    """Validate a payload, dropping top-level fields of an unexpected shape."""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        bad = {str(error["loc"][0]) for error in exc.errors() if error["loc"]}
        logger.warning("Ignoring malformed payload fields: %s", ", ".join(sorted(bad)))
        return model.model_validate({k: v for k, v in payload.items() if k not in bad})


def resolve_shop_domain(header_shop: str, payload_shop: str | None) -> str:
    """Prefer the signed header's shop domain, fall back to the payload's."""
    return (header_shop or payload_shop or "").strip().lower()


class ComplianceService:
    """Runs the three compliance actions against the shop data store."""

    def __init__(self, store: ShopDataStore, email: EmailService) -> None:
        self.store = store
        self.email = email

    async def run(
        self, topic: ComplianceTopic, shop_domain: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        """Run the action for ``topic``."""
        actions: dict[
            ComplianceTopic, Callable[[str, dict[str, Any]], Awaitable[dict[str, Any]]]
        ] = {
            ComplianceTopic.CUSTOMERS_DATA_REQUEST: self.provide_customer_data,
            ComplianceTopic.CUSTOMERS_REDACT: self.erase_customer_data,
            ComplianceTopic.SHOP_REDACT: self.erase_shop_data,
        }
        return await actions[topic](shop_domain, payload)

    async def provide_customer_data(
        self, shop_domain: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        """Gather a customer's stored data and send it to the compliance inbox.

        A given data request is exported once. A completed claim makes repeat
        deliveries a no-op. A failed delivery releases the claim so the retry
        can try again. A cancelled attempt may already have reached Resend, so
        its claim stays pending until it expires, and the resend carries the
        same idempotency key.
        """
        topic = ComplianceTopic.CUSTOMERS_DATA_REQUEST
        request = load_payload(CustomerDataRequestPayload, payload)
        shop = resolve_shop_domain(shop_domain, request.shop_domain)
        customer_id = request.customer.id if request.customer else None

        if not shop or customer_id is None:
            logger.info("Data request without shop or customer, nothing to export")
            return {"topic": topic.value, "shop": shop, "status": "skipped"}

        record = await self.store.get_customer(shop, str(customer_id))
        if record is None:
            logger.info("No stored data for customer %s on %s", customer_id, shop)
            return {"topic": topic.value, "shop": shop, "status": "skipped"}

        if request.data_request and request.data_request.id is not None:
            request_key = str(request.data_request.id)
        else:
            request_key = f"customer-{customer_id}"
        key = ledger_key(topic.value, shop, request_key)

        if not await self.store.claim(key):
            if await self.store.claim_state(key) == "done":
                logger.info("Data request %s for %s already handled", request_key, shop)
                return {"topic": topic.value, "shop": shop, "status": "duplicate"}
            raise ExportInProgressError(f"data request {request_key} for {shop} is in progress")

        try:
            export = {
                "shop_domain": shop,
                "customer_id": str(customer_id),
                "customer": record,
                "orders_requested": [str(o) for o in request.orders_requested],
                "generated_at": datetime.now(UTC).isoformat(),
            }
            email_id = await self.email.send_data_export(
                subject=f"Customer data request {request_key} for {shop}",
                text_content=(
                    f"Attached is the data Storeforge holds for customer {customer_id} "
                    f"of {shop}. Forward it to the store owner to fulfil the request."
                ),
                attachment_name=f"data-request-{request_key}.json",
                attachment_content=base64.b64encode(
                    json.dumps(export, indent=2).encode("utf-8")
                ).decode("ascii"),
                tags=[{"name": "category", "value": "gdpr_data_request"}],
                idempotency_key=key,
            )
            if email_id is None:
                raise ExportDeliveryError(f"export for data request {request_key} not delivered")
        except asyncio.CancelledError:
            raise
        except BaseException:
            await self.store.release(key)
            raise

        await self.store.complete(key)
        return {"topic": topic.value, "shop": shop, "status": "exported", "email_id": email_id}

    async def erase_customer_data(
        self, shop_domain: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        """Delete a customer's personal data for one shop."""
        topic = ComplianceTopic.CUSTOMERS_REDACT
        request = load_payload(CustomerRedactPayload, payload)
        shop = resolve_shop_domain(shop_domain, request.shop_domain)
        customer_id = request.customer.id if request.customer else None

        if not shop or customer_id is None:
            logger.info("Customer redact without shop or customer, nothing to erase")
            return {"topic": topic.value, "shop": shop, "status": "skipped"}

        deleted = await self.store.delete_customer(shop, str(customer_id))
        logger.info("Redacted customer %s on %s (%d records)", customer_id, shop, deleted)
        return {"topic": topic.value, "shop": shop, "status": "erased", "deleted": deleted}

    async def erase_shop_data(self, shop_domain: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Delete everything stored for a shop."""
        topic = ComplianceTopic.SHOP_REDACT
        request = load_payload(ShopRedactPayload, payload)
        shop = resolve_shop_domain(shop_domain, request.shop_domain)

        if not shop:
            logger.info("Shop redact without shop domain, nothing to erase")
            return {"topic": topic.value, "shop": shop, "status": "skipped"}

        deleted = await self.store.delete_shop(shop)
        logger.info("Redacted shop %s (%d keys)", shop, deleted)
        return {"topic": topic.value, "shop": shop, "status": "erased", "deleted": deleted}
