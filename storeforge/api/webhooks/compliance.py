"""Shopify GDPR compliance webhook handlers.

Each route answers with a bare status code: 200 once the action is done or
queued, 500 if it failed. Signature failures never reach these handlers; the
``VerifiedWebhook`` dependency turns them into a 401 first.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from storeforge.api.webhooks.context import VerifiedWebhook, WebhookContext
from storeforge.core.deps import get_compliance_dispatcher
from storeforge.schemas.compliance import ComplianceTopic
from storeforge.services.compliance_dispatcher import ComplianceDispatcher

logger = logging.getLogger(__name__)

router = APIRouter()

Dispatcher = Annotated[ComplianceDispatcher, Depends(get_compliance_dispatcher)]


async def _handle(
    topic: ComplianceTopic,
    webhook: WebhookContext,
    dispatcher: ComplianceDispatcher,
) -> Response:
    """Run the topic's action and map the outcome to a status code."""
    if webhook.topic and webhook.topic != topic.value:
        logger.warning(
            "Topic header %r does not match route %s, using the route",
            webhook.topic,
            topic.value,
        )

    try:
        outcome = await dispatcher.dispatch(topic, webhook.shop_domain, webhook.payload)
    except Exception:
        logger.exception(
            "Compliance webhook failed: shop=%s topic=%s",
            webhook.shop_domain or "-",
            topic.value,
        )
        return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info("%s %s for %s", topic.value, outcome, webhook.shop_domain or "-")
    return Response(status_code=status.HTTP_200_OK)


@router.post("/customers/data_request")
async def customers_data_request(webhook: VerifiedWebhook, dispatcher: Dispatcher) -> Response:
    """Handle a customer's request for the data stored about them."""
    return await _handle(ComplianceTopic.CUSTOMERS_DATA_REQUEST, webhook, dispatcher)


@router.post("/customers/redact")
async def customers_redact(webhook: VerifiedWebhook, dispatcher: Dispatcher) -> Response:
    """Handle a request to erase a customer's data."""
    return await _handle(ComplianceTopic.CUSTOMERS_REDACT, webhook, dispatcher)


@router.post("/shop/redact")
async def shop_redact(webhook: VerifiedWebhook, dispatcher: Dispatcher) -> Response:
    """Handle a request to erase everything stored for a shop."""
    return await _handle(ComplianceTopic.SHOP_REDACT, webhook, dispatcher)
