"""Request context shared by the webhook pipeline stages."""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Annotated, Any

from fastapi import Depends, Request

from storeforge.api.webhooks.capture import CAPTURED_BODY_KEY, CapturedBody
from storeforge.core.deps import get_webhook_verifier
from storeforge.core.logging_config import shop_domain_var
from storeforge.integrations.shopify.webhooks import (
    HMAC_HEADER,
    SHOP_DOMAIN_HEADER,
    TOPIC_HEADER,
    WebhookVerifier,
)

logger = logging.getLogger(__name__)


class WebhookUnauthorized(Exception):
    """Webhook failed signature verification. Answered with a bare 401."""


@dataclass(frozen=True, slots=True)
class WebhookContext:
    """Everything the topic handlers know about one webhook delivery.

    ``raw_body`` is ``None`` only when capture never ran for the request.
    Stages return a new context rather than mutating this one.
    """

    raw_body: bytes | None
    payload: dict[str, Any] = field(default_factory=dict)
    shop_domain: str = ""
    topic: str = ""
    hmac_header: str = field(default="", repr=False)
    verified: bool = False

    @classmethod
    def from_request(cls, request: Request) -> "WebhookContext":
        captured: CapturedBody | None = getattr(request.state, CAPTURED_BODY_KEY, None)
        return cls(
            raw_body=captured.raw if captured else None,
            payload=dict(captured.payload) if captured else {},
            shop_domain=request.headers.get(SHOP_DOMAIN_HEADER, ""),
            topic=request.headers.get(TOPIC_HEADER, ""),
            hmac_header=request.headers.get(HMAC_HEADER, ""),
        )


def verify_context(context: WebhookContext, verifier: WebhookVerifier) -> WebhookContext:
    """Signature stage: return the context marked verified, or raise."""
    result = verifier.verify(context.raw_body, context.hmac_header)
    if not result.valid:
        logger.warning(
            "Webhook verification failed: reason=%s shop=%s topic=%s",
            result.failure.value if result.failure else "unknown",
            context.shop_domain or "-",
            context.topic or "-",
        )
        raise WebhookUnauthorized()
    return dataclasses.replace(context, verified=True)


async def verified_webhook(
    request: Request,
    verifier: Annotated[WebhookVerifier, Depends(get_webhook_verifier)],
) -> WebhookContext:
    """FastAPI dependency running capture lookup and verification in order."""
    context = WebhookContext.from_request(request)
    shop_domain_var.set(context.shop_domain)
    return verify_context(context, verifier)


VerifiedWebhook = Annotated[WebhookContext, Depends(verified_webhook)]
