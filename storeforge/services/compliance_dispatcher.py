"""Decides whether a compliance action runs in the request or in a worker.

``inline``: the action runs inside the request under a time budget. If it
finishes, the webhook is answered after the work is done. If it runs out of
budget it is cancelled and handed to the Celery worker, and the webhook is
answered as soon as the task is on the broker.

``deferred``: every action goes straight to the worker.

Either way a 200 means the work is done or durably queued. The actions are
idempotent. A cancelled data export keeps its claim pending, so the worker
waits for the claim to expire before sending again, and the resend reuses
the Resend idempotency key.
"""

import asyncio
import logging
from typing import Any, Literal

from storeforge.schemas.compliance import ComplianceTopic
from storeforge.services.compliance_service import ComplianceService
from storeforge.workers.tasks.compliance import process_compliance_request

logger = logging.getLogger(__name__)

DispatchMode = Literal["inline", "deferred"]


class ComplianceDispatcher:
    """Runs or enqueues compliance actions according to the configured mode."""

    def __init__(
        self,
        service: ComplianceService,
        *,
        mode: DispatchMode = "inline",
        inline_timeout: float = 4.0,
    ) -> None:
        self.service = service
        self.mode = mode
        self.inline_timeout = inline_timeout

    async def dispatch(
        self, topic: ComplianceTopic, shop_domain: str, payload: dict[str, Any]
    ) -> str:
        """Run or enqueue the action. Returns ``completed`` or ``deferred``."""
        if self.mode == "deferred":
            await self._defer(topic, shop_domain, payload)
            return "deferred"

        try:
            await asyncio.wait_for(
                self.service.run(topic, shop_domain, payload),
                timeout=self.inline_timeout,
            )
        except TimeoutError:
            logger.warning(
                "%s for %s exceeded %.1fs, deferring to worker",
                topic.value,
                shop_domain or "-",
                self.inline_timeout,
            )
            await self._defer(topic, shop_domain, payload)
            return "deferred"
        return "completed"

    async def _defer(
        self, topic: ComplianceTopic, shop_domain: str, payload: dict[str, Any]
    ) -> None:
        # delay() publishes to the broker synchronously
        await asyncio.to_thread(
            process_compliance_request.delay, topic.value, shop_domain, payload
        )
