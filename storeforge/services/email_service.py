"""Email delivery service using Resend API."""

import logging
from typing import Any

import httpx

from storeforge.core.config import Settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class EmailService:
    """Sends transactional emails via the Resend API."""

    def __init__(self, settings: Settings) -> None:
        self.api_key = settings.resend_api_key
        self.from_address = settings.compliance_export_from
        self.export_recipient = settings.compliance_export_recipient

    async def send_data_export(
        self,
        subject: str,
        text_content: str,
        attachment_name: str,
        attachment_content: str,
        tags: list[dict[str, str]] | None = None,
        idempotency_key: str | None = None,
    ) -> str | None:
        """Send a customer data export to the compliance inbox.

        ``attachment_content`` must already be base64-encoded. Resend accepts
        one email per ``idempotency_key`` within 24 hours, so a resend of the
        same export after a lost response is dropped by the provider. Returns
        the Resend email ID on success (possibly empty), None on failure.
        """
        payload: dict[str, Any] = {
            "from": self.from_address,
            "to": [self.export_recipient],
            "subject": subject,
            "text": text_content,
            "attachments": [
                {"filename": attachment_name, "content": attachment_content},
            ],
        }
        if tags:
            payload["tags"] = tags

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        if not self.api_key:
            logger.warning("Resend API key not configured; data export not sent")
            return None

        try:
            async with httpx.AsyncClient(timeout=15.0) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers=headers,
                    json=payload,
                )
                if response.is_success:
                    data = response.json()
                    email_id = str(data.get("id") or "")
                    logger.info("Data export sent: subject=%s id=%s", subject, email_id)
                    return email_id
                else:
                    logger.error(
                        "Failed to send data export: status=%s body=%s",
                        response.status_code,
                        response.text[:500],
                    )
                    return None
        except httpx.HTTPError:
            logger.exception("Error sending data export")
            return None
