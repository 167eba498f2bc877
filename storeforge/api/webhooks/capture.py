"""Raw body capture for webhook requests.

Shopify signs the exact bytes it sends, so the body has to be read before
anything gets a chance to parse or re-serialize it. The middleware drains the
ASGI ``receive`` channel once, stores the bytes (and a best-effort JSON parse)
on the request state, then replays the same bytes to the application.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

CAPTURED_BODY_KEY = "webhook_body"


class BodyReadError(Exception):
    """The request body could not be read."""

    status_code = 400


class BodyTooLargeError(BodyReadError):
    """The request body exceeded the configured limit."""

    status_code = 413


@dataclass(frozen=True, slots=True)
class CapturedBody:
    """Exact request bytes plus their best-effort JSON parse."""

    raw: bytes
    payload: dict[str, Any] = field(default_factory=dict)


def parse_payload(raw: bytes) -> dict[str, Any]:
    """Parse a webhook body as a JSON object, falling back to ``{}``."""
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


async def read_body(receive: Receive, max_bytes: int) -> bytes:
    """Drain the ASGI receive channel into memory."""
    chunks: list[bytes] = []
    size = 0
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            raise BodyReadError("client disconnected before the body was complete")
        if message["type"] != "http.request":
            raise BodyReadError(f"unexpected ASGI message {message['type']!r}")

        chunk = message.get("body", b"")
        size += len(chunk)
        if size > max_bytes:
            raise BodyTooLargeError(f"body exceeds {max_bytes} bytes")
        chunks.append(chunk)

        if not message.get("more_body", False):
            return b"".join(chunks)


class RawBodyCaptureMiddleware:
    """Capture the raw body of every POST under ``path_prefix``."""

    def __init__(self, app: ASGIApp, *, path_prefix: str, max_bytes: int) -> None:
        self.app = app
        self.path_prefix = path_prefix
        self.max_bytes = max_bytes

    def _matches(self, scope: Scope) -> bool:
        return (
            scope["type"] == "http"
            and scope["method"] == "POST"
            and scope["path"].startswith(self.path_prefix)
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if not self._matches(scope):
            await self.app(scope, receive, send)
            return

        try:
            raw = await read_body(receive, self.max_bytes)
        except BodyReadError as exc:
            logger.warning(
                "Webhook body read failed: path=%s reason=%s", scope["path"], exc
            )
            await _send_status(send, exc.status_code)
            return

        scope.setdefault("state", {})[CAPTURED_BODY_KEY] = CapturedBody(
            raw=raw, payload=parse_payload(raw)
        )

        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": raw, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)


async def _send_status(send: Send, status_code: int) -> None:
    """Send an empty response with the given status."""
    await send(
        {
            "type": "http.response.start",
            "status": status_code,
            "headers": [(b"content-length", b"0")],
        }
    )
    await send({"type": "http.response.body", "body": b""})
