"""Structured JSON logging for the webhook service.

Every line carries the request id and, once a webhook's headers have been
read, the shop domain it was sent for. Signature header values are never
put into the log context.
"""

import contextvars
import logging
import uuid

from pythonjsonlogger.json import JsonFormatter

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
shop_domain_var: contextvars.ContextVar[str] = contextvars.ContextVar("shop_domain", default="")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s %(shop_domain)s"


class WebhookContextFilter(logging.Filter):
    """Stamp request_id and shop_domain onto every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        record.shop_domain = shop_domain_var.get()  # type: ignore[attr-defined]
        return True


def setup_logging(*, debug: bool = False) -> None:
    """Send all logs, uvicorn's included, through one JSON handler on the root logger."""
    handler = logging.StreamHandler()
    handler.setFormatter(
        JsonFormatter(
            fmt=LOG_FORMAT,
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        )
    )
    handler.addFilter(WebhookContextFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True


def generate_request_id() -> str:
    return uuid.uuid4().hex[:16]
