"""Console entry point: serve the webhook app with uvicorn."""

import logging

import uvicorn

from storeforge.core.config import get_settings
from storeforge.core.logging_config import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    setup_logging(debug=settings.debug)
    logger.info("GDPR webhooks listening on :%d", settings.port)
    uvicorn.run(
        "storeforge.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
