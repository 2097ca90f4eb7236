"""Process entry point: serve the API with uvicorn on the configured port."""

from __future__ import annotations

import logging

import uvicorn

from logging_config import configure_logging
from settings import get_settings

logger = logging.getLogger(__name__)


def run() -> None:
    settings = get_settings()
    configure_logging()
    logger.info("Server listening on http://%s:%s", settings.host, settings.port)
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
