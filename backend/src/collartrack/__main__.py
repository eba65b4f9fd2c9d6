"""Run the API server: ``python -m collartrack``."""
import logging

import uvicorn

from collartrack.core.config import get_settings
from collartrack.core.logging_config import configure_logging


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level.upper())
    logging.getLogger("collartrack").info("starting server on %s:%s", settings.host, settings.port)
    uvicorn.run(
        "collartrack.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
