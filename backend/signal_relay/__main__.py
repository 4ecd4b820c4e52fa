"""
PURPOSE: Process entrypoint for the signal relay.

Loads settings (refusing to start without TELEGRAM_BOT_TOKEN) and serves the
FastAPI app with Uvicorn. create_app() configures structured logging. Uvicorn
handles SIGINT/SIGTERM; the app lifespan stops the command poller.

CALLED BY:
    - CLI / Docker: python -m signal_relay
"""

import sys

import uvicorn
from pydantic import ValidationError

from signal_relay.config.settings import get_settings
from signal_relay.main import create_app
from signal_relay.utils.logger import get_logger, setup_logging

logger = get_logger("signal_relay")


def main() -> None:
    """
    PURPOSE: Validate configuration and run the HTTP server until shutdown.

    Exits with status 1 if settings are invalid (e.g. missing bot token).
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        setup_logging()
        logger.critical(
            "settings_invalid",
            message="TELEGRAM_BOT_TOKEN must be defined in the environment or .env",
            errors=[err.get("msg") for err in e.errors()],
        )
        sys.exit(1)

    app = create_app(settings)

    logger.info("server_starting", host=settings.HOST, port=settings.PORT)
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
