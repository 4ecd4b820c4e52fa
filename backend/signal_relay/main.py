"""
PURPOSE: FastAPI application factory and lifecycle management for the signal relay.

Builds the application with:
- The webhook router (POST /webhook) and a /health endpoint
- The relay object graph: config store, Telegram client, broadcaster,
  webhook ingestor, admin gate, command router, command poller
- Exception handlers that never leak internals
- A lifespan that starts the Telegram command poller and stops it on shutdown

Usage:
    python -m signal_relay
    OR
    uvicorn signal_relay.main:create_app --factory --host 0.0.0.0 --port 3000
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from signal_relay.api import api_router
from signal_relay.bot.admin import AdminGate
from signal_relay.bot.commands import CommandRouter
from signal_relay.bot.poller import CommandPoller
from signal_relay.config.relay_config import ConfigStore
from signal_relay.config.settings import Settings, get_settings
from signal_relay.notifications.broadcaster import BroadcastDispatcher, MessageSender
from signal_relay.notifications.telegram import TelegramClient
from signal_relay.schemas import WebhookFailure
from signal_relay import __version__
from signal_relay.utils.logger import get_logger, setup_logging
from signal_relay.webhook.processor import WebhookIngestor

logger = get_logger(__name__)

SERVICE_NAME = "Signal Relay"


# ════════════════════════════════════════════════════════════════
# Lifecycle Events
# ════════════════════════════════════════════════════════════════


async def on_startup(app: FastAPI) -> None:
    """
    PURPOSE: Report configuration problems and start the command poller.

    CALLED BY: FastAPI lifespan startup

    Tasks:
        1. Warn if the relay configuration document is missing
        2. Warn if no admin is configured (commands will all be rejected)
        3. Start CommandPoller as a background task when polling is enabled
    """
    settings: Settings = app.state.settings
    store: ConfigStore = app.state.config_store

    logger.info(
        "application_startup_starting",
        version=app.version,
        config_path=str(store.path),
        admin_count=len(settings.admin_ids),
        raw_debug_enabled=settings.RAW_DEBUG_ENABLED,
    )

    if not store.exists():
        logger.warning(
            "relay_config_missing",
            path=str(store.path),
            message="Seed it from config.example.json; webhooks will fail until it exists.",
        )
    if not settings.admin_ids:
        logger.warning(
            "admin_allow_list_empty",
            message="ADMIN_CHAT_IDS is empty; every command will be rejected.",
        )

    if settings.TELEGRAM_POLLING_ENABLED:
        poller: CommandPoller = app.state.poller
        app.state.poller_task = asyncio.create_task(poller.run())
    else:
        logger.info("command_poller_disabled")

    logger.info("application_startup_complete")


async def on_shutdown(app: FastAPI) -> None:
    """
    PURPOSE: Stop the command poller and wait for it to exit.

    CALLED BY: FastAPI lifespan shutdown
    """
    logger.info("application_shutdown_starting")

    task: Optional[asyncio.Task] = getattr(app.state, "poller_task", None)
    if task is not None:
        app.state.poller.stop()
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        app.state.poller_task = None

    logger.info("application_shutdown_complete")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    PURPOSE: Manage application lifespan with startup and shutdown events.

    CALLED BY: FastAPI during application startup and shutdown
    """
    await on_startup(app)

    yield

    await on_shutdown(app)


# ════════════════════════════════════════════════════════════════
# Exception Handlers
# ════════════════════════════════════════════════════════════════


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    PURPOSE: Handle request validation errors with a consistent JSON body.

    CALLED BY: FastAPI when request validation fails
    """
    logger.warning(
        "request_validation_failed",
        path=request.url.path,
        method=request.method,
        error_count=len(exc.errors())
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"success": False, "error": "Request validation failed"},
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    PURPOSE: Handle unexpected exceptions with logging and a safe error response.

    CALLED BY: FastAPI exception handler middleware
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exception_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=WebhookFailure().model_dump(),
    )


# ════════════════════════════════════════════════════════════════
# FastAPI Application Factory
# ════════════════════════════════════════════════════════════════


def create_app(
    settings: Optional[Settings] = None,
    sender: Optional[MessageSender] = None,
) -> FastAPI:
    """
    PURPOSE: Create the FastAPI application and wire the relay components.

    CALLED BY: __main__, uvicorn --factory, tests

    Also configures structlog from settings.LOG_LEVEL.

    Args:
        settings: Settings to use (defaults to get_settings(), which requires
                  TELEGRAM_BOT_TOKEN in the environment).
        sender:   Outbound message transport override. Defaults to the
                  TelegramClient; tests pass a recording fake.

    Returns:
        FastAPI: Configured application. Components are on app.state.
    """
    settings = settings or get_settings()

    # Must run before the first log call: loggers cache their config on first use
    setup_logging(settings.LOG_LEVEL)
    version = __version__

    app = FastAPI(
        title=SERVICE_NAME,
        description="Relays trading webhook alerts to Telegram channels",
        version=version,
        lifespan=lifespan,
    )

    # ────────────────────────────────────────────────────────────
    # Components
    # ────────────────────────────────────────────────────────────

    telegram = TelegramClient(
        bot_token=settings.TELEGRAM_BOT_TOKEN,
        api_base=settings.TELEGRAM_API_BASE,
        timeout=settings.TELEGRAM_SEND_TIMEOUT,
    )
    outbound: MessageSender = sender or telegram
    store = ConfigStore(settings.CONFIG_PATH)
    dispatcher = BroadcastDispatcher(outbound)
    gate = AdminGate(settings.admin_ids, outbound)
    command_router = CommandRouter(store, gate, outbound)

    app.state.settings = settings
    app.state.config_store = store
    app.state.dispatcher = dispatcher
    app.state.ingestor = WebhookIngestor(
        store,
        dispatcher,
        raw_debug_enabled=settings.RAW_DEBUG_ENABLED,
        raw_preview_limit=settings.RAW_PREVIEW_LIMIT,
    )
    app.state.command_router = command_router
    app.state.poller = CommandPoller(
        telegram, command_router, poll_timeout=settings.TELEGRAM_POLL_TIMEOUT
    )
    app.state.poller_task = None

    # ────────────────────────────────────────────────────────────
    # Routes
    # ────────────────────────────────────────────────────────────

    app.include_router(api_router)

    @app.get("/health", tags=["root"])
    async def health():
        """
        PURPOSE: Availability check for load balancers.

        Returns:
            dict: Service information and version
        """
        return {"status": "ok", "service": SERVICE_NAME, "version": version}

    # ────────────────────────────────────────────────────────────
    # Exception Handlers
    # ────────────────────────────────────────────────────────────

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("fastapi_application_created", title=SERVICE_NAME, version=version)

    return app
