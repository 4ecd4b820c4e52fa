"""
PURPOSE: Webhook ingestion pipeline for inbound trading alerts.

Takes the raw body of one POST /webhook request and drives it through:
    1. Enabled check (fresh config load). Disabled → acknowledge, send nothing.
    2. Raw-debug broadcast of the body prefix to every channel.
    3. Best-effort JSON decode (MalformedPayload downgrades to raw-only).
    4. Formatted broadcast when the payload names a ticker/symbol/direction.
    5. Acknowledge with the number of configured channels.

Per-channel transport failures never change the outcome. Anything else that
escapes is the route's job: it calls notify_failure() and answers 500.

CALLED BY:
    - api/routes_webhook.py (POST /webhook)
"""

from dataclasses import dataclass
from typing import List, Optional

from signal_relay.config.relay_config import ConfigStore
from signal_relay.core.errors import ConfigError, MalformedPayload
from signal_relay.notifications.broadcaster import BroadcastDispatcher, DeliveryResult
from signal_relay.notifications.telegram import MARKDOWN
from signal_relay.utils.logger import get_logger
from signal_relay.webhook.formatter import (
    format_error_message,
    format_raw_message,
    format_signal,
    has_identifying_fields,
    parse_payload,
)

logger = get_logger(__name__)

DISABLED_MESSAGE = "Bot is disabled"

# How much of the raw body goes into log lines
LOG_BODY_LIMIT = 2000


@dataclass
class WebhookOutcome:
    """
    PURPOSE: Result of handling one webhook request.

    Attributes:
        message:   Human-readable acknowledgement returned to the caller.
        forwarded: False when the relay is disabled and nothing was sent.
        channels:  Channel ids the signal was addressed to.
        raw:       Delivery results of the raw-debug broadcast.
        formatted: Delivery results of the formatted broadcast, if one was sent.
    """

    message: str
    forwarded: bool
    channels: List[str]
    raw: List[DeliveryResult]
    formatted: Optional[List[DeliveryResult]] = None


class WebhookIngestor:
    """
    PURPOSE: Decide what to broadcast for an inbound webhook and broadcast it.

    Attributes:
        _store:             Relay configuration store (read once per request).
        _dispatcher:        Channel fan-out.
        _raw_debug_enabled: Whether the raw body preview is broadcast.
        _raw_preview_limit: Characters of raw body included in the preview.
    """

    def __init__(
        self,
        store: ConfigStore,
        dispatcher: BroadcastDispatcher,
        raw_debug_enabled: bool = True,
        raw_preview_limit: int = 800,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._raw_debug_enabled = raw_debug_enabled
        self._raw_preview_limit = raw_preview_limit

    async def process(self, raw_body: str, content_type: Optional[str] = None) -> WebhookOutcome:
        """
        PURPOSE: Run the ingestion pipeline for one request body.

        Args:
            raw_body:     Request body text, JSON or arbitrary text.
            content_type: Request Content-Type header, for logging only.

        Returns:
            WebhookOutcome: What was sent and the acknowledgement message.

        Raises:
            ConfigUnreadable: If the relay configuration cannot be loaded.
        """
        logger.info(
            "webhook_received",
            content_type=content_type,
            body_length=len(raw_body),
            raw_body=raw_body[:LOG_BODY_LIMIT],
        )

        config = await self._store.read()
        if not config.enabled:
            logger.info("webhook_disabled_skip")
            return WebhookOutcome(
                message=DISABLED_MESSAGE, forwarded=False, channels=[], raw=[]
            )

        channels = list(config.channels)

        raw_results: List[DeliveryResult] = []
        if self._raw_debug_enabled:
            raw_results = await self._dispatcher.broadcast(
                format_raw_message(raw_body, self._raw_preview_limit),
                channels,
                parse_mode=MARKDOWN,
                label="raw",
            )

        formatted_results: Optional[List[DeliveryResult]] = None
        try:
            payload = parse_payload(raw_body)
        except MalformedPayload as e:
            logger.warning("webhook_json_parse_failed", error=str(e))
            payload = {}

        if payload and has_identifying_fields(payload):
            formatted_results = await self._dispatcher.broadcast(
                format_signal(payload),
                channels,
                parse_mode=MARKDOWN,
                label="formatted",
            )
        elif payload:
            logger.info("webhook_no_identifying_fields", keys=sorted(payload.keys())[:20])

        return WebhookOutcome(
            message=f"Signal sent to {len(channels)} channels",
            forwarded=True,
            channels=channels,
            raw=raw_results,
            formatted=formatted_results,
        )

    async def notify_failure(self, error: BaseException) -> None:
        """
        PURPOSE: Best-effort error notice to every configured channel.

        Reloads the configuration; if that fails too the notice is dropped.
        Never raises.

        CALLED BY: POST /webhook route on unexpected exceptions
        """
        try:
            config = await self._store.read()
        except ConfigError as e:
            logger.warning("webhook_error_notice_skipped", error=str(e))
            return

        try:
            await self._dispatcher.broadcast(
                format_error_message(error),
                config.channels,
                parse_mode=MARKDOWN,
                label="error",
            )
        except Exception as e:
            logger.warning("webhook_error_notice_failed", error=str(e))
