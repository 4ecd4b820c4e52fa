"""
PURPOSE: Long-polling listener that feeds Telegram messages to the CommandRouter.

Runs as a background task for the lifetime of the FastAPI app. Updates are
handled one at a time in arrival order; the offset is advanced past each
update before it is dispatched so a crashing handler cannot wedge the stream.

CALLED BY:
    - main.py — started in the lifespan, cancelled on shutdown
"""

import asyncio
from typing import Any, Dict, Optional

from signal_relay.bot.commands import CommandRouter, parse_command
from signal_relay.core.errors import PollingConflict, TransportFailure
from signal_relay.notifications.telegram import TelegramClient
from signal_relay.utils.logger import get_logger

logger = get_logger("bot.poller")

INITIAL_BACKOFF_SECONDS = 1.0
MAX_BACKOFF_SECONDS = 60.0


class CommandPoller:
    """
    PURPOSE: Poll getUpdates and dispatch slash commands.

    Attributes:
        _client:       Telegram client used for getUpdates.
        _router:       Command router receiving parsed commands.
        _poll_timeout: Long-poll duration in seconds.
        _offset:       Next update id to request.
        _running:      Loop flag cleared by stop().
    """

    def __init__(
        self,
        client: TelegramClient,
        router: CommandRouter,
        poll_timeout: int = 25,
    ) -> None:
        self._client = client
        self._router = router
        self._poll_timeout = poll_timeout
        self._offset: Optional[int] = None
        self._running = False

    @property
    def offset(self) -> Optional[int]:
        return self._offset

    async def handle_update(self, update: Dict[str, Any]) -> None:
        """
        PURPOSE: Advance the offset and dispatch one update if it is a command.

        CALLED BY: poll_once()
        """
        update_id = update.get("update_id")
        if isinstance(update_id, int):
            self._offset = max(self._offset or 0, update_id + 1)

        message = update.get("message") or {}
        text = message.get("text")
        sender = message.get("from") or {}
        chat = message.get("chat") or {}
        if not text or "id" not in sender or "id" not in chat:
            return

        command = parse_command(text, sender_id=str(sender["id"]), chat_id=str(chat["id"]))
        if command is None:
            return

        logger.info(
            "command_received",
            command=command.name,
            sender_id=command.sender_id,
            chat_id=command.chat_id,
        )
        try:
            await self._router.dispatch(command)
        except Exception as e:
            logger.error(
                "command_dispatch_failed",
                command=command.name,
                error=str(e),
                exception_type=type(e).__name__,
            )

    async def poll_once(self) -> int:
        """
        PURPOSE: Fetch one batch of updates and handle each.

        Returns:
            int: Number of updates received.

        Raises:
            TransportFailure: Propagated from getUpdates.
        """
        updates = await self._client.get_updates(offset=self._offset, timeout=self._poll_timeout)
        for update in updates:
            await self.handle_update(update)
        return len(updates)

    async def run(self) -> None:
        """
        PURPOSE: Poll until stopped or cancelled, backing off on transport errors.

        CALLED BY: main.lifespan as an asyncio task
        """
        self._running = True
        backoff = INITIAL_BACKOFF_SECONDS
        logger.info("command_poller_started", poll_timeout=self._poll_timeout)
        try:
            while self._running:
                try:
                    await self.poll_once()
                    backoff = INITIAL_BACKOFF_SECONDS
                except PollingConflict as e:
                    logger.critical(
                        "telegram_polling_conflict",
                        message="Another instance is running with this bot token. Stop it.",
                        error=str(e),
                    )
                    await asyncio.sleep(MAX_BACKOFF_SECONDS)
                except TransportFailure as e:
                    logger.warning(
                        "telegram_polling_failed",
                        error=str(e),
                        status_code=e.status_code,
                        retry_in=backoff,
                    )
                    await asyncio.sleep(backoff)
                    backoff = min(backoff * 2, MAX_BACKOFF_SECONDS)
        finally:
            self._running = False
            logger.info("command_poller_stopped")

    def stop(self) -> None:
        """Ask run() to exit after the current poll."""
        self._running = False
