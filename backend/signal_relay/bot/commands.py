"""
PURPOSE: Admin bot commands that control the relay.

Five commands, each behind the AdminGate:
    /on                       — enable forwarding
    /off                      — pause forwarding
    /addchannel <channel_id>  — add a destination (no-op if present)
    /removechannel <id>       — remove a destination (no-op if absent)
    /list                     — show status and destinations

Mutations run inside ConfigStore.transaction(); /list is a plain read.
Every recognized command produces a reply: success, usage hint, rejection
(sent by the gate) or configuration error.

CALLED BY:
    - bot/poller.py — CommandPoller for each parsed update
"""

from typing import Awaitable, Callable, Dict, Optional

from signal_relay.bot.admin import AdminGate
from signal_relay.bot.types import IncomingCommand, Reply
from signal_relay.config.relay_config import ConfigStore
from signal_relay.core.errors import ConfigError, MissingArgument, TransportFailure
from signal_relay.notifications.broadcaster import MessageSender
from signal_relay.notifications.telegram import MARKDOWN
from signal_relay.utils.logger import get_logger

logger = get_logger("bot.commands")


def parse_command(text: str, sender_id: str, chat_id: str) -> Optional[IncomingCommand]:
    """
    PURPOSE: Parse a chat message into an IncomingCommand.

    "/addchannel@RelayBot -100123 extra" → name "addchannel", args ["-100123", "extra"].

    Args:
        text:      Message text.
        sender_id: Sending user id.
        chat_id:   Chat the message arrived in.

    Returns:
        Optional[IncomingCommand]: None if the text is not a slash command.
    """
    parts = (text or "").split()
    if not parts or not parts[0].startswith("/") or len(parts[0]) < 2:
        return None
    name = parts[0][1:].split("@", 1)[0].lower()
    if not name:
        return None
    return IncomingCommand(
        name=name,
        sender_id=str(sender_id),
        chat_id=str(chat_id),
        args=parts[1:],
        text=text,
    )


def _require_channel_arg(command: IncomingCommand) -> str:
    """Return the first argument or raise MissingArgument with the command's usage."""
    if not command.args or not command.args[0].strip():
        raise MissingArgument(f"Usage: /{command.name} <channel_id>")
    return command.args[0].strip()


def render_status(enabled: bool, channels) -> str:
    """Markdown body of the /list reply."""
    status = "🟢 ON" if enabled else "🔴 OFF"
    lines = [f"📊 *Bot Status:* {status}", "", "*Channels:*"]
    if channels:
        lines.extend(f"- `{channel_id}`" for channel_id in channels)
    else:
        lines.append("None")
    return "\n".join(lines)


class CommandRouter:
    """
    PURPOSE: Dispatch admin commands to relay configuration changes.

    Attributes:
        _store:    Relay configuration store.
        _gate:     Admin allow-list gate wrapping every handler.
        _sender:   Transport used to deliver replies.
        _handlers: Command name → handler coroutine.
    """

    def __init__(self, store: ConfigStore, gate: AdminGate, sender: MessageSender) -> None:
        self._store = store
        self._gate = gate
        self._sender = sender
        self._handlers: Dict[str, Callable[[IncomingCommand], Awaitable[Reply]]] = {
            "on": self.handle_on,
            "off": self.handle_off,
            "addchannel": self.handle_add_channel,
            "removechannel": self.handle_remove_channel,
            "list": self.handle_list,
        }

    async def dispatch(self, command: IncomingCommand) -> Optional[Reply]:
        """
        PURPOSE: Authorize, run and answer one command.

        Unknown commands are ignored. Unauthorized senders are answered by the
        gate. Everything else gets its reply sent to the command's chat.

        Returns:
            Optional[Reply]: The reply sent, or None if ignored or rejected.
        """
        handler = self._handlers.get(command.name)
        if handler is None:
            logger.debug("unknown_command_ignored", command=command.name)
            return None

        reply = await self._gate.guard(command, self._safe(handler))
        if reply is None:
            return None

        try:
            await self._sender.send_message(command.chat_id, reply.text, parse_mode=reply.parse_mode)
        except TransportFailure as e:
            logger.error(
                "command_reply_failed",
                command=command.name,
                chat_id=command.chat_id,
                error=str(e),
            )
        return reply

    def _safe(self, handler):
        """Wrap a handler so usage and storage errors become replies."""

        async def wrapped(command: IncomingCommand) -> Reply:
            try:
                return await handler(command)
            except MissingArgument as e:
                return Reply(e.usage)
            except ConfigError as e:
                logger.error("command_config_error", command=command.name, error=str(e))
                return Reply(f"⚠️ Configuration error: {e}")

        return wrapped

    # ════════════════════════════════════════════════════════════════
    # Handlers
    # ════════════════════════════════════════════════════════════════

    async def handle_on(self, command: IncomingCommand) -> Reply:
        async with self._store.transaction() as config:
            config.enabled = True
        logger.info("relay_enabled", sender_id=command.sender_id)
        return Reply("🟢 Bot is now ON. Signals will be forwarded.")

    async def handle_off(self, command: IncomingCommand) -> Reply:
        async with self._store.transaction() as config:
            config.enabled = False
        logger.info("relay_disabled", sender_id=command.sender_id)
        return Reply("🔴 Bot is now OFF. Signals are paused.")

    async def handle_add_channel(self, command: IncomingCommand) -> Reply:
        """Append the channel unless it is already configured."""
        channel_id = _require_channel_arg(command)
        async with self._store.transaction() as config:
            added = config.add_channel(channel_id)
        if not added:
            return Reply("ℹ️ Channel already in list.")
        logger.info("channel_added", channel_id=channel_id, sender_id=command.sender_id)
        return Reply(f"✅ Channel {channel_id} added.")

    async def handle_remove_channel(self, command: IncomingCommand) -> Reply:
        """Remove the channel. Confirms even when it was not configured."""
        channel_id = _require_channel_arg(command)
        async with self._store.transaction() as config:
            config.remove_channel(channel_id)
        logger.info("channel_removed", channel_id=channel_id, sender_id=command.sender_id)
        return Reply(f"❌ Channel {channel_id} removed.")

    async def handle_list(self, command: IncomingCommand) -> Reply:
        config = await self._store.read()
        return Reply(render_status(config.enabled, config.channels), parse_mode=MARKDOWN)
