"""
PURPOSE: Admin allow-list gate for bot commands.

The allow-list is fixed at process start (ADMIN_CHAT_IDS) and never mutated.
Unauthorized senders get a rejection reply from the gate itself and the
wrapped command handler is never invoked.

CALLED BY:
    - bot/commands.py — CommandRouter.dispatch()
"""

from typing import Awaitable, Callable, FrozenSet, Iterable, Optional

from signal_relay.bot.types import IncomingCommand, Reply
from signal_relay.core.errors import TransportFailure, UnauthorizedCommand
from signal_relay.notifications.broadcaster import MessageSender
from signal_relay.utils.logger import get_logger

logger = get_logger("bot.admin")

REJECTION_TEXT = "🚫 You are not authorized to use this command."

CommandHandler = Callable[[IncomingCommand], Awaitable[Reply]]


class AdminGate:
    """
    PURPOSE: Authorize command senders against a static allow-list.

    Attributes:
        _admin_ids: Immutable set of authorized sender identities.
        _sender:    Transport used to deliver rejection notices.
    """

    def __init__(self, admin_ids: Iterable[str], sender: MessageSender) -> None:
        self._admin_ids: FrozenSet[str] = frozenset(
            str(admin_id).strip() for admin_id in admin_ids if str(admin_id).strip()
        )
        self._sender = sender

    def authorize(self, sender_id: str) -> bool:
        """Return True if the sender identity is on the allow-list."""
        return str(sender_id).strip() in self._admin_ids

    def check(self, sender_id: str) -> None:
        """
        Raise UnauthorizedCommand unless the sender is an admin.

        Raises:
            UnauthorizedCommand: Sender is not on the allow-list.
        """
        if not self.authorize(sender_id):
            raise UnauthorizedCommand(str(sender_id))

    async def guard(
        self, command: IncomingCommand, handler: CommandHandler
    ) -> Optional[Reply]:
        """
        PURPOSE: Run `handler` only for authorized senders.

        On denial the attempt is logged with the offending identity and the
        rejection notice is sent straight to the command's chat.

        Args:
            command: Parsed incoming command.
            handler: Command implementation to run when authorized.

        Returns:
            Optional[Reply]: The handler's reply, or None if the sender was rejected.
        """
        try:
            self.check(command.sender_id)
        except UnauthorizedCommand as e:
            logger.warning(
                "unauthorized_command_attempt",
                sender_id=e.sender_id,
                command=command.name,
            )
            try:
                await self._sender.send_message(command.chat_id, REJECTION_TEXT)
            except TransportFailure as send_error:
                logger.error(
                    "rejection_reply_failed",
                    chat_id=command.chat_id,
                    error=str(send_error),
                )
            return None

        return await handler(command)
