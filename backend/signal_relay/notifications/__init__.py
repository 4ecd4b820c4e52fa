"""Telegram transport and channel fan-out."""

from .broadcaster import BroadcastDispatcher, DeliveryResult, MessageSender
from .telegram import MARKDOWN, TelegramClient

__all__ = [
    "BroadcastDispatcher",
    "DeliveryResult",
    "MessageSender",
    "TelegramClient",
    "MARKDOWN",
]
