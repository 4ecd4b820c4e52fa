"""
PURPOSE: Fan a message out to every configured channel concurrently.

Each channel is an isolated failure domain: sends are issued together with
asyncio.gather, a failure on one channel is logged and recorded but never
cancels or affects the others, and the caller always gets one
DeliveryResult per channel once every attempt has settled.

CALLED BY:
    - webhook/processor.py — raw, formatted and error notifications
"""

import asyncio
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Sequence

from signal_relay.core.errors import TransportFailure
from signal_relay.utils.logger import get_logger

logger = get_logger(__name__)


class MessageSender(Protocol):
    """Anything that can deliver one text message to one chat id."""

    async def send_message(
        self, chat_id: str, text: str, parse_mode: Optional[str] = None
    ) -> Any:
        ...


@dataclass(frozen=True)
class DeliveryResult:
    """
    PURPOSE: Outcome of one send attempt.

    Attributes:
        channel_id: Destination channel.
        ok:         True if the transport accepted the message.
        error:      Failure description when ok is False.
    """

    channel_id: str
    ok: bool
    error: Optional[str] = None


class BroadcastDispatcher:
    """
    PURPOSE: Deliver a message to many channels with per-channel isolation.

    Attributes:
        _sender: Chat transport used for every send.
    """

    def __init__(self, sender: MessageSender) -> None:
        self._sender = sender

    async def _deliver(
        self, channel_id: str, message: str, parse_mode: Optional[str], label: str
    ) -> DeliveryResult:
        try:
            await self._sender.send_message(channel_id, message, parse_mode=parse_mode)
        except TransportFailure as e:
            logger.error(
                "broadcast_delivery_failed",
                kind=label,
                channel_id=channel_id,
                status_code=e.status_code,
                error=str(e),
            )
            return DeliveryResult(channel_id=channel_id, ok=False, error=str(e))
        except Exception as e:
            logger.error(
                "broadcast_delivery_error",
                kind=label,
                channel_id=channel_id,
                error=str(e),
                exception_type=type(e).__name__,
            )
            return DeliveryResult(channel_id=channel_id, ok=False, error=str(e))
        return DeliveryResult(channel_id=channel_id, ok=True)

    async def broadcast(
        self,
        message: str,
        channels: Sequence[str],
        parse_mode: Optional[str] = None,
        label: str = "message",
    ) -> List[DeliveryResult]:
        """
        PURPOSE: Send `message` to every channel and wait for all attempts.

        CALLED BY: WebhookIngestor

        Args:
            message:    Text to deliver.
            channels:   Destination channel ids.
            parse_mode: Telegram parse mode for the message.
            label:      Short tag for log lines ("raw", "formatted", "error").

        Returns:
            list[DeliveryResult]: One entry per channel, in channel order.
        """
        if not channels:
            return []

        results = await asyncio.gather(
            *(self._deliver(channel_id, message, parse_mode, label) for channel_id in channels)
        )

        failed = sum(1 for result in results if not result.ok)
        logger.info(
            "broadcast_complete",
            kind=label,
            channel_count=len(results),
            failed_count=failed,
        )
        return list(results)
