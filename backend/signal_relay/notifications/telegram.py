"""
PURPOSE: Minimal async client for the Telegram Bot HTTP API.

Covers exactly what the relay needs: sending a text message to a chat or
channel, and long-polling getUpdates for admin commands. Every call opens a
short-lived httpx.AsyncClient and either returns the decoded result or raises
TransportFailure; callers decide whether a failure is fatal.

CALLED BY:
    - notifications/broadcaster.py — sendMessage fan-out
    - bot/poller.py — getUpdates long polling and command replies
"""

from typing import Any, Dict, List, Optional

import httpx

from signal_relay.core.errors import PollingConflict, TransportFailure
from signal_relay.utils.logger import get_logger

logger = get_logger(__name__)

MARKDOWN = "Markdown"


class TelegramClient:
    """
    PURPOSE: Send messages and fetch updates through the Telegram Bot API.

    Attributes:
        _base_url:      "https://api.telegram.org/bot<token>" (never logged).
        _timeout:       Per-request timeout for sendMessage, in seconds.
        _transport:     Optional httpx transport override (tests use MockTransport).
    """

    def __init__(
        self,
        bot_token: str,
        api_base: str = "https://api.telegram.org",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = f"{api_base.rstrip('/')}/bot{bot_token}"
        self._timeout = timeout
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def _call(
        self,
        method: str,
        payload: Dict[str, Any],
        timeout: float,
        chat_id: Optional[str] = None,
    ) -> Any:
        """
        PURPOSE: POST a Bot API method and unwrap its `result` field.

        Args:
            method:  Bot API method name, e.g. "sendMessage".
            payload: JSON body for the method.
            timeout: Request timeout in seconds.
            chat_id: Destination, recorded on any raised TransportFailure.

        Returns:
            The `result` member of a successful Bot API response.

        Raises:
            PollingConflict:  HTTP 409 (another consumer holds the update stream).
            TransportFailure: Timeout, network error, non-2xx or `ok: false`.
        """
        url = f"{self._base_url}/{method}"
        try:
            async with self._client(timeout) as client:
                response = await client.post(url, json=payload)
        except httpx.TimeoutException as e:
            raise TransportFailure(f"{method} timed out", chat_id=chat_id) from e
        except httpx.HTTPError as e:
            raise TransportFailure(
                f"{method} failed: {type(e).__name__}", chat_id=chat_id
            ) from e

        detail = self._extract_error_detail(response)
        if response.status_code == 409:
            raise PollingConflict(detail, chat_id=chat_id, status_code=409)
        if response.status_code >= 400:
            raise TransportFailure(detail, chat_id=chat_id, status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise TransportFailure(
                f"{method} returned non-JSON body", chat_id=chat_id,
                status_code=response.status_code,
            ) from e
        if not body.get("ok", False):
            raise TransportFailure(detail, chat_id=chat_id, status_code=response.status_code)
        return body.get("result")

    @staticmethod
    def _extract_error_detail(response: httpx.Response) -> str:
        """Prefer Telegram's `description`, fall back to the HTTP status line."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("description"):
            return str(body["description"])
        return f"HTTP {response.status_code}"

    # ════════════════════════════════════════════════════════════════
    # Public API
    # ════════════════════════════════════════════════════════════════

    async def send_message(
        self,
        chat_id: str,
        text: str,
        parse_mode: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        PURPOSE: Send a text message to a chat or channel.

        Args:
            chat_id:    Target chat id (e.g. "-1001234567890" for channels).
            text:       Message body.
            parse_mode: "Markdown", "HTML" or None for plain text.

        Returns:
            dict: The sent Message object.

        Raises:
            TransportFailure: If Telegram rejects the message or is unreachable.
        """
        payload: Dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "disable_web_page_preview": True,
        }
        if parse_mode:
            payload["parse_mode"] = parse_mode
        return await self._call("sendMessage", payload, self._timeout, chat_id=chat_id)

    async def get_updates(
        self,
        offset: Optional[int] = None,
        timeout: int = 25,
    ) -> List[Dict[str, Any]]:
        """
        PURPOSE: Long-poll for new message updates.

        Args:
            offset:  First update id to return (last seen + 1).
            timeout: Server-side long-poll duration in seconds.

        Returns:
            list: Update objects, possibly empty.

        Raises:
            PollingConflict:  Another instance is polling with the same token.
            TransportFailure: Any other transport error.
        """
        payload: Dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        # Leave headroom over the server-side long-poll window
        result = await self._call("getUpdates", payload, timeout + 10)
        return list(result or [])
