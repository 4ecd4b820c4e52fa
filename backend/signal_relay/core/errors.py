"""
PURPOSE: Error kinds raised across the signal relay.

Every error the relay recovers from or reports derives from RelayError so
route handlers and the command router can tell expected failures apart from
programming errors.

CALLED BY:
    - config/relay_config.py — ConfigUnreadable, ConfigUnwritable
    - webhook/formatter.py — MalformedPayload
    - notifications/telegram.py — TransportFailure, PollingConflict
    - bot/admin.py, bot/commands.py — UnauthorizedCommand, MissingArgument
"""

from typing import Optional


class RelayError(Exception):
    """Base class for all relay errors."""


# ════════════════════════════════════════════════════════════════
# Configuration Storage
# ════════════════════════════════════════════════════════════════


class ConfigError(RelayError):
    """Base class for relay configuration storage failures."""


class ConfigUnreadable(ConfigError):
    """
    PURPOSE: The persisted configuration is missing or is not a valid document.

    Propagated to the caller of the triggering operation; never retried.
    """


class ConfigUnwritable(ConfigError):
    """
    PURPOSE: The persisted configuration could not be replaced on disk.

    Propagated to the caller of the triggering operation; never retried.
    """


# ════════════════════════════════════════════════════════════════
# Webhook Payloads
# ════════════════════════════════════════════════════════════════


class MalformedPayload(RelayError):
    """
    PURPOSE: An inbound webhook body is not a structured key-value document.

    Recovered inside the ingestor: the request is downgraded to raw-only
    forwarding and the webhook caller still receives a 200.
    """


# ════════════════════════════════════════════════════════════════
# Chat Transport
# ════════════════════════════════════════════════════════════════


class TransportFailure(RelayError):
    """
    PURPOSE: A single send to the chat transport failed.

    Attributes:
        chat_id:     Destination chat/channel identifier of the failed call.
        status_code: HTTP status returned by the transport, if any.
    """

    def __init__(
        self,
        message: str,
        chat_id: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.chat_id = chat_id
        self.status_code = status_code


class PollingConflict(TransportFailure):
    """Another process is already consuming updates for the same bot token."""


# ════════════════════════════════════════════════════════════════
# Commands
# ════════════════════════════════════════════════════════════════


class UnauthorizedCommand(RelayError):
    """
    PURPOSE: The command sender is not on the admin allow-list.

    Attributes:
        sender_id: The rejected sender identity.
    """

    def __init__(self, sender_id: str) -> None:
        super().__init__(f"Sender {sender_id} is not authorized")
        self.sender_id = sender_id


class MissingArgument(RelayError):
    """
    PURPOSE: A command was invoked without its required argument.

    Attributes:
        usage: Usage hint replied to the sender.
    """

    def __init__(self, usage: str) -> None:
        super().__init__(usage)
        self.usage = usage
