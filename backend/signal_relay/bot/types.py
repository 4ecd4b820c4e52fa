"""
PURPOSE: Value types shared by the command gate, router and poller.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class IncomingCommand:
    """
    PURPOSE: One slash command received from the chat transport.

    Attributes:
        name:      Command name without "/" or "@BotName" suffix, lowercased.
        args:      Whitespace-separated arguments after the command.
        sender_id: String form of the sending user's id (checked by AdminGate).
        chat_id:   Chat the command was sent in; replies go here.
        text:      Original message text.
    """

    name: str
    sender_id: str
    chat_id: str
    args: List[str] = field(default_factory=list)
    text: str = ""


@dataclass(frozen=True)
class Reply:
    """Text sent back to the command's chat, with an optional parse mode."""

    text: str
    parse_mode: Optional[str] = None
