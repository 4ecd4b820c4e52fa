"""
PURPOSE: Admin command surface — allow-list gate, command router and update poller.
"""

from .admin import AdminGate
from .commands import CommandRouter, parse_command
from .poller import CommandPoller
from .types import IncomingCommand, Reply

__all__ = [
    "AdminGate",
    "CommandRouter",
    "CommandPoller",
    "IncomingCommand",
    "Reply",
    "parse_command",
]
