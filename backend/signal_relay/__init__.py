"""
PURPOSE: Signal relay — forwards TradingView-style webhook alerts to Telegram channels.

Operators toggle forwarding and manage destination channels with admin-only
bot commands; the state is persisted in a small JSON document.
"""

__version__ = "1.0.0"
