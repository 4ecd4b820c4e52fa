"""
PURPOSE: Webhook module — ingests inbound trading alerts and formats them for Telegram.

Accepts JSON or plain-text bodies from TradingView and similar alert sources,
tolerating missing and renamed fields.
"""

from .processor import WebhookIngestor, WebhookOutcome

__all__ = ["WebhookIngestor", "WebhookOutcome"]
