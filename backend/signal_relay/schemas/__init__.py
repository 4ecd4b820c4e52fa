"""
PURPOSE: Pydantic schemas for HTTP request and response bodies.
"""

from .webhook import WebhookAck, WebhookFailure

__all__ = ["WebhookAck", "WebhookFailure"]
