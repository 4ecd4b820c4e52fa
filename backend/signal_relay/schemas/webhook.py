"""
PURPOSE: Response schemas for the webhook endpoint.
"""

from pydantic import BaseModel


class WebhookAck(BaseModel):
    """
    PURPOSE: Successful webhook acknowledgement.

    Attributes:
        success: Always True.
        message: "Bot is disabled" or "Signal sent to N channels".
    """

    success: bool = True
    message: str


class WebhookFailure(BaseModel):
    """Body of the 500 response. Never carries internal details."""

    success: bool = False
    error: str = "Internal Error"
