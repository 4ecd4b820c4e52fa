"""
PURPOSE: Inbound alert webhook route for the signal relay.

POST /webhook accepts whatever the alert source sends. TradingView does not
reliably set Content-Type, so the body is read as raw bytes and decoded as
UTF-8 instead of relying on FastAPI's JSON body parsing; the ingestor decides
whether it is structured.

CALLED BY:
    - TradingView (or any alert source) webhook POSTs
"""

from typing import Union

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from signal_relay.schemas import WebhookAck, WebhookFailure
from signal_relay.utils.logger import get_logger
from signal_relay.webhook.processor import WebhookIngestor

logger = get_logger(__name__)

router = APIRouter(tags=["webhook"])


def get_ingestor(request: Request) -> WebhookIngestor:
    """
    PURPOSE: FastAPI dependency returning the app's WebhookIngestor.

    CALLED BY: receive_webhook via Depends
    """
    return request.app.state.ingestor


@router.post(
    "/webhook",
    response_model=WebhookAck,
    responses={500: {"model": WebhookFailure}},
)
async def receive_webhook(
    request: Request,
    ingestor: WebhookIngestor = Depends(get_ingestor),
) -> Union[WebhookAck, JSONResponse]:
    """
    PURPOSE: Relay one inbound alert to every configured Telegram channel.

    Returns:
        200 {"success": true, "message": "Bot is disabled"} when forwarding is off.
        200 {"success": true, "message": "Signal sent to N channels"} otherwise,
            regardless of individual channel failures.
        500 {"success": false, "error": "Internal Error"} on unexpected failure,
            after a best-effort error notice to the channels.
    """
    try:
        body = await request.body()
        raw_body = body.decode("utf-8", errors="replace")
        outcome = await ingestor.process(
            raw_body, content_type=request.headers.get("content-type")
        )
        return WebhookAck(message=outcome.message)
    except Exception as e:
        logger.error(
            "webhook_route_failed",
            error=str(e),
            exception_type=type(e).__name__,
        )
        await ingestor.notify_failure(e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=WebhookFailure().model_dump(),
        )
