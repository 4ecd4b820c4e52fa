"""
PURPOSE: API router initialization and exports for the signal relay.

Aggregates the HTTP routers into a single api_router that is included in the
main FastAPI application. Routes are mounted at the root so alert sources can
be pointed at /webhook directly.
"""

from fastapi import APIRouter

from signal_relay.api.routes_webhook import router as webhook_router

api_router = APIRouter()

api_router.include_router(webhook_router, tags=["webhook"])

__all__ = ["api_router"]
