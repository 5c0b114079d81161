"""
Health check route.

Hosting platforms require an HTTP response on the bound port; this is the
only HTTP surface the relay exposes.
"""

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

health_router = APIRouter(tags=["health"])


@health_router.get("/", response_class=PlainTextResponse)
async def health_check(request: Request) -> PlainTextResponse:
    """Static plain-text response used by platform health checks."""
    return PlainTextResponse(request.app.state.health_message)
