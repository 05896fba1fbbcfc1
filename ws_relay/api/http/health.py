"""Status and health endpoints."""

from fastapi import APIRouter, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from ws_relay.constants import STATUS_BANNER, BroadcastPolicy, EnvelopeName

router = APIRouter()


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    active_sessions: int
    policy: BroadcastPolicy
    envelope: EnvelopeName


@router.get(
    "/",
    response_class=PlainTextResponse,
    summary="Plain-text banner for non-WebSocket requests",
    tags=["health"],
)
async def banner() -> str:
    return STATUS_BANNER


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    tags=["health"],
)
async def health_check(request: Request) -> HealthResponse:
    """
    Report relay status.

    The relay has no external dependencies, so it is healthy whenever it
    can answer; the response also carries the number of open sessions and
    the active fan-out configuration.

    Returns:
        HealthResponse: Health status of the relay.
    """
    manager = request.app.state.connection_manager
    settings = request.app.state.settings

    return HealthResponse(
        status="healthy",
        active_sessions=manager.count,
        policy=manager.policy,
        envelope=settings.ENVELOPE,
    )
