"""Health endpoint."""

from fastapi import APIRouter

from termrelay.server import __version__
from termrelay.server.api.schemas import HealthResponse
from termrelay.server.state import get_chat_relay, get_terminal_registry, get_uptime

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report server health, version, uptime and live workload."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        uptime_seconds=get_uptime(),
        terminal_sessions=get_terminal_registry().count(),
        active_chats=len(get_chat_relay().active_tokens()),
    )
