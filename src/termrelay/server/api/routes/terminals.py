"""Terminal session endpoints.

Every endpoint answers 200 with an OperationResult; failures are reported in
the body rather than as HTTP errors.
"""

import logging

from fastapi import APIRouter

from termrelay.server.api.schemas import (
    OperationResult,
    TerminalCreate,
    TerminalInfo,
    TerminalInput,
    TerminalResize,
)
from termrelay.server.services import TerminalSession
from termrelay.server.state import get_terminal_registry
from termrelay.util.errors import RelayError

logger = logging.getLogger(__name__)

router = APIRouter()


def _session_to_info(session: TerminalSession) -> TerminalInfo:
    return TerminalInfo(
        id=session.id,
        pid=session.handle.pid,
        cwd=str(session.cwd),
        cols=session.cols,
        rows=session.rows,
        created_at=session.created_at,
    )


@router.get("", response_model=OperationResult)
async def list_terminals() -> OperationResult:
    """List live terminal sessions."""
    sessions = get_terminal_registry().list_sessions()
    return OperationResult.ok([_session_to_info(s).model_dump(mode="json") for s in sessions])


@router.post("", response_model=OperationResult)
async def create_terminal(request: TerminalCreate) -> OperationResult:
    """Spawn a shell for a caller-chosen session id."""
    try:
        session = get_terminal_registry().create(
            request.id, request.cwd, cols=request.cols, rows=request.rows
        )
    except RelayError as e:
        logger.warning("Could not create terminal session %s: %s", request.id, e)
        return OperationResult.fail(str(e))
    return OperationResult.ok(_session_to_info(session).model_dump(mode="json"))


@router.post("/{session_id}/input", response_model=OperationResult)
async def write_terminal(session_id: str, request: TerminalInput) -> OperationResult:
    """Send input to a session. Unknown sessions are ignored."""
    get_terminal_registry().write(session_id, request.data)
    return OperationResult.ok()


@router.post("/{session_id}/resize", response_model=OperationResult)
async def resize_terminal(session_id: str, request: TerminalResize) -> OperationResult:
    """Resize a session. Unknown sessions are ignored; bad sizes are rejected."""
    try:
        get_terminal_registry().resize(session_id, request.cols, request.rows)
    except RelayError as e:
        return OperationResult.fail(str(e))
    return OperationResult.ok()


@router.post("/{session_id}/interrupt", response_model=OperationResult)
async def interrupt_terminal(session_id: str) -> OperationResult:
    """Send Ctrl-C to whatever is running in the session."""
    if not get_terminal_registry().interrupt(session_id):
        return OperationResult.fail(f"Terminal session {session_id} not found")
    return OperationResult.ok()


@router.delete("/{session_id}", response_model=OperationResult)
async def destroy_terminal(session_id: str) -> OperationResult:
    """Kill a session. Destroying an unknown session succeeds as a no-op."""
    destroyed = get_terminal_registry().destroy(session_id)
    return OperationResult.ok({"destroyed": destroyed})
