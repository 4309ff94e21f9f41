"""Chat streaming endpoints."""

from fastapi import APIRouter

from termrelay.server.api.schemas import ChatRequest, OperationResult
from termrelay.server.state import get_chat_relay
from termrelay.util.errors import ChatError

router = APIRouter()


@router.post("", response_model=OperationResult)
async def start_chat(request: ChatRequest) -> OperationResult:
    """Start a streaming chat.

    Returns as soon as the provider accepts the request. Deltas arrive on the
    events WebSocket as ``chat_delta`` followed by one ``chat_end``, all tagged
    with ``request_token``.
    """
    messages = [m.model_dump() for m in request.messages]
    try:
        await get_chat_relay().chat(messages, request.request_token)
    except ChatError as e:
        return OperationResult.fail(str(e))
    return OperationResult.ok({"request_token": request.request_token})


@router.post("/{request_token}/cancel", response_model=OperationResult)
async def cancel_chat(request_token: str) -> OperationResult:
    """Stop consuming a chat stream."""
    if not get_chat_relay().cancel(request_token):
        return OperationResult.fail(f"No active chat stream for {request_token}")
    return OperationResult.ok()
