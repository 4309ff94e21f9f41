"""WebSocket event stream.

Each connected WebSocket is one consumer of the event hub and receives every
terminal and chat event. It may also send terminal input over the same socket.
"""

import asyncio
import base64
import binascii
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from termrelay.server.api.schemas import ClientMessage, ServerMessage
from termrelay.server.services import RelayEvent, Subscription
from termrelay.server.state import get_event_hub, get_terminal_registry
from termrelay.util.errors import RelayError

logger = logging.getLogger(__name__)

router = APIRouter()


def event_to_message(event: RelayEvent) -> dict[str, Any]:
    """Convert a hub event to the JSON sent to WebSocket consumers."""
    if event.type == "session_data":
        data = {"data": base64.b64encode(event.data).decode("ascii")}
    elif event.type == "session_exit":
        data = {"exit_code": event.exit_code}
    elif event.type == "chat_delta":
        data = {"text": event.text}
    else:
        data = {}
    return ServerMessage(type=event.type, key=event.key, data=data).model_dump()


def _error(message: str) -> dict[str, Any]:
    return ServerMessage(type="error", data={"error": message}).model_dump()


async def _handle_client_message(websocket: WebSocket, raw: str) -> None:
    try:
        msg = ClientMessage.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        await websocket.send_json(_error(f"Invalid message: {e}"))
        return

    registry = get_terminal_registry()

    if msg.type == "ping":
        await websocket.send_json(ServerMessage(type="pong").model_dump())
        return

    if not msg.session_id:
        await websocket.send_json(_error(f"'{msg.type}' requires session_id"))
        return

    if msg.type == "input":
        try:
            registry.write(msg.session_id, base64.b64decode(msg.data, validate=True))
        except binascii.Error:
            await websocket.send_json(_error("Input data is not valid base64"))
    elif msg.type == "resize":
        try:
            registry.resize(msg.session_id, msg.cols, msg.rows)
        except RelayError as e:
            await websocket.send_json(_error(str(e)))
    elif msg.type == "interrupt":
        if not registry.interrupt(msg.session_id):
            await websocket.send_json(_error(f"Terminal session {msg.session_id} not found"))


@router.websocket("/events")
async def events_endpoint(websocket: WebSocket):
    """Stream session and chat events to one consumer.

    Server -> Client message types:
    - session_data: terminal output (base64 ``data``)
    - session_exit: terminal session ended (``exit_code``)
    - chat_delta: incremental chat text (``text``)
    - chat_end: chat stream finished
    - pong / error

    Client -> Server message types:
    - ping
    - input: base64 ``data`` for ``session_id``
    - resize: ``cols``/``rows`` for ``session_id``
    - interrupt: Ctrl-C for ``session_id``
    """
    await websocket.accept()
    hub = get_event_hub()
    subscription: Subscription = hub.subscribe()

    async def forward_events():
        async for event in subscription:
            try:
                await websocket.send_json(event_to_message(event))
            except Exception as e:
                # Dead connection; the receive loop notices and cleans up
                logger.debug("Dropping event consumer %s: %s", subscription.id, e)
                return

    stream_task = asyncio.create_task(forward_events())
    try:
        while True:
            raw = await websocket.receive_text()
            await _handle_client_message(websocket, raw)
    except WebSocketDisconnect:
        logger.debug("Event consumer %s disconnected", subscription.id)
    finally:
        hub.unsubscribe(subscription)
        stream_task.cancel()
        try:
            await stream_task
        except asyncio.CancelledError:
            pass
