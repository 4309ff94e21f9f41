"""WebSocket event Pydantic schemas."""

from typing import Any, Literal

from pydantic import BaseModel, Field

ServerMessageType = Literal[
    "session_data",  # Terminal output (base64 encoded)
    "session_exit",  # Terminal session ended
    "chat_delta",    # Incremental chat text
    "chat_end",      # Chat stream finished
    "pong",          # Response to ping
    "error",         # Error handling a client message
]


class ServerMessage(BaseModel):
    """Message pushed from the server to a WebSocket consumer."""

    type: ServerMessageType = Field(description="Message type")
    key: str | None = Field(default=None, description="Session id or request token")
    data: dict[str, Any] = Field(default_factory=dict, description="Message payload")


class ClientMessage(BaseModel):
    """Message from a WebSocket consumer."""

    type: Literal["ping", "input", "resize", "interrupt"] = Field(description="Client message type")
    session_id: str | None = Field(default=None, description="Target terminal session")
    data: str = Field(default="", description="Base64 encoded input for 'input'")
    cols: int = Field(default=80, description="Columns for 'resize'")
    rows: int = Field(default=24, description="Rows for 'resize'")
