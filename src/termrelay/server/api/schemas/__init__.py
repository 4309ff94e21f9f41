"""Pydantic schemas for the termrelay API."""

from .common import HealthResponse, OperationResult
from .terminal import TerminalCreate, TerminalInfo, TerminalInput, TerminalResize
from .chat import ChatMessage, ChatRequest
from .config import ProviderConfigModel
from .events import ClientMessage, ServerMessage

__all__ = [
    "HealthResponse",
    "OperationResult",
    "TerminalCreate",
    "TerminalInfo",
    "TerminalInput",
    "TerminalResize",
    "ChatMessage",
    "ChatRequest",
    "ProviderConfigModel",
    "ClientMessage",
    "ServerMessage",
]
