"""Services layer for the termrelay server."""

from .event_hub import EventHub, RelayEvent, Subscription
from .pty_process import PtyProcess, default_shell, spawn
from .terminal_registry import TerminalRegistry, TerminalSession
from .chat_relay import ChatRelay

__all__ = [
    # Event fan-out
    "EventHub",
    "RelayEvent",
    "Subscription",
    # PTY processes
    "PtyProcess",
    "default_shell",
    "spawn",
    # Terminal sessions
    "TerminalRegistry",
    "TerminalSession",
    # Chat
    "ChatRelay",
]
