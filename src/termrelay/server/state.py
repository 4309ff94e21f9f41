"""Server state management."""

import time

from termrelay.server.services.chat_relay import ChatRelay
from termrelay.server.services.event_hub import EventHub
from termrelay.server.services.terminal_registry import TerminalRegistry
from termrelay.util.provider_config import ConfigCell

# Track server start time for uptime calculation
_start_time: float = 0.0

# Singletons for shared state
_event_hub: EventHub | None = None
_config_cell: ConfigCell | None = None
_terminal_registry: TerminalRegistry | None = None
_chat_relay: ChatRelay | None = None


def init_start_time() -> None:
    """Initialize the server start time."""
    global _start_time
    _start_time = time.time()


def get_uptime() -> float:
    """Get server uptime in seconds."""
    if _start_time == 0.0:
        return 0.0
    return time.time() - _start_time


def get_event_hub() -> EventHub:
    """Get the global EventHub instance."""
    global _event_hub
    if _event_hub is None:
        _event_hub = EventHub()
    return _event_hub


def get_config_cell() -> ConfigCell:
    """Get the global provider configuration, seeded from the environment."""
    global _config_cell
    if _config_cell is None:
        _config_cell = ConfigCell()
    return _config_cell


def get_terminal_registry() -> TerminalRegistry:
    """Get the global TerminalRegistry instance."""
    global _terminal_registry
    if _terminal_registry is None:
        _terminal_registry = TerminalRegistry(get_event_hub())
    return _terminal_registry


def get_chat_relay() -> ChatRelay:
    """Get the global ChatRelay instance."""
    global _chat_relay
    if _chat_relay is None:
        _chat_relay = ChatRelay(get_config_cell(), get_event_hub())
    return _chat_relay


def set_chat_relay(relay: ChatRelay | None) -> None:
    """Replace the global ChatRelay (tests inject one with a mock transport)."""
    global _chat_relay
    _chat_relay = relay


def reset_state() -> None:
    """Reset all global state (for testing)."""
    global _start_time, _event_hub, _config_cell, _terminal_registry, _chat_relay
    if _terminal_registry is not None:
        _terminal_registry.destroy_all()
    if _event_hub is not None:
        _event_hub.close()
    _start_time = 0.0
    _event_hub = None
    _config_cell = None
    _terminal_registry = None
    _chat_relay = None
