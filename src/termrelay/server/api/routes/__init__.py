"""API routes."""

from . import health, terminals, chat, config, ws

__all__ = ["health", "terminals", "chat", "config", "ws"]
