"""HTTP/WebSocket server exposing terminal sessions and chat streaming."""

from termrelay import __version__

__all__ = ["__version__"]
