"""termrelay: terminal session and AI chat relay for a desktop coding tool."""

__version__ = "0.1.0"
