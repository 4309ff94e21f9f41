"""Error taxonomy for terminal sessions and chat relaying.

Services raise these; the API layer turns them into failed OperationResults
so nothing crosses the HTTP boundary as an exception.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for every error the relay core reports to callers."""


class SpawnError(RelayError):
    """The OS could not create the pseudo-terminal process."""


class DuplicateSession(RelayError):
    """A terminal session with the requested id is already registered."""

    def __init__(self, session_id: str):
        super().__init__(f"Terminal session {session_id} already exists")
        self.session_id = session_id


class InvalidDimension(RelayError):
    """Resize requested with a non-positive column or row count."""

    def __init__(self, cols: int, rows: int):
        super().__init__(f"Invalid terminal size {cols}x{rows}: columns and rows must be >= 1")
        self.cols = cols
        self.rows = rows


class ChatError(RelayError):
    """Base class for chat relay failures returned to the caller."""


class MissingCredential(ChatError):
    """Chat requested without an API key. No network call was made."""

    def __init__(self, message: str = "No AI API key configured; set one before chatting"):
        super().__init__(message)


class ProviderHTTPError(ChatError):
    """Provider answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"API error: {status_code} - {body}")
        self.status_code = status_code
        self.body = body


class ProviderRequestError(ChatError):
    """The request never got a response (DNS, connect, TLS, ...)."""


class StreamParseSkip(Exception):
    """A single stream frame could not be decoded and is dropped."""


class StreamReadFailure(Exception):
    """Reading the response body failed mid-stream; treated as end of stream."""
