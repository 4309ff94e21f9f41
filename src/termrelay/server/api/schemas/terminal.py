"""Terminal session Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class TerminalCreate(BaseModel):
    """Request model for creating a terminal session."""

    id: str = Field(min_length=1, description="Caller-chosen session id")
    cwd: str | None = Field(default=None, description="Working directory (default: home)")
    cols: int = Field(default=80, description="Initial terminal columns")
    rows: int = Field(default=24, description="Initial terminal rows")


class TerminalInput(BaseModel):
    """Request model for writing to a terminal session."""

    data: str = Field(description="Text to send to the shell")


class TerminalResize(BaseModel):
    """Request model for resizing a terminal session."""

    cols: int = Field(description="New column count")
    rows: int = Field(description="New row count")


class TerminalInfo(BaseModel):
    """Details of a live terminal session."""

    id: str = Field(description="Session id")
    pid: int = Field(description="Shell process id")
    cwd: str = Field(description="Working directory")
    cols: int = Field(description="Terminal columns")
    rows: int = Field(description="Terminal rows")
    created_at: datetime = Field(description="When the session was created")
