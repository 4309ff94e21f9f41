"""Shared response Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, Field


class OperationResult(BaseModel):
    """Tagged result returned by every fallible operation."""

    success: bool = Field(description="Whether the operation succeeded")
    error: str | None = Field(default=None, description="Human-readable error on failure")
    data: Any = Field(default=None, description="Operation payload, if any")

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)


class HealthResponse(BaseModel):
    """Response model for the health endpoint."""

    status: str = Field(description="Server health status")
    version: str = Field(description="Server version")
    uptime_seconds: float = Field(description="Server uptime in seconds")
    terminal_sessions: int = Field(default=0, description="Live terminal sessions")
    active_chats: int = Field(default=0, description="Chat streams in flight")
