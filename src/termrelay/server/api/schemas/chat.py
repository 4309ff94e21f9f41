"""Chat relay Pydantic schemas."""

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """One role/content pair of the conversation history."""

    role: str = Field(description="Message role (user, assistant, ...)")
    content: str = Field(description="Message text")


class ChatRequest(BaseModel):
    """Request model for starting a streaming chat."""

    messages: list[ChatMessage] = Field(description="Conversation history, oldest first")
    request_token: str = Field(min_length=1, description="Correlation id for the streamed events")
