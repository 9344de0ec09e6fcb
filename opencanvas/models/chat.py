"""Standalone chat record model."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from .message import Message


class ChatRecord(BaseModel):
    """A chat conversation persisted outside of any canvas."""

    id: str
    title: str = "New Chat"
    messages: list[Message] = Field(default_factory=list)
    provider: str = "ollama"
    model: str = ""
    system_prompt: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
