"""Chat message model."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from opencanvas.utils.id_generator import generate_message_id


class Role(str, Enum):
    """Author of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """
    A single chat message.

    Messages are immutable once created. Streaming replaces the last
    assistant message with a new instance instead of mutating it.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_message_id)
    role: Role
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def with_content(self, content: str) -> "Message":
        """Return a copy carrying new content, same id and timestamp."""
        return self.model_copy(update={"content": content})

    def to_provider_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}
