"""Canvas node models."""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, model_validator

from .message import Message

DEFAULT_NODE_WIDTH = 400
DEFAULT_NODE_HEIGHT = 500


class NodeKind(str, Enum):
    """Kinds of nodes on the canvas."""

    CHAT = "chat"
    MEMORY = "memory"


class Position(BaseModel):
    """Canvas coordinates. Opaque to the engine."""

    x: float = 0.0
    y: float = 0.0


class Size(BaseModel):
    """Node dimensions on the canvas."""

    width: float = DEFAULT_NODE_WIDTH
    height: float = DEFAULT_NODE_HEIGHT


class ChatPayload(BaseModel):
    """
    State of a chat node.

    The set of attached memory nodes is not stored here; it is derived from
    the edge list by CanvasGraph.attached_memory_ids.
    """

    kind: Literal["chat"] = "chat"
    title: str = "New Chat"
    messages: list[Message] = Field(default_factory=list)
    provider: str = "ollama"
    model: str = ""
    system_prompt: str | None = None


class MemoryPayload(BaseModel):
    """State of a memory node and the tag of the model that built its index."""

    kind: Literal["memory"] = "memory"
    title: str = "Memory"
    chunk_count: int = 0
    document_count: int = 0
    embedding_provider: str | None = None
    embedding_model: str | None = None


NodePayload = Annotated[ChatPayload | MemoryPayload, Field(discriminator="kind")]


class Node(BaseModel):
    """A chat or memory node placed on the canvas."""

    id: str
    kind: NodeKind
    position: Position = Field(default_factory=Position)
    size: Size = Field(default_factory=Size)
    payload: NodePayload

    @model_validator(mode="after")
    def _payload_matches_kind(self) -> "Node":
        if self.payload.kind != self.kind:
            raise ValueError(
                f"Node {self.id} is {self.kind.value} but carries a {self.payload.kind} payload"
            )
        return self

    @property
    def title(self) -> str:
        return self.payload.title

    @property
    def is_chat(self) -> bool:
        return self.kind == NodeKind.CHAT

    @property
    def is_memory(self) -> bool:
        return self.kind == NodeKind.MEMORY
