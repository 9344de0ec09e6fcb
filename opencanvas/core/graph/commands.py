"""
Commands accepted by CanvasGraph.

Every change to canvas state is one of these. Structural commands (adding or
removing nodes and edges) are saved immediately by the session orchestrator;
the rest are debounced.
"""

from dataclasses import dataclass
from typing import Any, ClassVar

from pydantic import BaseModel

from opencanvas.models.message import Message
from opencanvas.models.node import Node, Position, Size
from opencanvas.models.session import Viewport


class GraphCommand(BaseModel):
    """Base class for graph commands."""

    structural: ClassVar[bool] = False


class AddNode(GraphCommand):
    structural: ClassVar[bool] = True

    node: Node


class DeleteNode(GraphCommand):
    """Remove a node and every edge touching it."""

    structural: ClassVar[bool] = True

    node_id: str


class AddEdge(GraphCommand):
    """Connect two nodes. The edge kind is inferred from the endpoint kinds."""

    structural: ClassVar[bool] = True

    source: str
    target: str
    edge_id: str | None = None


class DeleteEdge(GraphCommand):
    structural: ClassVar[bool] = True

    edge_id: str


class UpdateNodeLayout(GraphCommand):
    node_id: str
    position: Position | None = None
    size: Size | None = None


class RenameNode(GraphCommand):
    node_id: str
    title: str


class UpdateChatSettings(GraphCommand):
    """Change a chat node's provider, model or system prompt. None leaves a field as is."""

    node_id: str
    provider: str | None = None
    model: str | None = None
    system_prompt: str | None = None


class AppendMessage(GraphCommand):
    node_id: str
    message: Message


class ReplaceStreamingMessage(GraphCommand):
    """Replace the content of a message that is still being streamed."""

    node_id: str
    message_id: str
    content: str


class UpdateMemoryStats(GraphCommand):
    """Record index counts and, when given, the embedding model that built the index."""

    node_id: str
    chunk_count: int
    document_count: int
    embedding_provider: str | None = None
    embedding_model: str | None = None


class SetViewport(GraphCommand):
    viewport: Viewport


@dataclass(frozen=True)
class GraphChange:
    """Outcome of applying a command."""

    command: GraphCommand
    result: Any = None

    @property
    def applied(self) -> bool:
        return self.result is not None

    @property
    def structural(self) -> bool:
        return self.command.structural
