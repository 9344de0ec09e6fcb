"""Canvas edge models."""

from enum import Enum

from pydantic import BaseModel

from .node import NodeKind


class EdgeKind(str, Enum):
    """
    What an edge carries.

    CONTEXT: the source chat's transcript is prepended to the target's prompt.
    RAG: the source memory node's index is searched when the target chat sends.
    """

    CONTEXT = "context"
    RAG = "rag"


class Edge(BaseModel):
    """Directed connection between two canvas nodes."""

    id: str
    source: str
    target: str
    kind: EdgeKind = EdgeKind.CONTEXT

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target


def infer_edge_kind(source_kind: NodeKind, target_kind: NodeKind) -> EdgeKind:
    """An edge is RAG exactly when it runs from a memory node to a chat node."""
    if source_kind == NodeKind.MEMORY and target_kind == NodeKind.CHAT:
        return EdgeKind.RAG
    return EdgeKind.CONTEXT
