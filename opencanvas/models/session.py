"""Canvas session and snapshot models."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from .edge import Edge
from .node import Node

DEFAULT_SESSION_TITLE = "New Canvas"
MIGRATED_SESSION_TITLE = "Migrated Canvas"
UNTITLED_SESSION_TITLE = "Canvas Session"


class Viewport(BaseModel):
    """Pan and zoom of the canvas."""

    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0


class CanvasSnapshot(BaseModel):
    """Full graph state at one point in time."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    viewport: Viewport = Field(default_factory=Viewport)

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.edges


class CanvasSession(BaseModel):
    """A named, persisted canvas."""

    id: str
    title: str = DEFAULT_SESSION_TITLE
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    viewport: Viewport = Field(default_factory=Viewport)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def snapshot(self) -> CanvasSnapshot:
        return CanvasSnapshot(nodes=self.nodes, edges=self.edges, viewport=self.viewport)
