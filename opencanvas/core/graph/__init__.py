"""Canvas graph store and its command set."""

from opencanvas.core.graph.commands import (
    AddEdge,
    AddNode,
    AppendMessage,
    DeleteEdge,
    DeleteNode,
    GraphChange,
    GraphCommand,
    RenameNode,
    ReplaceStreamingMessage,
    SetViewport,
    UpdateChatSettings,
    UpdateMemoryStats,
    UpdateNodeLayout,
)
from opencanvas.core.graph.store import CanvasGraph, derive_attached_memory_ids

__all__ = [
    "CanvasGraph",
    "derive_attached_memory_ids",
    "GraphCommand",
    "GraphChange",
    "AddNode",
    "DeleteNode",
    "AddEdge",
    "DeleteEdge",
    "UpdateNodeLayout",
    "RenameNode",
    "UpdateChatSettings",
    "AppendMessage",
    "ReplaceStreamingMessage",
    "UpdateMemoryStats",
    "SetViewport",
]
