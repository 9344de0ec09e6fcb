"""Data models for OpenCanvas."""

from .chat import ChatRecord
from .chunk import (
    ChunkMetadata,
    DocumentChunk,
    IndexMetadata,
    ParsedChunk,
    RetrievedChunk,
    ScoredChunk,
    VectorStoreRecord,
)
from .edge import Edge, EdgeKind, infer_edge_kind
from .message import Message, Role
from .node import ChatPayload, MemoryPayload, Node, NodeKind, Position, Size
from .session import CanvasSession, CanvasSnapshot, Viewport

__all__ = [
    # Messages
    "Message",
    "Role",
    # Nodes
    "Node",
    "NodeKind",
    "ChatPayload",
    "MemoryPayload",
    "Position",
    "Size",
    # Edges
    "Edge",
    "EdgeKind",
    "infer_edge_kind",
    # Chunks
    "ChunkMetadata",
    "ParsedChunk",
    "DocumentChunk",
    "ScoredChunk",
    "RetrievedChunk",
    "IndexMetadata",
    "VectorStoreRecord",
    # Sessions
    "CanvasSession",
    "CanvasSnapshot",
    "Viewport",
    # Chats
    "ChatRecord",
]
