"""
ID generation utilities for OpenCanvas.

Provides consistent ID generation for all entity types:
- Chat nodes: chat_xxx
- Memory nodes: memory_xxx
- Edges: edge-<source>-<target>
- Sessions: canvas-xxx
- Chunks: <source>-N (content-addressed, stable across re-ingestion)
"""

from uuid import uuid4


def generate_chat_node_id() -> str:
    """
    Generate unique Chat node ID.

    Returns:
        ID in format "chat_xxx" where xxx is 12 hex characters
    """
    return f"chat_{uuid4().hex[:12]}"


def generate_memory_node_id() -> str:
    """
    Generate unique Memory node ID.

    Returns:
        ID in format "memory_xxx" where xxx is 12 hex characters
    """
    return f"memory_{uuid4().hex[:12]}"


def generate_edge_id(source: str, target: str) -> str:
    """
    Generate Edge ID from its endpoints.

    Args:
        source: Source node ID
        target: Target node ID

    Returns:
        ID in format "edge-<source>-<target>"
    """
    return f"edge-{source}-{target}"


def generate_session_id() -> str:
    """
    Generate unique canvas session ID.

    Returns:
        ID in format "canvas-xxx" where xxx is 12 hex characters
    """
    return f"canvas-{uuid4().hex[:12]}"


def generate_chunk_id(source: str, chunk_index: int) -> str:
    """
    Generate Chunk ID from its source and position.

    The same file re-ingested produces the same IDs, so upserts replace
    earlier chunks instead of duplicating them.

    Args:
        source: Source document name
        chunk_index: Zero-based chunk position within the source

    Returns:
        ID in format "<source>-N"
    """
    return f"{source}-{chunk_index}"


def generate_message_id() -> str:
    """
    Generate unique chat message ID.

    Returns:
        ID in format "msg_xxx" where xxx is 12 hex characters
    """
    return f"msg_{uuid4().hex[:12]}"
