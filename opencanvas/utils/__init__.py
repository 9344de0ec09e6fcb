"""Utility modules for OpenCanvas."""

from opencanvas.utils.exceptions import (
    ConfigurationError,
    CycleError,
    DimensionMismatchError,
    EmbeddingError,
    GraphError,
    LLMError,
    NotFoundError,
    OpenCanvasError,
    ParseError,
    SendInProgressError,
    StoreError,
    ValidationError,
)
from opencanvas.utils.id_generator import (
    generate_chat_node_id,
    generate_chunk_id,
    generate_edge_id,
    generate_memory_node_id,
    generate_message_id,
    generate_session_id,
)
from opencanvas.utils.logger import get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # ID Generators
    "generate_chat_node_id",
    "generate_memory_node_id",
    "generate_edge_id",
    "generate_session_id",
    "generate_chunk_id",
    "generate_message_id",
    # Exceptions
    "OpenCanvasError",
    "StoreError",
    "ValidationError",
    "NotFoundError",
    "ConfigurationError",
    "EmbeddingError",
    "LLMError",
    "DimensionMismatchError",
    "ParseError",
    "GraphError",
    "CycleError",
    "SendInProgressError",
]
