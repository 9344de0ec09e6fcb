"""Similarity search over memory node chunks."""

from opencanvas.core.index.registry import IndexRegistry
from opencanvas.core.index.similarity import MemoryIndex, cosine_similarity

__all__ = [
    "MemoryIndex",
    "IndexRegistry",
    "cosine_similarity",
]
