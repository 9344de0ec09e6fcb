"""
In-memory similarity index for a single memory node.

Exact cosine search over a few thousand chunks; no ANN structure is needed at
canvas scale.
"""

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

import numpy as np

from opencanvas.models.chunk import DocumentChunk, IndexMetadata, ScoredChunk, VectorStoreRecord
from opencanvas.utils.exceptions import DimensionMismatchError


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        dot(a, b) / (|a| * |b|), or 0.0 when either vector has zero norm

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise DimensionMismatchError(
            f"Cannot compare vectors of length {len(a)} and {len(b)}",
            context={"left": len(a), "right": len(b)},
        )

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return float(np.dot(va, vb) / (norm_a * norm_b))


class MemoryIndex:
    """
    Chunks of one memory node keyed by chunk ID.

    Insertion order is kept; re-upserting an existing ID replaces the chunk
    in place (last write wins).
    """

    def __init__(
        self,
        index_id: str,
        name: str = "",
        metadata: IndexMetadata | None = None,
        created_at: datetime | None = None,
    ):
        self.index_id = index_id
        self.name = name
        self.metadata = metadata or IndexMetadata()
        self.created_at = created_at or datetime.now(UTC)
        self._chunks: dict[str, DocumentChunk] = {}

    def upsert(self, chunks: Iterable[DocumentChunk]) -> None:
        for chunk in chunks:
            self._chunks[chunk.id] = chunk

    def remove(self, chunk_ids: Iterable[str]) -> None:
        for chunk_id in chunk_ids:
            self._chunks.pop(chunk_id, None)

    def get(self, chunk_id: str) -> DocumentChunk | None:
        return self._chunks.get(chunk_id)

    def chunks(self) -> list[DocumentChunk]:
        return list(self._chunks.values())

    @property
    def count(self) -> int:
        return len(self._chunks)

    def sources(self) -> list[str]:
        """Distinct source document names, in first-seen order."""
        return list(dict.fromkeys(chunk.metadata.source for chunk in self._chunks.values()))

    def search(self, query: Sequence[float], top_k: int) -> list[ScoredChunk]:
        """
        Rank chunks by cosine similarity to the query.

        Chunks without an embedding are skipped. Ties keep insertion order.

        Args:
            query: Query embedding
            top_k: Maximum number of results

        Returns:
            At most top_k results sorted by descending score

        Raises:
            DimensionMismatchError: If a stored embedding differs in length from the query
        """
        if top_k <= 0:
            return []

        scored = [
            ScoredChunk(chunk=chunk, score=cosine_similarity(query, chunk.embedding))
            for chunk in self._chunks.values()
            if chunk.embedding is not None
        ]
        scored.sort(key=lambda item: item.score, reverse=True)
        return scored[:top_k]

    def to_record(self) -> VectorStoreRecord:
        return VectorStoreRecord(
            id=self.index_id,
            name=self.name,
            chunks=self.chunks(),
            metadata=self.metadata,
            created_at=self.created_at,
            updated_at=datetime.now(UTC),
        )

    @classmethod
    def from_record(cls, record: VectorStoreRecord) -> "MemoryIndex":
        index = cls(
            index_id=record.id,
            name=record.name,
            metadata=record.metadata,
            created_at=record.created_at,
        )
        index.upsert(record.chunks)
        return index
