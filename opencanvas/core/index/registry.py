"""
Registry of per-memory-node indices.

Loads indices lazily from the persistent store, hands out a lock per memory
node so concurrent uploads upsert one after another, and deletes an index
together with its node.
"""

import asyncio

from opencanvas.core.index.similarity import MemoryIndex
from opencanvas.core.storage.base import StorageAdapter
from opencanvas.models.chunk import IndexMetadata
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)


class IndexRegistry:
    """Owns the MemoryIndex of every memory node on the canvas."""

    def __init__(self, storage: StorageAdapter):
        """
        Initialize registry.

        Args:
            storage: Persistent store holding vector store records
        """
        self.storage = storage
        self._indices: dict[str, MemoryIndex] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def lock(self, memory_node_id: str) -> asyncio.Lock:
        """Lock serialising writes to one memory node's index."""
        if memory_node_id not in self._locks:
            self._locks[memory_node_id] = asyncio.Lock()
        return self._locks[memory_node_id]

    async def get(self, memory_node_id: str) -> MemoryIndex:
        """
        Get the index of a memory node, loading it from storage on first use.

        A node that has never been ingested gets an empty index.
        """
        index = self._indices.get(memory_node_id)
        if index is not None:
            return index

        record = await self.storage.get_vector_store(memory_node_id)
        if record is not None:
            index = MemoryIndex.from_record(record)
            logger.debug(f"Loaded index for {memory_node_id} with {index.count} chunks")
        else:
            index = MemoryIndex(index_id=memory_node_id)

        self._indices[memory_node_id] = index
        return index

    async def recorded_embedding(self, memory_node_id: str) -> IndexMetadata:
        index = await self.get(memory_node_id)
        return index.metadata

    async def save(
        self,
        memory_node_id: str,
        name: str | None = None,
        embedding_provider: str | None = None,
        embedding_model: str | None = None,
    ) -> None:
        """
        Persist a memory node's index.

        Args:
            memory_node_id: Memory node owning the index
            name: Display name stored with the record
            embedding_provider: Provider tag, kept unchanged when None
            embedding_model: Model tag, kept unchanged when None
        """
        index = await self.get(memory_node_id)
        if name is not None:
            index.name = name
        if embedding_provider is not None and embedding_model is not None:
            index.metadata = IndexMetadata(
                embedding_provider=embedding_provider, embedding_model=embedding_model
            )
        await self.storage.save_vector_store(memory_node_id, index.to_record())

    async def drop(self, memory_node_id: str) -> None:
        """Forget and delete the index of a removed memory node."""
        self._indices.pop(memory_node_id, None)
        self._locks.pop(memory_node_id, None)
        await self.storage.delete_vector_store(memory_node_id)
        logger.info(f"Deleted index for memory node {memory_node_id}")

    def clear_cache(self) -> None:
        """Drop cached indices; records stay in storage. Used when switching sessions."""
        self._indices.clear()
