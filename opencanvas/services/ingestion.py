"""
Chunk ingestion into memory nodes.

Uploaded files are parsed, each chunk is embedded on its own (a failed chunk
is logged and skipped), and the embedded chunks are upserted into the memory
node's index. Chunk IDs derive from the source name and position, so
re-uploading a file replaces its chunks instead of duplicating them.
"""

from collections.abc import Awaitable, Callable

from pydantic import BaseModel, Field

from opencanvas.core.embeddings.base import Embedder
from opencanvas.core.graph.commands import GraphChange, GraphCommand, UpdateMemoryStats
from opencanvas.core.graph.store import CanvasGraph
from opencanvas.core.index.registry import IndexRegistry
from opencanvas.core.parsers.registry import ParserRegistry
from opencanvas.models.chunk import DocumentChunk, ParsedChunk
from opencanvas.models.node import NodeKind
from opencanvas.services.providers import ProviderPool
from opencanvas.utils.exceptions import (
    EmbeddingError,
    ParseError,
    ValidationError,
)
from opencanvas.utils.id_generator import generate_chunk_id
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)

CommandSink = Callable[[GraphCommand], Awaitable[GraphChange]]


class UploadedFile(BaseModel):
    """A file handed to a memory node."""

    name: str
    data: bytes


class IngestionResult(BaseModel):
    """Summary of one ingestion run."""

    memory_node_id: str
    embedded: int = 0
    failed: int = 0
    skipped_sources: list[str] = Field(default_factory=list)
    chunk_count: int = 0
    document_count: int = 0
    embedding_provider: str | None = None
    embedding_model: str | None = None


class IngestionPipeline:
    """Parses, embeds and indexes documents for memory nodes."""

    def __init__(
        self,
        graph: CanvasGraph,
        indices: IndexRegistry,
        providers: ProviderPool,
        parsers: ParserRegistry,
        commit: CommandSink,
    ):
        """
        Initialize ingestion pipeline.

        Args:
            graph: Canvas graph, read to check the target node
            indices: Per-memory-node indices
            providers: Provider clients; the default embedder is used
            parsers: Parser selection by file extension
            commit: Applies a graph command and schedules persistence
        """
        self.graph = graph
        self.indices = indices
        self.providers = providers
        self.parsers = parsers
        self.commit = commit

    def parse_files(self, files: list[UploadedFile]) -> tuple[list[DocumentChunk], list[str]]:
        """
        Parse files into un-embedded chunks with content-addressed IDs.

        Returns:
            (chunks, names of files that could not be parsed)
        """
        chunks: list[DocumentChunk] = []
        skipped: list[str] = []
        for upload in files:
            try:
                parsed = self.parsers.parse(upload.name, upload.data)
            except (ParseError, ValidationError) as e:
                logger.error(f"Skipping {upload.name}: {e.message}")
                skipped.append(upload.name)
                continue
            chunks.extend(self._to_chunks(upload.name, parsed))
            logger.info(f"Parsed {upload.name} into {len(parsed)} chunks")
        return chunks, skipped

    @staticmethod
    def _to_chunks(source: str, parsed: list[ParsedChunk]) -> list[DocumentChunk]:
        return [
            DocumentChunk(
                id=generate_chunk_id(source, position), content=item.text, metadata=item.metadata
            )
            for position, item in enumerate(parsed)
        ]

    async def embed_chunks(
        self, embedder: Embedder, chunks: list[DocumentChunk]
    ) -> tuple[list[DocumentChunk], int]:
        """
        Embed chunks one by one.

        Returns:
            (embedded chunks, number of chunks that failed)
        """
        embedded: list[DocumentChunk] = []
        failed = 0
        for chunk in chunks:
            try:
                vector = await embedder.embed(chunk.content)
            except (EmbeddingError, ValidationError) as e:
                failed += 1
                logger.error(
                    f"Failed to embed chunk {chunk.id}, skipping: {e.message}",
                )
                continue
            embedded.append(chunk.model_copy(update={"embedding": vector}))
        return embedded, failed

    async def ingest_files(
        self, memory_node_id: str, files: list[UploadedFile]
    ) -> IngestionResult | None:
        """
        Parse, embed and index files into a memory node.

        Args:
            memory_node_id: Target memory node
            files: Uploaded files

        Returns:
            IngestionResult, or None if the node doesn't exist (or vanished
            before the chunks could be stored)

        Raises:
            ConfigurationError: If the default embedding provider is unavailable
        """
        node = self.graph.get_node(memory_node_id)
        if node is None or node.kind != NodeKind.MEMORY:
            logger.warning(f"Upload ignored, memory node {memory_node_id} not found")
            return None

        chunks, skipped = self.parse_files(files)
        result = await self.ingest_chunks(memory_node_id, chunks)
        if result is not None:
            result.skipped_sources = skipped
        return result

    async def ingest_chunks(
        self, memory_node_id: str, chunks: list[DocumentChunk]
    ) -> IngestionResult | None:
        """
        Embed and upsert already parsed chunks into a memory node's index.

        The index is tagged with the embedding provider and model once at least
        one chunk was embedded.
        """
        node = self.graph.get_node(memory_node_id)
        if node is None or node.kind != NodeKind.MEMORY:
            logger.warning(f"Ingestion ignored, memory node {memory_node_id} not found")
            return None

        embedder = self.providers.default_embedder()
        embedded, failed = await self.embed_chunks(embedder, chunks)

        async with self.indices.lock(memory_node_id):
            node = self.graph.get_node(memory_node_id)
            if node is None:
                logger.info(f"Memory node {memory_node_id} deleted during ingestion, discarding")
                return None

            index = await self.indices.get(memory_node_id)
            index.upsert(embedded)

            tag_provider = embedder.provider if embedded else None
            tag_model = embedder.model if embedded else None
            await self.indices.save(
                memory_node_id,
                name=node.title,
                embedding_provider=tag_provider,
                embedding_model=tag_model,
            )

            result = IngestionResult(
                memory_node_id=memory_node_id,
                embedded=len(embedded),
                failed=failed,
                chunk_count=index.count,
                document_count=len(index.sources()),
                embedding_provider=index.metadata.embedding_provider,
                embedding_model=index.metadata.embedding_model,
            )

            await self.commit(
                UpdateMemoryStats(
                    node_id=memory_node_id,
                    chunk_count=result.chunk_count,
                    document_count=result.document_count,
                    embedding_provider=tag_provider,
                    embedding_model=tag_model,
                )
            )

        logger.info(
            f"Ingested {result.embedded} chunks into {memory_node_id} "
            f"({result.failed} failed, {result.chunk_count} total)"
        )
        return result
