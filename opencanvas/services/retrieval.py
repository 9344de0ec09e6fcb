"""
Retrieval over the memory nodes attached to a chat node.

The query is embedded once, each attached index contributes its best few
chunks, and the merged list is cut to a global top K. Every failure here
degrades to "no retrieved context"; the send itself goes on.
"""

from pydantic import BaseModel, Field

from opencanvas.config import RetrievalConfig
from opencanvas.core.graph.store import CanvasGraph
from opencanvas.core.index.registry import IndexRegistry
from opencanvas.models.chunk import RetrievedChunk
from opencanvas.models.message import Message, Role
from opencanvas.services.providers import ProviderPool
from opencanvas.utils.exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    EmbeddingError,
    ValidationError,
)
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)

CONTEXT_BLOCK_HEADER = "Relevant context from memory:"
RAG_PREAMBLE = "The following context is retrieved from attached memory nodes:"
RAG_INSTRUCTION = "Use this context to inform your response."


class RetrievalResult(BaseModel):
    """Outcome of one retrieval pass."""

    hits: list[RetrievedChunk] = Field(default_factory=list)
    query_provider: str
    query_model: str
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def context_block(self) -> str:
        """Ranked hits formatted for the prompt, empty when nothing matched."""
        if not self.hits:
            return ""
        entries = [
            f'[{rank}] (from "{hit.memory_title}"): {hit.chunk.content}'
            for rank, hit in enumerate(self.hits, start=1)
        ]
        return f"\n\n{CONTEXT_BLOCK_HEADER}\n" + "\n\n".join(entries)

    def to_system_message(self) -> Message | None:
        block = self.context_block
        if not block:
            return None
        return Message(role=Role.SYSTEM, content=f"{RAG_PREAMBLE}{block}\n\n{RAG_INSTRUCTION}")


class RetrievalEngine:
    """Searches the memory nodes attached to a chat node."""

    def __init__(
        self,
        graph: CanvasGraph,
        indices: IndexRegistry,
        providers: ProviderPool,
        config: RetrievalConfig | None = None,
    ):
        """
        Initialize retrieval engine.

        Args:
            graph: Canvas graph (source of attachments)
            indices: Per-memory-node indices
            providers: Provider clients and default embedding settings
            config: Top-K settings
        """
        self.graph = graph
        self.indices = indices
        self.providers = providers
        self.config = config or RetrievalConfig()

    async def _recorded_embedding(self, memory_node_id: str) -> tuple[str | None, str | None]:
        metadata = await self.indices.recorded_embedding(memory_node_id)
        if metadata.embedding_provider and metadata.embedding_model:
            return metadata.embedding_provider, metadata.embedding_model

        node = self.graph.get_node(memory_node_id)
        if node is not None and node.is_memory:
            return node.payload.embedding_provider, node.payload.embedding_model
        return None, None

    async def retrieve(self, chat_node_id: str, query: str) -> RetrievalResult | None:
        """
        Retrieve chunks relevant to a query from the chat node's attached memories.

        Args:
            chat_node_id: Chat node sending the query
            query: User message text

        Returns:
            RetrievalResult, or None when retrieval was skipped or aborted
        """
        attached = [
            memory_id
            for memory_id in self.graph.attached_memory_ids(chat_node_id)
            if self.graph.get_node(memory_id) is not None
        ]
        if not attached or not query.strip():
            return None

        recorded = {memory_id: await self._recorded_embedding(memory_id) for memory_id in attached}
        tagged = [(p, m) for p, m in recorded.values() if p and m]

        warnings: list[str] = []
        if tagged:
            query_provider, query_model = tagged[0]
            if len({p for p, _ in tagged}) > 1:
                warnings.append(
                    "Attached memory nodes were embedded with different providers; "
                    f"querying with {query_provider}"
                )
                logger.warning("{}", warnings[-1], extra={"chat_node_id": chat_node_id})
        else:
            query_provider, query_model = self.providers.settings.default_embedding()

        try:
            embedder = self.providers.embedder(query_provider, query_model)
            query_embedding = await embedder.embed(query)
        except (ConfigurationError, EmbeddingError, ValidationError) as e:
            logger.warning(
                "Query embedding failed, continuing without retrieved context: {}",
                e,
                extra={"provider": query_provider, "model": query_model},
            )
            return None

        result = RetrievalResult(
            query_provider=query_provider, query_model=query_model, warnings=warnings
        )
        candidates: list[RetrievedChunk] = []

        for memory_id in attached:
            provider, model = recorded[memory_id]
            if provider and provider != query_provider:
                message = (
                    f"Memory node {memory_id} was embedded with {provider}, "
                    f"query uses {query_provider}; results may be inaccurate"
                )
                result.warnings.append(message)
                logger.warning(message)
            elif provider == query_provider and model and model != query_model:
                message = (
                    f"Memory node {memory_id} was embedded with model {model}, "
                    f"query uses {query_model}; results may be less accurate"
                )
                result.warnings.append(message)
                logger.warning(message)

            node = self.graph.get_node(memory_id)
            title = node.title if node is not None and node.title else memory_id
            index = await self.indices.get(memory_id)
            try:
                hits = index.search(query_embedding, self.config.per_index_top_k)
            except DimensionMismatchError as e:
                result.errors.append(f"{memory_id}: {e.message}")
                logger.error(
                    "Search failed for memory node {}: {}",
                    memory_id,
                    e.message,
                    extra={"memory_node_id": memory_id},
                )
                continue

            candidates.extend(
                RetrievedChunk(
                    chunk=hit.chunk, score=hit.score, memory_node_id=memory_id, memory_title=title
                )
                for hit in hits
            )

        candidates.sort(key=lambda hit: hit.score, reverse=True)
        result.hits = candidates[: self.config.total_top_k]
        logger.debug(
            f"Retrieved {len(result.hits)} of {len(candidates)} chunks for {chat_node_id}"
        )
        return result
