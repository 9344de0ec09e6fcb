"""Document chunk and vector store models."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class ChunkMetadata(BaseModel):
    """Provenance of a chunk. Parsers may add extra keys."""

    model_config = ConfigDict(extra="allow")

    source: str = Field(..., description="Name of the document the chunk came from")
    type: str = Field(default="text", description="Parser that produced the chunk")
    page: int | None = Field(default=None, description="Page or section number")
    line: int | None = Field(default=None, description="Line or row number")


class ParsedChunk(BaseModel):
    """Text segment produced by a document parser, before embedding."""

    text: str
    metadata: ChunkMetadata


class DocumentChunk(BaseModel):
    """An embedded (or not yet embedded) chunk stored in a memory index."""

    id: str = Field(..., description="Content-addressed chunk ID (<source>-N)")
    content: str
    embedding: list[float] | None = None
    metadata: ChunkMetadata


class ScoredChunk(BaseModel):
    """A chunk returned by a similarity search."""

    chunk: DocumentChunk
    score: float


class RetrievedChunk(BaseModel):
    """A search hit annotated with the memory node it came from."""

    chunk: DocumentChunk
    score: float
    memory_node_id: str
    memory_title: str


class IndexMetadata(BaseModel):
    """Embedding model that produced the vectors of an index."""

    embedding_provider: str | None = None
    embedding_model: str | None = None


class VectorStoreRecord(BaseModel):
    """Persisted form of a memory node's index."""

    id: str
    name: str
    chunks: list[DocumentChunk] = Field(default_factory=list)
    metadata: IndexMetadata = Field(default_factory=IndexMetadata)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
