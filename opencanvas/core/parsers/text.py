"""Plain text parser: fixed window with overlap."""

from opencanvas.core.parsers.base import DocumentParser
from opencanvas.models.chunk import ChunkMetadata, ParsedChunk


class TextParser(DocumentParser):
    """Split plain text into overlapping windows. Also the fallback for unknown types."""

    extensions = (".txt", ".text", ".log")

    def parse(self, name: str, data: bytes) -> list[ParsedChunk]:
        segments = self._split(self._decode(data))
        return [
            ParsedChunk(text=segment, metadata=ChunkMetadata(source=name, type="text", line=i + 1))
            for i, segment in enumerate(segments)
        ]
