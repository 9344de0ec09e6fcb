"""
Parser selection by file extension.
"""

from pathlib import Path

from opencanvas.config import ChunkingConfig
from opencanvas.core.parsers.base import DocumentParser
from opencanvas.core.parsers.csv_parser import CSVParser
from opencanvas.core.parsers.markdown import MarkdownParser
from opencanvas.core.parsers.pdf import PDFParser
from opencanvas.core.parsers.text import TextParser
from opencanvas.models.chunk import ParsedChunk


class ParserRegistry:
    """Maps file extensions to parsers; unknown extensions parse as plain text."""

    def __init__(self, config: ChunkingConfig | None = None):
        config = config or ChunkingConfig()
        options = {
            "chunk_size": config.chunk_size,
            "overlap": config.chunk_overlap,
            "max_chunks": config.max_chunks,
        }
        self.fallback: DocumentParser = TextParser(**options)
        self._by_extension: dict[str, DocumentParser] = {}
        self.register(self.fallback)
        self.register(MarkdownParser(**options))
        self.register(CSVParser(**options))
        self.register(PDFParser(**options))

    def register(self, parser: DocumentParser) -> None:
        for extension in parser.extensions:
            self._by_extension[extension.lower()] = parser

    def parser_for(self, name: str) -> DocumentParser:
        return self._by_extension.get(Path(name).suffix.lower(), self.fallback)

    def parse(self, name: str, data: bytes) -> list[ParsedChunk]:
        """Parse a file with the parser matching its extension."""
        return self.parser_for(name).parse(name, data)

    def parse_file(self, path: str | Path) -> list[ParsedChunk]:
        path = Path(path)
        return self.parse(path.name, path.read_bytes())
