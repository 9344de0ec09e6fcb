"""Markdown parser: split on headings, then window each section."""

import re

from opencanvas.core.parsers.base import DocumentParser
from opencanvas.models.chunk import ChunkMetadata, ParsedChunk

_HEADING_SPLIT = re.compile(r"(?=^#+\s)", re.MULTILINE)


class MarkdownParser(DocumentParser):
    """
    Markdown parser.

    Each heading starts a section; sections longer than the window are split
    further. The section ordinal is recorded as the chunk's page.
    """

    extensions = (".md", ".markdown")

    def parse(self, name: str, data: bytes) -> list[ParsedChunk]:
        sections = [s for s in _HEADING_SPLIT.split(self._decode(data)) if s.strip()]

        chunks: list[ParsedChunk] = []
        for section_index, section in enumerate(sections):
            for segment in self._split(section):
                if len(chunks) >= self.max_chunks:
                    return chunks
                chunks.append(
                    ParsedChunk(
                        text=segment,
                        metadata=ChunkMetadata(
                            source=name, type="markdown", page=section_index + 1
                        ),
                    )
                )
        return chunks
