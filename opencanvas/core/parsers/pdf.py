"""PDF parser: page-by-page extraction via pypdf."""

import io

import pypdf

from opencanvas.core.parsers.base import DocumentParser
from opencanvas.models.chunk import ChunkMetadata, ParsedChunk
from opencanvas.utils.exceptions import ParseError
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)


class PDFParser(DocumentParser):
    """
    PDF parser.

    Strategy:
    - Extract text page by page with pypdf.PdfReader.
    - Window each page separately so chunks keep their page number.
    - A document with no extractable text (scanned images) yields a single
      placeholder chunk so the upload is still visible in the memory node.
    """

    extensions = (".pdf",)

    def parse(self, name: str, data: bytes) -> list[ParsedChunk]:
        try:
            reader = pypdf.PdfReader(io.BytesIO(data))
            pages = [page.extract_text() or "" for page in reader.pages]
        except Exception as e:
            logger.error(f"Failed to read PDF {name}: {e}")
            raise ParseError(f"Failed to read PDF {name}: {e}", context={"source": name}) from e

        chunks: list[ParsedChunk] = []
        for page_number, page_text in enumerate(pages, start=1):
            for segment in self._split(page_text):
                if len(chunks) >= self.max_chunks:
                    return chunks
                chunks.append(
                    ParsedChunk(
                        text=segment,
                        metadata=ChunkMetadata(source=name, type="pdf", page=page_number),
                    )
                )

        if not chunks:
            logger.warning(f"No extractable text in {name}")
            chunks.append(
                ParsedChunk(
                    text=f"[PDF: {name}] - No extractable text found. "
                    "This PDF may contain scanned images.",
                    metadata=ChunkMetadata(source=name, type="pdf", page=1),
                )
            )
        return chunks
