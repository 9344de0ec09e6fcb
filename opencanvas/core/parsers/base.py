"""
Base parser interface and the shared fixed-window chunker.
"""

from abc import ABC, abstractmethod

from opencanvas.models.chunk import ParsedChunk
from opencanvas.utils.exceptions import ValidationError

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200
MAX_CHUNKS = 10000


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
    max_chunks: int = MAX_CHUNKS,
) -> list[str]:
    """
    Split text into fixed-size character windows that overlap.

    Windows start every chunk_size - overlap characters and stop once a window
    reaches the end of the text, so 2400 characters give windows at 0, 800
    and 1600. Segments are stripped and empty ones dropped.

    Args:
        text: Text to split
        chunk_size: Window size in characters
        overlap: Characters shared by consecutive windows; capped to 20% of
            chunk_size when it is not smaller than chunk_size
        max_chunks: Upper bound on the number of segments

    Returns:
        Ordered list of text segments

    Raises:
        ValidationError: If chunk_size is not positive or overlap is negative
    """
    if chunk_size < 1:
        raise ValidationError("chunk_size must be >= 1", context={"chunk_size": chunk_size})
    if overlap < 0:
        raise ValidationError("overlap must be >= 0", context={"overlap": overlap})
    if overlap >= chunk_size:
        overlap = int(chunk_size * 0.2)

    if not text or not text.strip():
        return []

    step = max(1, chunk_size - overlap)
    segments: list[str] = []
    pos = 0
    length = len(text)

    while pos < length and len(segments) < max_chunks:
        end = min(pos + chunk_size, length)
        segment = text[pos:end].strip()
        if segment:
            segments.append(segment)
        if end >= length:
            break
        pos += step

    return segments


class DocumentParser(ABC):
    """
    Abstract base for document parsers.

    Subclasses turn the raw bytes of one uploaded file into ordered text
    chunks with provenance metadata.
    """

    extensions: tuple[str, ...] = ()

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_CHUNK_OVERLAP,
        max_chunks: int = MAX_CHUNKS,
    ):
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.max_chunks = max_chunks

    @abstractmethod
    def parse(self, name: str, data: bytes) -> list[ParsedChunk]:
        """
        Parse a document.

        Args:
            name: File name, recorded as the chunk source
            data: Raw file content

        Returns:
            Ordered list of parsed chunks

        Raises:
            ParseError: If the document cannot be read
        """
        pass

    def _split(self, text: str) -> list[str]:
        return chunk_text(text, self.chunk_size, self.overlap, self.max_chunks)

    @staticmethod
    def _decode(data: bytes) -> str:
        return data.decode("utf-8", errors="replace")
