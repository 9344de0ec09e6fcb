"""CSV parser: one chunk per data row."""

import csv
import io

from opencanvas.core.parsers.base import DocumentParser
from opencanvas.models.chunk import ChunkMetadata, ParsedChunk
from opencanvas.utils.exceptions import ParseError


class CSVParser(DocumentParser):
    """
    CSV parser.

    The first row is the header. Each following row becomes
    "header: value, header: value" and records its 1-based file line.
    """

    extensions = (".csv",)

    def parse(self, name: str, data: bytes) -> list[ParsedChunk]:
        try:
            rows = list(csv.reader(io.StringIO(self._decode(data))))
        except csv.Error as e:
            raise ParseError(f"Invalid CSV in {name}: {e}", context={"source": name}) from e

        if len(rows) < 2:
            return []

        headers = [h.strip() for h in rows[0]]
        chunks: list[ParsedChunk] = []
        for row_index, row in enumerate(rows[1:]):
            if not any(cell.strip() for cell in row):
                continue
            pairs = [
                f"{header}: {value.strip()}"
                for header, value in zip(headers, row, strict=False)
            ]
            chunks.append(
                ParsedChunk(
                    text=", ".join(pairs),
                    metadata=ChunkMetadata(source=name, type="csv", line=row_index + 2),
                )
            )
            if len(chunks) >= self.max_chunks:
                break
        return chunks
