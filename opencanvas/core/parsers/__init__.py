"""
Document parsers turning uploaded files into text chunks.

Supported formats:
- Plain text (fallback for unknown extensions)
- Markdown
- CSV
- PDF (pypdf)
"""

from opencanvas.core.parsers.base import DocumentParser, chunk_text
from opencanvas.core.parsers.csv_parser import CSVParser
from opencanvas.core.parsers.markdown import MarkdownParser
from opencanvas.core.parsers.pdf import PDFParser
from opencanvas.core.parsers.registry import ParserRegistry
from opencanvas.core.parsers.text import TextParser

__all__ = [
    "DocumentParser",
    "chunk_text",
    "TextParser",
    "MarkdownParser",
    "CSVParser",
    "PDFParser",
    "ParserRegistry",
]
