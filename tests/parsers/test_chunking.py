"""
Tests for the fixed-window chunker.
"""

import string

import pytest

from opencanvas.core.parsers.base import chunk_text
from opencanvas.utils.exceptions import ValidationError


def distinct_text(length: int) -> str:
    """Text with no whitespace whose windows are all different."""
    alphabet = string.ascii_letters + string.digits
    return "".join(alphabet[(i // 7) % len(alphabet)] for i in range(length))


@pytest.mark.unit
class TestChunkText:
    """Test chunk_text windows."""

    def test_default_window_over_2400_chars(self):
        """Windows start at 0, 800 and 1600 and the last one ends the text."""
        text = distinct_text(2400)

        chunks = chunk_text(text, chunk_size=1000, overlap=200)

        assert chunks == [text[0:1000], text[800:1800], text[1600:2400]]

    def test_short_text_is_one_chunk(self):
        assert chunk_text("just a few words") == ["just a few words"]

    def test_exact_window_is_one_chunk(self):
        text = distinct_text(1000)
        assert chunk_text(text, chunk_size=1000, overlap=200) == [text]

    def test_empty_and_blank_text(self):
        assert chunk_text("") == []
        assert chunk_text("   \n\t ") == []

    def test_segments_are_stripped(self):
        assert chunk_text("  padded  ", chunk_size=100, overlap=10) == ["padded"]

    def test_overlap_not_smaller_than_size_is_capped(self):
        """An overlap >= chunk_size falls back to 20% of chunk_size."""
        text = distinct_text(250)

        chunks = chunk_text(text, chunk_size=100, overlap=100)

        assert chunks == [text[0:100], text[80:180], text[160:250]]

    def test_zero_overlap(self):
        text = distinct_text(30)
        assert chunk_text(text, chunk_size=10, overlap=0) == [
            text[0:10],
            text[10:20],
            text[20:30],
        ]

    def test_max_chunks(self):
        chunks = chunk_text(distinct_text(10_000), chunk_size=100, overlap=0, max_chunks=5)
        assert len(chunks) == 5

    def test_invalid_chunk_size(self):
        with pytest.raises(ValidationError):
            chunk_text("text", chunk_size=0)

    def test_negative_overlap(self):
        with pytest.raises(ValidationError):
            chunk_text("text", chunk_size=10, overlap=-1)
