"""Sliding-window chunking of extracted document text."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple

from docchat.errors import InputError

from .models import Chunk, ChunkMetadata, PageContent

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChunkingConfig:
    chunk_size: int
    chunk_overlap: int

    def validate(self) -> None:
        """Reject window settings that cannot make forward progress."""

        if self.chunk_size <= 0:
            raise InputError("chunk_size must be a positive integer")
        if self.chunk_overlap < 0:
            raise InputError("chunk_overlap must be a non-negative integer")
        if self.chunk_overlap >= self.chunk_size:
            raise InputError("chunk_overlap must be smaller than chunk_size")


class SlidingWindowChunker:
    """Split page text into overlapping windows of at most ``chunk_size`` characters.

    Consecutive chunks of a page repeat exactly ``chunk_overlap`` characters. A
    window end is pulled back to the last whitespace inside the window so words
    are not cut, unless that would leave less than the overlap plus one
    character of new text. The output depends only on the input text and the
    configuration.
    """

    def __init__(self, config: ChunkingConfig) -> None:
        config.validate()
        self.config = config

    def chunk_pages(
        self,
        pages: Iterable[PageContent],
        source: str,
        language: Optional[str] = None,
    ) -> Iterator[Chunk]:
        chunk_index = 0
        for page in pages:
            for chunk_text, start, end in self.split(page.text):
                LOGGER.debug(
                    "Chunk %s page %s offsets %s-%s",
                    chunk_index,
                    page.page_number,
                    start,
                    end,
                )
                yield Chunk(
                    index=chunk_index,
                    content=chunk_text,
                    metadata=ChunkMetadata(
                        source=source,
                        page=page.page_number,
                        char_start=start,
                        char_end=end,
                        language=language,
                    ),
                )
                chunk_index += 1

    def split(self, text: str) -> Iterator[Tuple[str, int, int]]:
        """Yield ``(chunk_text, start, end)`` windows over ``text``."""

        if not text or not text.strip():
            return
        size = self.config.chunk_size
        overlap = self.config.chunk_overlap
        text_length = len(text)
        start = 0
        while start < text_length:
            end = min(start + size, text_length)
            if end < text_length:
                end = self._snap_to_whitespace(text, start, end, overlap)
            yield text[start:end], start, end
            if end >= text_length:
                break
            start = end - overlap

    @staticmethod
    def _snap_to_whitespace(text: str, start: int, end: int, overlap: int) -> int:
        if text[end].isspace():
            return end
        minimum_end = start + overlap + 1
        for position in range(end - 1, minimum_end - 1, -1):
            if text[position].isspace():
                return position + 1
        return end
