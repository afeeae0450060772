"""Extraction, normalisation and chunking of one document."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from docchat.errors import ExtractionFailed, UnsupportedKind

from .chunking import ChunkingConfig, SlidingWindowChunker
from .extractors import Extractor, default_extractors
from .models import Chunk, Document, DocumentKind, PageContent
from .text import detect_language, normalize_text

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestStatistics:
    """Summary of the last pipeline run, used for ingest telemetry."""

    pages: int = 0
    characters: int = 0
    language: Optional[str] = None
    duration_seconds: float = 0.0


@dataclass(slots=True)
class PipelineResult:
    chunks: List[Chunk]
    statistics: IngestStatistics = field(default_factory=IngestStatistics)


class IngestPipeline:
    """Turn a :class:`Document` into ordered, embedding-ready chunks."""

    def __init__(self, extractors: Optional[Mapping[DocumentKind, Extractor]] = None) -> None:
        self.extractors: Mapping[DocumentKind, Extractor] = (
            extractors if extractors is not None else default_extractors()
        )

    def extractor_for(self, kind: DocumentKind) -> Extractor:
        try:
            return self.extractors[kind]
        except KeyError:
            raise UnsupportedKind(f"No extractor registered for document kind {kind!r}") from None

    def run(self, document: Document, config: ChunkingConfig) -> PipelineResult:
        """Extract ``document`` and split it into chunks with ``config``."""

        started = time.perf_counter()
        extractor = self.extractor_for(document.kind)
        chunker = SlidingWindowChunker(config)

        pages = extractor.extract(document.content)
        normalized_pages = [
            PageContent(page_number=page.page_number, text=normalize_text(page.text))
            for page in pages
        ]
        full_text = "\n".join(page.text for page in normalized_pages)
        if not full_text.strip():
            raise ExtractionFailed(f"No text could be extracted from {document.source}")

        language = detect_language(full_text)
        LOGGER.debug("Language detected for %s: %s", document.source, language)

        chunks = list(chunker.chunk_pages(normalized_pages, document.source, language))
        LOGGER.info("Generated %s chunks for %s", len(chunks), document.source)
        return PipelineResult(
            chunks=chunks,
            statistics=IngestStatistics(
                pages=len(normalized_pages),
                characters=len(full_text),
                language=language,
                duration_seconds=time.perf_counter() - started,
            ),
        )
