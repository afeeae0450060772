"""Document ingestion: extraction, normalisation and chunking."""
from __future__ import annotations

from .chunking import ChunkingConfig, SlidingWindowChunker
from .extractors import (
    DocxExtractor,
    Extractor,
    PDFExtractor,
    SpreadsheetExtractor,
    WebPageExtractor,
    WebPageFetcher,
    default_extractors,
)
from .format_detection import DocumentKindDetector
from .models import Chunk, ChunkMetadata, Document, DocumentKind, PageContent
from .pipeline import IngestPipeline, IngestStatistics, PipelineResult

__all__ = [
    "Chunk",
    "ChunkMetadata",
    "ChunkingConfig",
    "DocumentKindDetector",
    "DocxExtractor",
    "Document",
    "DocumentKind",
    "Extractor",
    "IngestPipeline",
    "IngestStatistics",
    "PDFExtractor",
    "PageContent",
    "PipelineResult",
    "SlidingWindowChunker",
    "SpreadsheetExtractor",
    "WebPageExtractor",
    "WebPageFetcher",
    "default_extractors",
]
