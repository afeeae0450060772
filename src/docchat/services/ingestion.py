"""Build a chunk index from one document and publish it to the session store."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from docchat.embeddings import EmbeddingModel
from docchat.errors import (
    DocChatError,
    EmbeddingFailed,
    ExtractionFailed,
    InputError,
)
from docchat.ingest import (
    ChunkingConfig,
    Document,
    DocumentKind,
    IngestPipeline,
    WebPageFetcher,
)
from docchat.logging_config import AUDIT_LOGGER_NAME
from docchat.session import SessionStore
from docchat.settings import Settings
from docchat.telemetry import emit_exception, emit_ingest_event, traced_duration
from docchat.vectorstore import Attachment, ChunkIndex

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)

_ATTACHABLE_KINDS = {DocumentKind.PDF: "application/pdf"}


@dataclass(slots=True)
class IngestResult:
    """Structured result returned from :meth:`IngestionCoordinator.ingest`."""

    index: ChunkIndex
    version: int
    chunk_count: int
    pages: int
    language: Optional[str]
    duration_seconds: float

    @property
    def source(self) -> str:
        return self.index.source

    @property
    def kind(self) -> DocumentKind:
        return self.index.kind


class IngestionCoordinator:
    """Extract, chunk and embed a document, then replace the active index.

    The session store is only touched after every chunk has an embedding, so a
    failed ingestion leaves the previously active index in place.
    """

    def __init__(
        self,
        *,
        store: SessionStore,
        embedding_model: EmbeddingModel,
        settings: Settings,
        pipeline: IngestPipeline | None = None,
        fetcher: WebPageFetcher | None = None,
    ) -> None:
        self.store = store
        self.embedding_model = embedding_model
        self.settings = settings
        self.pipeline = pipeline or IngestPipeline()
        self.fetcher = fetcher or WebPageFetcher(
            timeout=settings.web_fetch_timeout, max_bytes=settings.max_upload_bytes
        )

    def ingest(
        self,
        document: Document,
        chunk_size: int | None = None,
        chunk_overlap: int | None = None,
    ) -> IngestResult:
        config = ChunkingConfig(
            chunk_size=self.settings.chunk_size if chunk_size is None else chunk_size,
            chunk_overlap=self.settings.chunk_overlap if chunk_overlap is None else chunk_overlap,
        )
        started = time.perf_counter()
        try:
            config.validate()
            self.pipeline.extractor_for(document.kind)
            document = self._resolve_content(document)
            emit_ingest_event(
                "ingest.start",
                source=document.source,
                kind=document.kind.value,
                size_bytes=document.size,
            )
            result = self._build_index(document, config)
        except DocChatError as error:
            emit_exception(module=f"{__name__}.ingest", error=error)
            raise

        version = self.store.replace(result.index)
        result.version = version
        result.duration_seconds = time.perf_counter() - started
        emit_ingest_event(
            "ingest.complete",
            source=document.source,
            kind=document.kind.value,
            size_bytes=document.size,
            duration_ms=result.duration_seconds * 1000.0,
            language=result.language,
            pages=result.pages,
            chunks=result.chunk_count,
        )
        AUDIT_LOGGER.info(
            {
                "event": "ingest",
                "source": document.source,
                "kind": document.kind.value,
                "chunk_count": result.chunk_count,
                "version": version,
            }
        )
        return result

    def _resolve_content(self, document: Document) -> Document:
        if document.kind is DocumentKind.WEB and not document.content:
            if not document.source or not document.source.strip():
                raise InputError("A web URL is required")
            page = self.fetcher.fetch(document.source.strip())
            document = Document(
                content=page.content,
                kind=DocumentKind.WEB,
                source=page.url,
                mime_type="text/html",
            )
        if not document.content:
            raise InputError(f"Document {document.source or '<unnamed>'} is empty")
        return document

    def _build_index(self, document: Document, config: ChunkingConfig) -> IngestResult:
        try:
            with traced_duration("ingest.pipeline", logger=LOGGER, source=document.source):
                pipeline_result = self.pipeline.run(document, config)
        except DocChatError:
            raise
        except Exception as error:
            LOGGER.exception("Ingest pipeline failed for %s", document.source)
            raise ExtractionFailed(f"Failed to process {document.source}", cause=error) from error

        chunks = pipeline_result.chunks
        if not chunks:
            raise ExtractionFailed(f"No text could be extracted from {document.source}")

        try:
            embeddings = self.embedding_model.embed_texts([chunk.content for chunk in chunks])
            index = ChunkIndex(
                chunks,
                embeddings,
                source=document.source,
                kind=document.kind,
                attachment=self._attachment_for(document),
            )
        except Exception as error:
            LOGGER.exception("Embedding failed for %s", document.source)
            raise EmbeddingFailed(f"Failed to embed {document.source}: {error}", cause=error) from error

        stats = pipeline_result.statistics
        return IngestResult(
            index=index,
            version=0,
            chunk_count=len(chunks),
            pages=stats.pages,
            language=stats.language,
            duration_seconds=stats.duration_seconds,
        )

    @staticmethod
    def _attachment_for(document: Document) -> Optional[Attachment]:
        mime_type = _ATTACHABLE_KINDS.get(document.kind)
        if mime_type is None:
            return None
        return Attachment(data=document.content, mime_type=mime_type, name=document.source)


__all__ = ["IngestResult", "IngestionCoordinator"]
