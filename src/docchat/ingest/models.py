"""Data models used by the ingestion pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class DocumentKind(str, Enum):
    """Document kinds accepted by the ingestion coordinator."""

    PDF = "pdf"
    DOCX = "docx"
    SPREADSHEET = "spreadsheet"
    WEB = "web"


@dataclass(frozen=True, slots=True)
class Document:
    """Raw input for a single ingestion call."""

    content: bytes = field(repr=False)
    kind: DocumentKind
    source: str
    mime_type: Optional[str] = None

    @classmethod
    def from_url(cls, url: str) -> "Document":
        """Create a web document whose bytes are fetched during ingestion."""

        return cls(content=b"", kind=DocumentKind.WEB, source=url, mime_type="text/html")

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True, slots=True)
class PageContent:
    """Represents text extracted from a page (or sheet) in the source document."""

    page_number: int
    text: str


@dataclass(frozen=True, slots=True)
class ChunkMetadata:
    """Metadata attached to an individual chunk."""

    source: str
    page: int
    char_start: int
    char_end: int
    language: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Chunk:
    """A contiguous slice of extracted text and its position in the document."""

    index: int
    content: str
    metadata: ChunkMetadata

    @property
    def source(self) -> str:
        return self.metadata.source
