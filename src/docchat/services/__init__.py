"""Ingestion and chat orchestration."""
from __future__ import annotations

from .chat import Answer, ChatResponder, SourceReference
from .ingestion import IngestionCoordinator, IngestResult

__all__ = [
    "Answer",
    "ChatResponder",
    "IngestResult",
    "IngestionCoordinator",
    "SourceReference",
]
