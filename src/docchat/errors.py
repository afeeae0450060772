"""Exception taxonomy shared by ingestion and chat."""
from __future__ import annotations


class DocChatError(RuntimeError):
    """Base class for failures surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class InputError(DocChatError):
    """Raised when the caller supplied a missing or invalid file, URL or question."""

    status_code = 400


class UnsupportedKind(DocChatError):
    """Raised when no extractor is registered for the declared document kind."""

    status_code = 400


class NotInitialized(DocChatError):
    """Raised when a question arrives before any document was ingested."""

    status_code = 400

    def __init__(self, message: str = "No document has been initialized yet", **kwargs) -> None:
        super().__init__(message, **kwargs)


class ExtractionFailed(DocChatError):
    """Raised when a parser or page fetch cannot produce text."""


class EmbeddingFailed(DocChatError):
    """Raised when the embedding backend fails while indexing."""


class RetrievalFailed(DocChatError):
    """Raised when the question cannot be embedded or searched."""


class ModelFailed(DocChatError):
    """Raised when the generative model errors or returns an unusable response."""


__all__ = [
    "DocChatError",
    "EmbeddingFailed",
    "ExtractionFailed",
    "InputError",
    "ModelFailed",
    "NotInitialized",
    "RetrievalFailed",
    "UnsupportedKind",
]
