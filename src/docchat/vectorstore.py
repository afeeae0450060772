"""Immutable in-memory index of chunk embeddings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import numpy as np

from docchat.ingest.models import Chunk, DocumentKind


@dataclass(frozen=True, slots=True)
class Attachment:
    """Original document bytes that can be forwarded to the generative model."""

    data: bytes = field(repr=False)
    mime_type: str
    name: str


@dataclass(frozen=True, slots=True)
class ChunkSearchResult:
    """A retrieved chunk and its cosine similarity to the query."""

    chunk: Chunk
    score: float


class ChunkIndex:
    """Ordered (chunk, embedding) pairs searchable by cosine similarity.

    An index is built once from a complete set of chunks and vectors and is
    never mutated afterwards. Search ranks by descending cosine similarity and
    breaks ties by ascending chunk index.
    """

    def __init__(
        self,
        chunks: Sequence[Chunk],
        embeddings: Sequence[Sequence[float]],
        *,
        source: str,
        kind: DocumentKind,
        attachment: Optional[Attachment] = None,
    ) -> None:
        if not chunks:
            raise ValueError("An index needs at least one chunk")
        if len(chunks) != len(embeddings):
            raise ValueError("All inputs must be of the same length")

        matrix = np.asarray(embeddings, dtype=np.float64)
        if matrix.ndim != 2:
            raise ValueError("Embeddings must all have the same dimension")
        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        norms[norms == 0.0] = 1.0
        unit = matrix / norms
        unit.setflags(write=False)

        self._chunks: tuple[Chunk, ...] = tuple(chunks)
        self._unit_vectors = unit
        self.source = source
        self.kind = kind
        self.attachment = attachment
        self.created_at = datetime.now(timezone.utc)

    def __len__(self) -> int:
        return len(self._chunks)

    @property
    def chunks(self) -> tuple[Chunk, ...]:
        return self._chunks

    @property
    def dimension(self) -> int:
        return int(self._unit_vectors.shape[1])

    def search(self, query_embedding: Sequence[float], k: int) -> List[ChunkSearchResult]:
        """Return up to ``k`` chunks most similar to ``query_embedding``."""

        if k <= 0:
            return []
        query = np.asarray(query_embedding, dtype=np.float64)
        if query.shape != (self.dimension,):
            raise ValueError(
                f"Query vector has dimension {query.shape[-1] if query.ndim else 0}, "
                f"index expects {self.dimension}"
            )
        norm = np.linalg.norm(query)
        if norm:
            query = query / norm
        scores = self._unit_vectors @ query
        # lexsort sorts by the last key first: score descending, then position.
        order = np.lexsort((np.arange(len(scores)), -scores))[:k]
        return [ChunkSearchResult(chunk=self._chunks[i], score=float(scores[i])) for i in order]


__all__ = ["Attachment", "ChunkIndex", "ChunkSearchResult"]
