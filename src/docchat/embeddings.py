"""Embedding backends: sentence-transformers, Google Gemini and feature hashing."""
from __future__ import annotations

import hashlib
import logging
import math
import re
import threading
import time
from typing import List, Optional, Sequence

from docchat.settings import Settings
from docchat.telemetry import emit_embeddings_event

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "sentence-transformers/all-MiniLM-L6-v2"
HASHING_DIMENSION = 384

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


class EmbeddingModel:
    """Common interface: map texts to fixed-length vectors."""

    model_name = "unknown"

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        started = time.perf_counter()
        try:
            embeddings = self._embed(list(texts))
        except Exception as error:
            emit_embeddings_event(
                model=self.model_name,
                count=len(texts),
                duration_ms=(time.perf_counter() - started) * 1000.0,
                errors=[str(error)],
            )
            raise

        if len(embeddings) != len(texts):
            raise ValueError(
                f"Embedding backend returned {len(embeddings)} vectors for {len(texts)} texts"
            )
        emit_embeddings_event(
            model=self.model_name,
            count=len(texts),
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return embeddings

    def embed(self, text: str) -> List[float]:
        return self.embed_texts([text])[0]

    def _embed(self, texts: List[str]) -> List[List[float]]:
        raise NotImplementedError


class SentenceTransformerEmbeddings(EmbeddingModel):
    """Wrapper around a local SentenceTransformer model, loaded on first use."""

    def __init__(self, model_name_or_path: str = DEFAULT_MODEL_NAME, *, device: str | None = None) -> None:
        self.model_name = model_name_or_path
        self._device = device
        self._model = None
        self._lock = threading.Lock()

    def _load(self):
        if self._model is not None:
            return self._model
        with self._lock:
            if self._model is None:
                from sentence_transformers import SentenceTransformer

                LOGGER.info("Loading sentence-transformers model %s", self.model_name)
                self._model = SentenceTransformer(self.model_name, device=self._device)
        return self._model

    def _embed(self, texts: List[str]) -> List[List[float]]:
        embeddings = self._load().encode(
            texts,
            convert_to_numpy=True,
            show_progress_bar=False,
            normalize_embeddings=False,
        )
        return embeddings.tolist()


class GoogleEmbeddings(EmbeddingModel):
    """Gemini embeddings through langchain-google-genai."""

    def __init__(self, model_name: str, *, api_key: Optional[str] = None) -> None:
        self.model_name = model_name
        self._api_key = api_key
        self._client = None

    def _load(self):
        if self._client is None:
            from langchain_google_genai import GoogleGenerativeAIEmbeddings

            kwargs = {"model": self.model_name}
            if self._api_key:
                kwargs["google_api_key"] = self._api_key
            self._client = GoogleGenerativeAIEmbeddings(**kwargs)
        return self._client

    def _embed(self, texts: List[str]) -> List[List[float]]:
        return [list(map(float, vector)) for vector in self._load().embed_documents(texts)]


class HashingEmbeddings(EmbeddingModel):
    """Deterministic bag-of-words vectors built with the hashing trick.

    Each lower-cased word token increments one of ``dimension`` buckets chosen
    by a stable hash, with a hash-derived sign. Vectors are L2-normalised, so
    texts sharing vocabulary score a higher cosine similarity. Needs no model
    download, which makes it the backend for offline runs and tests.
    """

    model_name = "hashing"

    def __init__(self, dimension: int = HASHING_DIMENSION) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be a positive integer")
        self.dimension = dimension

    def _embed(self, texts: List[str]) -> List[List[float]]:
        return [self._vectorise(text) for text in texts]

    def _vectorise(self, text: str) -> List[float]:
        vector = [0.0] * self.dimension
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
            value = int.from_bytes(digest, "big")
            bucket = value % self.dimension
            sign = 1.0 if (value >> 63) & 1 else -1.0
            vector[bucket] += sign
        norm = math.sqrt(sum(component * component for component in vector))
        if norm == 0.0:
            return vector
        return [component / norm for component in vector]


def build_embedding_model(settings: Settings) -> EmbeddingModel:
    """Instantiate the embedding backend named by ``EMBEDDING_BACKEND``."""

    backend = settings.embedding_backend
    if backend in {"sentence-transformers", "sentence_transformers"}:
        return SentenceTransformerEmbeddings(
            settings.embedding_model_path, device=settings.embedding_device
        )
    if backend in {"google", "gemini"}:
        return GoogleEmbeddings(settings.gemini_embedding_model, api_key=settings.google_api_key)
    if backend == "hashing":
        return HashingEmbeddings(settings.embedding_dimension)
    raise ValueError(f"Unsupported EMBEDDING_BACKEND: {backend!r}")

