"""Answer questions against the active chunk index."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List

from docchat.embeddings import EmbeddingModel
from docchat.errors import InputError, ModelFailed, NotInitialized, RetrievalFailed
from docchat.llm_provider import LLM
from docchat.prompt_builder import build_prompt
from docchat.session import SessionStore
from docchat.settings import Settings
from docchat.telemetry import emit_exception, emit_prompt_event, emit_retriever_event
from docchat.vectorstore import ChunkIndex, ChunkSearchResult

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SourceReference:
    """A retrieved chunk cited by an answer."""

    index: int
    source: str
    page: int
    score: float
    content: str

    @classmethod
    def from_result(cls, result: ChunkSearchResult) -> "SourceReference":
        chunk = result.chunk
        return cls(
            index=chunk.index,
            source=chunk.source,
            page=chunk.metadata.page,
            score=result.score,
            content=chunk.content,
        )


@dataclass(slots=True)
class Answer:
    """Structured result returned from :meth:`ChatResponder.answer`."""

    text: str
    sources: List[SourceReference] = field(default_factory=list)
    prompt: str = ""


class ChatResponder:
    """Retrieve the closest chunks for a question and ask the model."""

    def __init__(
        self,
        *,
        store: SessionStore,
        embedding_model: EmbeddingModel,
        llm: LLM,
        settings: Settings,
    ) -> None:
        self.store = store
        self.embedding_model = embedding_model
        self.llm = llm
        self.settings = settings

    def answer(self, question: str) -> Answer:
        if question is None or not question.strip():
            raise InputError("Question must not be empty")

        index = self.store.current()
        if index is None:
            raise NotInitialized()

        question = question.strip()
        results = self._retrieve(index, question)
        prompt = build_prompt(question, results)
        attachment = index.attachment if self.settings.attach_source else None
        emit_prompt_event(
            sources=[result.chunk.index for result in results],
            prompt_len=len(prompt),
            attachment=attachment.name if attachment is not None else None,
        )

        try:
            text = self.llm.generate(
                prompt,
                max_tokens=self.settings.llm_max_tokens,
                temperature=self.settings.llm_temperature,
                attachment=attachment,
            )
        except Exception as error:
            LOGGER.exception("Model call failed")
            emit_exception(module=f"{__name__}.llm", error=error)
            raise ModelFailed(f"The language model failed to answer: {error}", cause=error) from error

        if not isinstance(text, str) or not text.strip():
            error = ModelFailed("The language model returned an empty response")
            emit_exception(module=f"{__name__}.llm", error=error)
            raise error

        return Answer(
            text=text.strip(),
            sources=[SourceReference.from_result(result) for result in results],
            prompt=prompt,
        )

    def _retrieve(self, index: ChunkIndex, question: str) -> List[ChunkSearchResult]:
        started = time.perf_counter()
        try:
            query_vector = self.embedding_model.embed(question)
            results = index.search(query_vector, self.settings.top_k)
        except Exception as error:
            LOGGER.exception("Retrieval failed")
            emit_exception(module=f"{__name__}.retrieval", error=error)
            raise RetrievalFailed(f"Failed to search the document: {error}", cause=error) from error

        emit_retriever_event(
            query=question,
            top_k=self.settings.top_k,
            results=[
                {"index": result.chunk.index, "page": result.chunk.metadata.page, "score": result.score}
                for result in results
            ],
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return results


__all__ = ["Answer", "ChatResponder", "SourceReference"]
