"""Utilities for constructing the retrieval prompt sent to the model."""
from __future__ import annotations

from typing import List, Sequence

from docchat.vectorstore import ChunkSearchResult

INSTRUCTIONS = (
    "Answer the question using only the numbered context passages below. "
    "If the passages do not contain the answer, say that the document does not "
    "cover it. Do not invent facts."
)
NO_CONTEXT = "No context available."


def build_prompt(question: str, results: Sequence[ChunkSearchResult]) -> str:
    """Compose instructions, numbered retrieved chunks and the question."""

    if question is None:
        raise ValueError("question must not be None")

    sections: List[str] = []
    for number, result in enumerate(results, start=1):
        content = result.chunk.content.strip()
        if not content:
            continue
        sections.append(f"[{number}] {content}")

    context_block = "\n\n".join(sections) if sections else NO_CONTEXT
    return (
        f"{INSTRUCTIONS}\n\n"
        f"Context:\n{context_block}\n\n"
        f"Question: {question.strip()}\n\n"
        "Answer:"
    )


__all__ = ["INSTRUCTIONS", "build_prompt"]
