import pytest

from docchat.ingest import Chunk, ChunkMetadata
from docchat.prompt_builder import INSTRUCTIONS, build_prompt
from docchat.vectorstore import ChunkSearchResult


def result(index: int, content: str, score: float = 0.5) -> ChunkSearchResult:
    metadata = ChunkMetadata(source="doc.pdf", page=1, char_start=0, char_end=len(content))
    return ChunkSearchResult(chunk=Chunk(index=index, content=content, metadata=metadata), score=score)


def test_prompt_numbers_chunks_in_retrieval_order():
    prompt = build_prompt(
        "  Who signed the contract? ",
        [result(7, "Signed by Ana.", 0.9), result(2, "Dated 2020.", 0.4)],
    )

    assert prompt.startswith(INSTRUCTIONS)
    assert prompt.index("[1] Signed by Ana.") < prompt.index("[2] Dated 2020.")
    assert "Question: Who signed the contract?" in prompt
    assert prompt.endswith("Answer:")


def test_prompt_without_context_says_so():
    prompt = build_prompt("Anything?", [result(0, "   ")])

    assert "No context available." in prompt


def test_prompt_requires_question():
    with pytest.raises(ValueError):
        build_prompt(None, [])
