"""Tests for LLM backend selection and the Gemini message format."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from docchat import llm_provider
from docchat.llm_provider import (
    DEFAULT_STUB_RESPONSE,
    GeminiLLM,
    LLMGenerationError,
    LLMStub,
    TransformersLLM,
    build_llm,
    load_llm_on_startup,
)
from docchat.settings import Settings
from docchat.vectorstore import Attachment


class FakeChatModel:
    def __init__(self, content):
        self.content = content
        self.calls = []

    def invoke(self, messages):
        self.calls.append(messages)
        if isinstance(self.content, Exception):
            raise self.content
        return SimpleNamespace(content=self.content)


def test_build_llm_selects_backend():
    assert isinstance(build_llm(Settings(llm_provider="stub")), LLMStub)
    assert isinstance(
        build_llm(Settings(llm_provider="transformers", llm_model_path="/models/tiny")),
        TransformersLLM,
    )
    gemini = build_llm(Settings(llm_provider="gemini", gemini_model="gemini-test", google_api_key="key"))
    assert isinstance(gemini, GeminiLLM)
    assert gemini.model_name == "gemini-test"


def test_build_llm_rejects_unknown_provider():
    with pytest.raises(ValueError):
        build_llm(Settings(llm_provider="mystery"))


def test_transformers_requires_model_path():
    with pytest.raises(ValueError):
        build_llm(Settings(llm_provider="transformers"))


def test_stub_returns_fixed_message_and_reports_status():
    stub = LLMStub()

    assert stub.generate("prompt", max_tokens=10, temperature=0.0) == DEFAULT_STUB_RESPONSE
    status = stub.status()
    assert status.provider == "stub"
    assert status.model_loaded is False
    assert status.error


def test_gemini_sends_prompt_and_attachment(monkeypatch):
    model = GeminiLLM("gemini-test", api_key="key")
    fake = FakeChatModel("Paris")
    monkeypatch.setattr(model, "_client", lambda max_tokens, temperature: fake)
    attachment = Attachment(data=b"%PDF-1.4 bytes", mime_type="application/pdf", name="report.pdf")

    answer = model.generate("Question?", max_tokens=64, temperature=0.2, attachment=attachment)

    assert answer == "Paris"
    system, human = fake.calls[0]
    assert system.content == llm_provider.SYSTEM_PROMPT
    assert human.content[0] == {"type": "text", "text": "Question?"}
    assert human.content[1]["type"] == "media"
    assert human.content[1]["mime_type"] == "application/pdf"
    assert human.content[1]["data"] == "JVBERi0xLjQgYnl0ZXM="


def test_gemini_joins_content_blocks(monkeypatch):
    model = GeminiLLM("gemini-test", api_key="key")
    fake = FakeChatModel([{"type": "text", "text": "Hello "}, {"type": "text", "text": "there"}])
    monkeypatch.setattr(model, "_client", lambda max_tokens, temperature: fake)

    assert model.generate("hi", max_tokens=16, temperature=0.0) == "Hello there"


@pytest.mark.parametrize("content", ["", [], RuntimeError("429 quota exceeded")])
def test_gemini_failures_raise_generation_error(monkeypatch, content):
    model = GeminiLLM("gemini-test", api_key="key")
    monkeypatch.setattr(model, "_client", lambda max_tokens, temperature: FakeChatModel(content))

    with pytest.raises(LLMGenerationError):
        model.generate("hi", max_tokens=16, temperature=0.0)


def test_gemini_reports_missing_api_key():
    assert GeminiLLM("gemini-test").status().error == "GOOGLE_API_KEY is not configured."


def test_attachment_dropped_for_text_only_backends():
    seen = []

    class TextOnly(LLMStub):
        def _generate(self, prompt, *, max_tokens, temperature, attachment):
            seen.append(attachment)
            return "ok"

    attachment = Attachment(data=b"data", mime_type="application/pdf", name="doc.pdf")
    TextOnly().generate("prompt", max_tokens=8, temperature=0.0, attachment=attachment)

    assert seen == [None]


def test_load_on_startup_respects_flag():
    calls = []

    class Preloading(LLMStub):
        def preload(self):
            calls.append(True)

    assert load_llm_on_startup(Preloading(), Settings(force_load_on_start=False)) == (False, None)
    assert calls == []
    assert load_llm_on_startup(Preloading(), Settings(force_load_on_start=True)) == (True, None)
    assert calls == [True]


def test_load_on_startup_reports_load_errors():
    error = llm_provider.LLMNotReadyError("weights missing")

    class Broken(LLMStub):
        def preload(self):
            raise error

    assert load_llm_on_startup(Broken(), Settings(force_load_on_start=True)) == (True, error)
