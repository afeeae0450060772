"""Generative model backends: stub, local transformers and Google Gemini."""

from __future__ import annotations

import base64
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Optional, Tuple

from docchat.settings import Settings
from docchat.telemetry import emit_inference_request, emit_inference_result
from docchat.vectorstore import Attachment

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions about a document the user "
    "has provided. Use only the supplied context. If the context does not contain "
    "the answer, say that the document does not cover it."
)

DEFAULT_STUB_RESPONSE = "The language model is not configured. Set LLM_PROVIDER to enable answers."


@dataclass(slots=True)
class LLMStatus:
    """Structured status information about the configured LLM backend."""

    provider: str
    model_loaded: bool
    model_name: str
    device: str
    error: Optional[str] = None


class LLMError(RuntimeError):
    """Base exception raised for LLM provider issues."""


class LLMNotReadyError(LLMError):
    """Raised when the model cannot be loaded or is unavailable."""


class LLMGenerationError(LLMError):
    """Raised when text generation fails or returns nothing usable."""


class LLM:
    """Common interface exposed by language model implementations."""

    provider = "base"
    supports_attachments = False

    def generate(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        attachment: Optional[Attachment] = None,
    ) -> str:
        """Generate a response for ``prompt`` and log the request/result pair."""

        req_id = uuid.uuid4().hex
        emit_inference_request(
            req_id=req_id,
            provider=self.provider,
            prompt_preview=prompt,
            prompt_len=len(prompt),
            temperature=temperature,
            max_tokens=max_tokens,
        )
        if attachment is not None and not self.supports_attachments:
            LOGGER.info("%s backend ignores attachment %s", self.provider, attachment.name)
            attachment = None

        started = time.perf_counter()
        try:
            text = self._generate(prompt, max_tokens=max_tokens, temperature=temperature, attachment=attachment)
        except Exception as error:
            emit_inference_result(
                req_id=req_id,
                duration_ms=(time.perf_counter() - started) * 1000.0,
                model_used=self.model_name,
                answer_preview="",
                error=error,
            )
            raise

        emit_inference_result(
            req_id=req_id,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            model_used=self.model_name,
            answer_preview=text,
        )
        return text

    def _generate(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        attachment: Optional[Attachment],
    ) -> str:
        raise NotImplementedError

    @property
    def model_loaded(self) -> bool:
        """Return ``True`` when the backend is ready to serve requests."""

        return False

    @property
    def model_name(self) -> str:
        return "stub"

    @property
    def device(self) -> str:
        return "cpu"

    @property
    def last_error(self) -> Optional[str]:
        return None

    def preload(self) -> None:
        """Eagerly load the model weights when supported."""

        return None

    def status(self) -> LLMStatus:
        return LLMStatus(
            provider=self.provider,
            model_loaded=self.model_loaded,
            model_name=self.model_name,
            device=self.device,
            error=self.last_error,
        )


class LLMStub(LLM):
    """Returns a fixed message; selected explicitly with ``LLM_PROVIDER=stub``."""

    provider = "stub"

    def __init__(self, message: str = DEFAULT_STUB_RESPONSE) -> None:
        self._message = message

    def _generate(self, prompt, *, max_tokens, temperature, attachment) -> str:
        return self._message

    @property
    def last_error(self) -> Optional[str]:
        return "LLM stub is active (model not configured)."


def _resolve_torch_device(want: str) -> str:
    import torch

    if want == "cpu":
        return "cpu"
    return "cuda" if torch.cuda.is_available() else "cpu"


class TransformersLLM(LLM):
    """Lazy-loading wrapper around a local ``AutoModelForCausalLM``."""

    provider = "transformers"

    def __init__(self, model_path: str, *, device: str = "auto") -> None:
        self._model_path = model_path
        self._want_device = device
        self._model = None
        self._tokenizer = None
        self._lock = threading.RLock()
        self._load_error: Optional[Exception] = None
        self._device_label = "cpu"

    @property
    def model_loaded(self) -> bool:
        return self._model is not None

    @property
    def model_name(self) -> str:
        return self._model_path

    @property
    def device(self) -> str:
        return self._device_label

    @property
    def last_error(self) -> Optional[str]:
        return str(self._load_error) if self._load_error is not None else None

    def _ensure_loaded(self) -> None:
        if self._model is not None:
            return
        with self._lock:
            if self._model is not None:
                return

            import torch
            from transformers import AutoModelForCausalLM, AutoTokenizer

            device = _resolve_torch_device(self._want_device)
            use_cuda = device == "cuda"
            LOGGER.info("trying to load LLM from %s (device=%s)", self._model_path, device)
            try:
                model = AutoModelForCausalLM.from_pretrained(
                    self._model_path,
                    device_map="auto" if use_cuda else "cpu",
                    torch_dtype="auto" if use_cuda else torch.float32,
                    low_cpu_mem_usage=True,
                )
                tokenizer = AutoTokenizer.from_pretrained(self._model_path)
            except Exception as error:
                self._load_error = error
                raise LLMNotReadyError(f"Failed to load the language model: {error}") from error

            if tokenizer.pad_token_id is None and tokenizer.eos_token_id is not None:
                tokenizer.pad_token_id = tokenizer.eos_token_id

            self._model = model
            self._tokenizer = tokenizer
            self._device_label = "cuda:0" if use_cuda else "cpu"
            self._load_error = None
            LOGGER.info("model loaded on %s", self._device_label)

    def _generate(self, prompt, *, max_tokens, temperature, attachment) -> str:
        self._ensure_loaded()
        effective_max_tokens = max_tokens if max_tokens and max_tokens > 0 else 256

        try:
            inputs = self._tokenizer(
                f"{SYSTEM_PROMPT}\n\n{prompt.strip()}",
                return_tensors="pt",
                truncation=True,
                max_length=getattr(self._tokenizer, "model_max_length", 4096),
            ).to(self._device_label)
            output_ids = self._model.generate(
                **inputs,
                max_new_tokens=effective_max_tokens,
                do_sample=temperature > 0.0,
                temperature=temperature if temperature > 0.0 else None,
                pad_token_id=self._tokenizer.pad_token_id,
                eos_token_id=self._tokenizer.eos_token_id,
            )
            input_length = inputs["input_ids"].shape[1]
            text = self._tokenizer.decode(output_ids[0, input_length:], skip_special_tokens=True)
        except Exception as error:
            LOGGER.exception("LLM generation failed")
            raise LLMGenerationError("LLM generation failed") from error

        return text.strip()

    def preload(self) -> None:
        self._ensure_loaded()


class GeminiLLM(LLM):
    """Google Gemini chat model through langchain-google-genai."""

    provider = "gemini"
    supports_attachments = True

    def __init__(self, model_name: str, *, api_key: Optional[str] = None) -> None:
        self._model_name = model_name
        self._api_key = api_key
        self._clients: dict[Tuple[int, float], object] = {}
        self._lock = threading.Lock()
        self._last_error: Optional[str] = None

    @property
    def model_loaded(self) -> bool:
        return bool(self._clients)

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def device(self) -> str:
        return "remote"

    @property
    def last_error(self) -> Optional[str]:
        if self._api_key is None:
            return "GOOGLE_API_KEY is not configured."
        return self._last_error

    def _client(self, max_tokens: int, temperature: float):
        key = (max_tokens, temperature)
        with self._lock:
            client = self._clients.get(key)
            if client is None:
                from langchain_google_genai import ChatGoogleGenerativeAI

                kwargs = {
                    "model": self._model_name,
                    "temperature": temperature,
                    "max_output_tokens": max_tokens,
                    "max_retries": 0,
                }
                if self._api_key:
                    kwargs["google_api_key"] = self._api_key
                client = self._clients[key] = ChatGoogleGenerativeAI(**kwargs)
            return client

    def _generate(self, prompt, *, max_tokens, temperature, attachment) -> str:
        from langchain_core.messages import HumanMessage, SystemMessage

        content: list[dict[str, object]] = [{"type": "text", "text": prompt}]
        if attachment is not None:
            content.append(
                {
                    "type": "media",
                    "mime_type": attachment.mime_type,
                    "data": base64.b64encode(attachment.data).decode("ascii"),
                }
            )

        try:
            result = self._client(max_tokens, temperature).invoke(
                [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=content)]
            )
        except Exception as error:
            self._last_error = str(error)
            raise LLMGenerationError(f"Gemini request failed: {error}") from error

        text = _message_text(result.content)
        if not text:
            raise LLMGenerationError("Gemini returned an empty response")
        self._last_error = None
        return text


def _message_text(content: object) -> str:
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts).strip()
    return ""


def build_llm(settings: Settings) -> LLM:
    """Instantiate the backend named by ``LLM_PROVIDER``."""

    provider = settings.llm_provider
    if provider == "stub":
        return LLMStub()
    if provider == "transformers":
        if not settings.llm_model_path:
            raise ValueError("LLM_PROVIDER=transformers requires LLM_MODEL_PATH")
        return TransformersLLM(settings.llm_model_path, device=settings.llm_device)
    if provider in {"gemini", "google"}:
        return GeminiLLM(settings.gemini_model, api_key=settings.google_api_key)
    raise ValueError(f"Unsupported LLM_PROVIDER: {provider!r}")


def load_llm_on_startup(llm: LLM, settings: Settings) -> Tuple[bool, Optional[Exception]]:
    """Eagerly load ``llm`` when ``FORCE_LOAD_ON_START`` is set.

    Returns ``(attempted, error)``.
    """

    if not settings.force_load_on_start:
        return False, None

    LOGGER.info("preloading LLM %s", llm.model_name)
    try:
        llm.preload()
    except LLMError as error:
        LOGGER.exception("failed to load model %s", llm.model_name)
        return True, error
    return True, None


__all__ = [
    "DEFAULT_STUB_RESPONSE",
    "GeminiLLM",
    "LLM",
    "LLMError",
    "LLMGenerationError",
    "LLMNotReadyError",
    "LLMStatus",
    "LLMStub",
    "SYSTEM_PROMPT",
    "TransformersLLM",
    "build_llm",
    "load_llm_on_startup",
]
