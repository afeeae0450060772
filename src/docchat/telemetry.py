"""Structured lifecycle events emitted through the standard logging module."""

from __future__ import annotations

import logging
import os
import platform
import sys
import time
import traceback
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional

LOGGER = logging.getLogger("docchat.telemetry")

_ENV_KEYS_TO_LOG: tuple[str, ...] = (
    "CHUNK_SIZE",
    "CHUNK_OVERLAP",
    "RETRIEVAL_TOP_K",
    "EMBEDDING_BACKEND",
    "EMBEDDING_MODEL_PATH",
    "EMBEDDING_DEVICE",
    "LLM_PROVIDER",
    "LLM_MODEL_PATH",
    "LLM_DEVICE",
    "GEMINI_MODEL",
    "LLM_MAX_TOKENS",
    "LLM_TEMPERATURE",
    "CHAT_ATTACH_SOURCE",
    "FORCE_LOAD_ON_START",
)


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    req_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if req_id:
        event["req_id"] = req_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_app_startup_event() -> None:
    env_values = {key: os.getenv(key) for key in _ENV_KEYS_TO_LOG if os.getenv(key) is not None}
    details = {
        "env": env_values,
        "python": sys.version.split()[0],
        "platform": platform.platform(),
        "pid": os.getpid(),
    }
    log_event(LOGGER, "app.startup", details=details)


def emit_ingest_event(
    step: str,
    *,
    source: str,
    kind: str,
    size_bytes: int | None = None,
    duration_ms: float | None = None,
    language: str | None = None,
    pages: int | None = None,
    chunks: int | None = None,
) -> None:
    details = {
        "source": source,
        "kind": kind,
        "size_bytes": size_bytes,
        "language": language,
        "pages": pages,
        "chunks": chunks,
    }
    log_event(LOGGER, step, duration_ms=duration_ms, details=details)


def emit_embeddings_event(
    *, model: str, count: int, duration_ms: float, errors: list[str] | None = None
) -> None:
    details = {
        "model": model,
        "count": count,
        "errors": errors or [],
        "per_item_ms": round(duration_ms / count, 3) if count else None,
    }
    level = "error" if errors else "info"
    log_event(LOGGER, "embeddings.compute", level=level, duration_ms=duration_ms, details=details)


def emit_session_event(*, source: str, kind: str, chunks: int, version: int) -> None:
    details = {"source": source, "kind": kind, "chunks": chunks, "version": version}
    log_event(LOGGER, "session.replace", details=details)


def emit_retriever_event(
    *,
    query: str,
    top_k: int,
    results: list[dict[str, Any]],
    duration_ms: float,
) -> None:
    details = {
        "query_preview": query[:120],
        "top_k": top_k,
        "results": results,
    }
    log_event(LOGGER, "retriever.search", duration_ms=duration_ms, details=details)


def emit_prompt_event(
    *,
    sources: Iterable[int],
    prompt_len: int,
    attachment: str | None,
) -> None:
    details = {
        "sources": list(sources),
        "prompt_len": prompt_len,
        "attachment": attachment,
    }
    log_event(LOGGER, "prompt.compose", details=details)


def emit_inference_request(
    *,
    req_id: str,
    provider: str,
    prompt_preview: str,
    prompt_len: int,
    temperature: float,
    max_tokens: int | None,
) -> None:
    details = {
        "provider": provider,
        "prompt_preview": prompt_preview[:120],
        "prompt_len": prompt_len,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    log_event(LOGGER, "inference.request", req_id=req_id, details=details)


def emit_inference_result(
    *,
    req_id: str,
    duration_ms: float,
    model_used: str,
    answer_preview: str,
    error: BaseException | None = None,
) -> None:
    details = {
        "model_used": model_used,
        "answer_preview": answer_preview[:120],
    }
    level = "error" if error else "info"
    log_event(
        LOGGER,
        "inference.result",
        level=level,
        req_id=req_id,
        duration_ms=duration_ms,
        details=details,
        exc=error,
    )


def emit_exception(
    *,
    module: str,
    error: BaseException,
    req_id: str | None = None,
    suggestion: str | None = None,
) -> None:
    details = {"module": module, "error_type": type(error).__name__}
    if suggestion:
        details["suggestion"] = suggestion
    log_event(
        LOGGER,
        "exception",
        level="error",
        req_id=req_id,
        details=details,
        exc=error,
    )


@contextmanager
def traced_duration(step: str, *, logger: Optional[logging.Logger] = None, **fields: Any) -> Iterator[None]:
    start = time.perf_counter()
    log_event(logger or LOGGER, f"{step}.start", details=fields)
    try:
        yield
    except Exception as error:
        log_event(logger or LOGGER, f"{step}.error", level="error", details=fields, exc=error)
        raise
    finally:
        end = time.perf_counter()
        log_event(
            logger or LOGGER,
            f"{step}.complete",
            duration_ms=(end - start) * 1000.0,
            details=fields,
        )


__all__ = [
    "emit_app_startup_event",
    "emit_embeddings_event",
    "emit_exception",
    "emit_inference_request",
    "emit_inference_result",
    "emit_ingest_event",
    "emit_prompt_event",
    "emit_retriever_event",
    "emit_session_event",
    "log_event",
    "traced_duration",
]
