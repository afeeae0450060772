"""Runtime configuration read from environment variables."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200
DEFAULT_TOP_K = 4
DEFAULT_MAX_UPLOAD_BYTES = 25 * 1024 * 1024


def _int_from_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _float_from_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _str_from_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved service configuration."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    top_k: int = DEFAULT_TOP_K
    embedding_backend: str = "sentence-transformers"
    embedding_model_path: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_device: Optional[str] = None
    embedding_dimension: int = 384
    llm_provider: str = "stub"
    llm_model_path: Optional[str] = None
    llm_device: str = "auto"
    gemini_model: str = "gemini-1.5-flash"
    gemini_embedding_model: str = "models/embedding-001"
    google_api_key: Optional[str] = field(default=None, repr=False)
    llm_max_tokens: int = 512
    llm_temperature: float = 0.0
    attach_source: bool = False
    web_fetch_timeout: float = 10.0
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    log_dir: str = "logs"
    cors_origins: tuple[str, ...] = ("*",)
    force_load_on_start: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        cors = _str_from_env("CORS_ORIGINS", "*") or "*"
        return cls(
            chunk_size=_int_from_env("CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            chunk_overlap=_int_from_env("CHUNK_OVERLAP", DEFAULT_CHUNK_OVERLAP),
            top_k=max(1, _int_from_env("RETRIEVAL_TOP_K", DEFAULT_TOP_K)),
            embedding_backend=(_str_from_env("EMBEDDING_BACKEND", "sentence-transformers") or "").lower(),
            embedding_model_path=_str_from_env(
                "EMBEDDING_MODEL_PATH", "sentence-transformers/all-MiniLM-L6-v2"
            ),
            embedding_device=_str_from_env("EMBEDDING_DEVICE"),
            embedding_dimension=max(1, _int_from_env("EMBEDDING_DIMENSION", 384)),
            llm_provider=(_str_from_env("LLM_PROVIDER", "stub") or "").lower(),
            llm_model_path=_str_from_env("LLM_MODEL_PATH"),
            llm_device=(_str_from_env("LLM_DEVICE", "auto") or "auto").lower(),
            gemini_model=_str_from_env("GEMINI_MODEL", "gemini-1.5-flash"),
            gemini_embedding_model=_str_from_env("GEMINI_EMBEDDING_MODEL", "models/embedding-001"),
            google_api_key=_str_from_env("GOOGLE_API_KEY"),
            llm_max_tokens=_int_from_env("LLM_MAX_TOKENS", 512),
            llm_temperature=_float_from_env("LLM_TEMPERATURE", 0.0),
            attach_source=_env_flag("CHAT_ATTACH_SOURCE"),
            web_fetch_timeout=_float_from_env("WEB_FETCH_TIMEOUT", 10.0),
            max_upload_bytes=_int_from_env("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
            log_dir=_str_from_env("LOG_DIR", "logs") or "logs",
            cors_origins=tuple(origin.strip() for origin in cors.split(",") if origin.strip()),
            force_load_on_start=_env_flag("FORCE_LOAD_ON_START"),
        )


@lru_cache()
def get_settings() -> Settings:
    """Return the cached settings instance."""

    return Settings.from_env()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for testing)."""

    get_settings.cache_clear()  # type: ignore[attr-defined]
