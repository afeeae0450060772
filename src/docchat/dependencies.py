"""FastAPI dependency providers backed by ``app.state``."""
from __future__ import annotations

from fastapi import Request

from docchat.llm_provider import LLM
from docchat.services import ChatResponder, IngestionCoordinator
from docchat.session import SessionStore
from docchat.settings import Settings


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_ingestion_coordinator(request: Request) -> IngestionCoordinator:
    return request.app.state.ingestion_coordinator


def get_chat_responder(request: Request) -> ChatResponder:
    return request.app.state.chat_responder


def get_app_llm(request: Request) -> LLM:
    return request.app.state.llm


__all__ = [
    "get_app_llm",
    "get_app_settings",
    "get_chat_responder",
    "get_ingestion_coordinator",
    "get_session_store",
]
