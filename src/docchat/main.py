import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from docchat.api import document_router, excel_router, web_router
from docchat.dependencies import get_app_llm, get_session_store
from docchat.embeddings import EmbeddingModel, build_embedding_model
from docchat.ingest import IngestPipeline, WebPageFetcher
from docchat.llm_provider import LLM, build_llm, load_llm_on_startup
from docchat.logging_config import configure_logging
from docchat.services import ChatResponder, IngestionCoordinator
from docchat.session import SessionStore
from docchat.settings import Settings, get_settings
from docchat.telemetry import emit_app_startup_event

LOGGER = logging.getLogger(__name__)


def _describe_validation_error(exc: RequestValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in {"body", "query", "form"}]
        field = ".".join(location) or "request"
        problems.append(f"{field}: {error.get('msg', 'invalid value')}")
    return "Invalid request: " + "; ".join(problems)


def create_app(
    settings: Optional[Settings] = None,
    *,
    embedding_model: Optional[EmbeddingModel] = None,
    llm: Optional[LLM] = None,
    fetcher: Optional[WebPageFetcher] = None,
) -> FastAPI:
    """Build the API with one session store shared by every route."""

    settings = settings or get_settings()
    configure_logging(settings.log_dir)

    embedding_model = embedding_model or build_embedding_model(settings)
    llm = llm or build_llm(settings)
    store = SessionStore()

    app = FastAPI(title="DocChat API")
    app.state.settings = settings
    app.state.llm = llm
    app.state.session_store = store
    app.state.ingestion_coordinator = IngestionCoordinator(
        store=store,
        embedding_model=embedding_model,
        settings=settings,
        pipeline=IngestPipeline(),
        fetcher=fetcher
        or WebPageFetcher(timeout=settings.web_fetch_timeout, max_bytes=settings.max_upload_bytes),
    )
    app.state.chat_responder = ChatResponder(
        store=store,
        embedding_model=embedding_model,
        llm=llm,
        settings=settings,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(web_router)
    app.include_router(document_router)
    app.include_router(excel_router)

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Report malformed request input as a client error."""

        detail = _describe_validation_error(exc)
        LOGGER.info("Rejected request to %s: %s", request.url.path, detail)
        return JSONResponse(status_code=400, content={"detail": detail})

    @app.on_event("startup")
    async def _startup_model_loader() -> None:
        """Optionally preload the LLM when requested via environment flags."""

        emit_app_startup_event()
        load_llm_on_startup(app.state.llm, settings)

    @app.get("/", response_class=PlainTextResponse)
    def read_root() -> str:
        """Healthcheck endpoint for the service."""
        return "ok"

    @app.get("/healthz")
    def healthcheck(model: LLM = Depends(get_app_llm)) -> dict[str, object]:
        """Expose model loading status and device placement."""

        status = model.status()
        payload: dict[str, object] = {
            "provider": status.provider,
            "model_loaded": status.model_loaded,
            "model_name": status.model_name,
            "device": status.device,
        }
        if status.error:
            payload["reason"] = status.error
        return payload

    @app.get("/session")
    def session_summary(store: SessionStore = Depends(get_session_store)) -> dict[str, object]:
        """Describe the active document index."""

        snapshot = store.snapshot()
        if snapshot is None:
            raise HTTPException(status_code=404, detail="No document has been initialized yet")
        index = snapshot.index
        return {
            "source": index.source,
            "kind": index.kind.value,
            "chunk_count": len(index),
            "version": snapshot.version,
            "created_at": index.created_at.isoformat(),
        }

    LOGGER.info("DocChat API created (llm=%s, embeddings=%s)", llm.provider, embedding_model.model_name)
    return app


app = create_app()
