"""API routers exposing initialize and chat endpoints for each content surface."""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from docchat.dependencies import get_app_settings, get_chat_responder, get_ingestion_coordinator
from docchat.errors import DocChatError, InputError
from docchat.ingest import Document, DocumentKind, DocumentKindDetector
from docchat.services import Answer, ChatResponder, IngestionCoordinator, IngestResult
from docchat.settings import Settings

web_router = APIRouter(tags=["web"])
document_router = APIRouter(prefix="/document", tags=["document"])
excel_router = APIRouter(prefix="/excel", tags=["excel"])

DOCUMENT_KINDS = (DocumentKind.PDF, DocumentKind.DOCX)
SPREADSHEET_KINDS = (DocumentKind.SPREADSHEET,)


class InitializeWebRequest(BaseModel):
    """Request body accepted by the web initialize endpoint."""

    web_url: str | None = Field(None, description="Address of the page to index.")
    chunk_size: int | None = Field(None, description="Chunk length in characters.")
    chunk_overlap: int | None = Field(None, description="Characters repeated between chunks.")


class IngestResponse(BaseModel):
    """Response body returned from every initialize endpoint."""

    status: str
    source: str
    kind: str
    chunk_count: int
    duration_seconds: float


class ChatRequest(BaseModel):
    """Request body accepted by the chat endpoints."""

    question: str = Field("", description="Question to ask about the active document.")


class AnswerSource(BaseModel):
    """Individual source chunk returned in an answer."""

    index: int
    source: str
    page: int
    score: float
    content: str


class ChatResponse(BaseModel):
    """Response payload for the chat endpoints."""

    response: str
    sources: list[AnswerSource]


def _http_error(error: DocChatError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=str(error))


def _serialise_ingest(result: IngestResult) -> IngestResponse:
    return IngestResponse(
        status="ok",
        source=result.source,
        kind=result.kind.value,
        chunk_count=result.chunk_count,
        duration_seconds=result.duration_seconds,
    )


def _serialise_answer(answer: Answer) -> ChatResponse:
    return ChatResponse(
        response=answer.text,
        sources=[
            AnswerSource(
                index=source.index,
                source=source.source,
                page=source.page,
                score=source.score,
                content=source.content,
            )
            for source in answer.sources
        ],
    )


async def _read_upload(upload: UploadFile | None, limit: int) -> bytes:
    if upload is None or not upload.filename:
        raise InputError("A file must be provided")
    data = await upload.read(limit + 1)
    if len(data) > limit:
        raise InputError(f"Uploaded file exceeds the limit of {limit} bytes")
    if not data:
        raise InputError(f"Uploaded file {upload.filename} is empty")
    return data


async def _ingest_upload(
    upload: UploadFile | None,
    allowed: tuple[DocumentKind, ...],
    chunk_size: int | None,
    chunk_overlap: int | None,
    coordinator: IngestionCoordinator,
    settings: Settings,
) -> IngestResponse:
    try:
        data = await _read_upload(upload, settings.max_upload_bytes)
        kind = DocumentKindDetector.detect(upload.filename, upload.content_type, allowed=allowed)
        document = Document(
            content=data,
            kind=kind,
            source=upload.filename,
            mime_type=upload.content_type,
        )
        result = await run_in_threadpool(coordinator.ingest, document, chunk_size, chunk_overlap)
    except DocChatError as exc:
        raise _http_error(exc) from exc
    return _serialise_ingest(result)


async def _answer(request: ChatRequest, responder: ChatResponder) -> ChatResponse:
    try:
        answer = await run_in_threadpool(responder.answer, request.question)
    except DocChatError as exc:
        raise _http_error(exc) from exc
    return _serialise_answer(answer)


@web_router.post("/initialize", response_model=IngestResponse)
async def initialize_web(
    request: InitializeWebRequest,
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
) -> IngestResponse:
    """Fetch a web page and make it the active document."""

    try:
        if not request.web_url or not request.web_url.strip():
            raise InputError("web_url must not be empty")
        document = Document.from_url(request.web_url.strip())
        result = await run_in_threadpool(
            coordinator.ingest, document, request.chunk_size, request.chunk_overlap
        )
    except DocChatError as exc:
        raise _http_error(exc) from exc
    return _serialise_ingest(result)


@web_router.post("/chat", response_model=ChatResponse)
@web_router.post("/chat/", response_model=ChatResponse, include_in_schema=False)
async def chat_web(
    request: ChatRequest,
    responder: ChatResponder = Depends(get_chat_responder),
) -> ChatResponse:
    """Answer a question about the active document."""

    return await _answer(request, responder)


@document_router.post("/initialize", response_model=IngestResponse)
async def initialize_document(
    file: UploadFile | None = File(None),
    chunk_size: int | None = Form(None),
    chunk_overlap: int | None = Form(None),
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
    settings: Settings = Depends(get_app_settings),
) -> IngestResponse:
    """Index an uploaded PDF or DOCX file."""

    return await _ingest_upload(file, DOCUMENT_KINDS, chunk_size, chunk_overlap, coordinator, settings)


@document_router.post("/chat", response_model=ChatResponse)
async def chat_document(
    request: ChatRequest,
    responder: ChatResponder = Depends(get_chat_responder),
) -> ChatResponse:
    return await _answer(request, responder)


@excel_router.post("/initialize", response_model=IngestResponse)
async def initialize_excel(
    file: UploadFile | None = File(None),
    chunk_size: int | None = Form(None),
    chunk_overlap: int | None = Form(None),
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
    settings: Settings = Depends(get_app_settings),
) -> IngestResponse:
    """Index an uploaded ``.xlsx`` workbook."""

    return await _ingest_upload(file, SPREADSHEET_KINDS, chunk_size, chunk_overlap, coordinator, settings)


@excel_router.post("/chat", response_model=ChatResponse)
async def chat_excel(
    request: ChatRequest,
    responder: ChatResponder = Depends(get_chat_responder),
) -> ChatResponse:
    return await _answer(request, responder)


__all__ = [
    "ChatRequest",
    "ChatResponse",
    "IngestResponse",
    "InitializeWebRequest",
    "document_router",
    "excel_router",
    "web_router",
]
