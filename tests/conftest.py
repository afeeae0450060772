"""Shared fixtures: in-memory documents, a recording model and a stubbed web."""
from __future__ import annotations

import io
import os
import tempfile
from typing import Callable, Dict, List, Optional, Sequence

os.environ.setdefault("EMBEDDING_BACKEND", "hashing")
os.environ.setdefault("LLM_PROVIDER", "stub")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="docchat-logs-"))

import docx
import httpx
import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

from docchat.embeddings import HashingEmbeddings
from docchat.ingest import WebPageFetcher
from docchat.llm_provider import LLM
from docchat.main import create_app
from docchat.session import SessionStore
from docchat.settings import Settings
from docchat.vectorstore import Attachment


def _escape_pdf_text(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(pages: Sequence[str]) -> bytes:
    """Return a minimal PDF with one Helvetica text line per page."""

    page_ids = [4 + 2 * number for number in range(len(pages))]
    kids = " ".join(f"{page_id} 0 R" for page_id in page_ids)
    objects: List[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>".encode("ascii"),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for page_id, text in zip(page_ids, pages):
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Resources << /Font << /F1 3 0 R >> >> /Contents {page_id + 1} 0 R >>"
            ).encode("ascii")
        )
        stream = f"BT /F1 12 Tf 72 720 Td ({_escape_pdf_text(text)}) Tj ET".encode("latin-1")
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    output = bytearray(b"%PDF-1.4\n")
    offsets: List[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(output))
        output += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"

    xref_offset = len(output)
    output += f"xref\n0 {len(objects) + 1}\n".encode("ascii")
    output += b"0000000000 65535 f \n"
    for offset in offsets:
        output += f"{offset:010d} 00000 n \n".encode("ascii")
    output += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n"
    ).encode("ascii")
    return bytes(output)


def build_docx(paragraphs: Sequence[str], table: Optional[Sequence[Sequence[str]]] = None) -> bytes:
    document = docx.Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    if table:
        grid = document.add_table(rows=len(table), cols=len(table[0]))
        for row_number, row in enumerate(table):
            for column_number, value in enumerate(row):
                grid.cell(row_number, column_number).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def build_xlsx(sheets: Dict[str, Sequence[Sequence[object]]]) -> bytes:
    workbook = Workbook()
    workbook.remove(workbook.active)
    for title, rows in sheets.items():
        sheet = workbook.create_sheet(title)
        for row in rows:
            sheet.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class RecordingLLM(LLM):
    """Remembers every prompt and replies with a canned answer."""

    provider = "recording"
    supports_attachments = True

    def __init__(self, reply: str = "Recorded answer.", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []
        self.attachments: List[Optional[Attachment]] = []

    def _generate(self, prompt, *, max_tokens, temperature, attachment) -> str:
        self.prompts.append(prompt)
        self.attachments.append(attachment)
        if self.error is not None:
            raise self.error
        return self.reply

    @property
    def model_loaded(self) -> bool:
        return True

    @property
    def model_name(self) -> str:
        return "recording"


class CountingEmbeddings(HashingEmbeddings):
    """Hashing embeddings that count calls and can be told to fail."""

    def __init__(self, dimension: int = 64) -> None:
        super().__init__(dimension)
        self.calls = 0
        self.error: Exception | None = None

    def _embed(self, texts):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return super()._embed(texts)


WebPages = Dict[str, httpx.Response]


def build_fetcher(pages: WebPages) -> WebPageFetcher:
    """A fetcher answering from ``pages`` keyed by URL; unknown URLs get a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        response = pages.get(str(request.url))
        if response is None:
            return httpx.Response(404, text="not found")
        return response

    return WebPageFetcher(client=httpx.Client(transport=httpx.MockTransport(handler)))


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        embedding_backend="hashing",
        embedding_dimension=64,
        llm_provider="stub",
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def recording_llm() -> RecordingLLM:
    return RecordingLLM()


@pytest.fixture
def embeddings() -> CountingEmbeddings:
    return CountingEmbeddings()


@pytest.fixture
def web_pages() -> WebPages:
    return {}


@pytest.fixture
def fetcher(web_pages: WebPages) -> WebPageFetcher:
    return build_fetcher(web_pages)


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def make_app(test_settings, recording_llm, embeddings, fetcher) -> Callable[..., object]:
    def factory(settings: Settings | None = None):
        return create_app(
            settings or test_settings,
            embedding_model=embeddings,
            llm=recording_llm,
            fetcher=fetcher,
        )

    return factory


@pytest.fixture
def client(make_app) -> TestClient:
    with TestClient(make_app()) as test_client:
        yield test_client
