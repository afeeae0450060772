"""Extractors for supported document kinds."""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Protocol

import httpx
from docx import Document as load_docx
from openpyxl import load_workbook
from PyPDF2 import PdfReader

from docchat.errors import ExtractionFailed, InputError

from .models import DocumentKind, PageContent
from .text import html_to_text

LOGGER = logging.getLogger(__name__)

_USER_AGENT = "docchat/0.1 (+https://github.com/docchat)"


class Extractor(Protocol):
    """Turns raw document bytes into page text."""

    def extract(self, data: bytes) -> List[PageContent]:
        ...


class PDFExtractor:
    """Extract text from PDF documents page by page."""

    def extract(self, data: bytes) -> List[PageContent]:
        try:
            reader = PdfReader(io.BytesIO(data))
            if reader.is_encrypted:
                raise ExtractionFailed("Encrypted PDF documents are not supported")
            pages: List[PageContent] = []
            for index, page in enumerate(reader.pages, start=1):
                pages.append(PageContent(page_number=index, text=page.extract_text() or ""))
        except ExtractionFailed:
            raise
        except Exception as error:
            raise ExtractionFailed(f"Failed to parse PDF: {error}", cause=error) from error
        return pages


class DocxExtractor:
    """Extract paragraphs and table cells from Microsoft Word documents."""

    def extract(self, data: bytes) -> List[PageContent]:
        try:
            document = load_docx(io.BytesIO(data))
        except Exception as error:
            raise ExtractionFailed(f"Failed to parse DOCX: {error}", cause=error) from error

        parts = [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                if any(cells):
                    parts.append("\t".join(cells))
        return [PageContent(page_number=1, text="\n\n".join(parts))]


def _format_cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


class SpreadsheetExtractor:
    """Render every worksheet row by row, one page per sheet."""

    def extract(self, data: bytes) -> List[PageContent]:
        try:
            workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        except Exception as error:
            raise ExtractionFailed(f"Failed to parse spreadsheet: {error}", cause=error) from error

        pages: List[PageContent] = []
        try:
            for sheet_number, sheet in enumerate(workbook.worksheets, start=1):
                lines = [f"Sheet: {sheet.title}"]
                for row in sheet.iter_rows(values_only=True):
                    cells = [_format_cell(value) for value in row]
                    while cells and not cells[-1]:
                        cells.pop()
                    if cells:
                        lines.append("\t".join(cells))
                if len(lines) > 1:
                    pages.append(PageContent(page_number=sheet_number, text="\n".join(lines)))
        finally:
            workbook.close()
        return pages


class WebPageExtractor:
    """Convert fetched HTML into readable text."""

    def extract(self, data: bytes) -> List[PageContent]:
        html = data.decode("utf-8", errors="replace")
        title, body = html_to_text(html)
        text = f"{title}\n\n{body}" if title else body
        return [PageContent(page_number=1, text=text)]


@dataclass(slots=True)
class FetchedPage:
    url: str
    content: bytes


class WebPageFetcher:
    """Download a web page with httpx, refusing bodies larger than ``max_bytes``."""

    def __init__(
        self,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
        *,
        max_bytes: int | None = None,
    ) -> None:
        self.timeout = timeout
        self.max_bytes = max_bytes
        self._client = client

    def fetch(self, url: str) -> FetchedPage:
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as error:
            raise InputError(f"Invalid web URL: {url!r}", cause=error) from error
        if parsed.scheme not in {"http", "https"} or not parsed.host:
            raise InputError(f"Invalid web URL: {url!r}")

        client = self._client or httpx.Client(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": _USER_AGENT},
        )
        try:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                body = self._read_limited(url, response)
                encoding = response.encoding or "utf-8"
                final_url = str(response.url)
        except httpx.HTTPStatusError as error:
            raise ExtractionFailed(
                f"Fetching {url} returned HTTP {error.response.status_code}", cause=error
            ) from error
        except httpx.HTTPError as error:
            raise ExtractionFailed(f"Failed to fetch {url}: {error}", cause=error) from error
        finally:
            if self._client is None:
                client.close()

        LOGGER.info("Fetched %s (%s bytes)", final_url, len(body))
        # Re-encode so the extractor never has to guess the charset.
        try:
            text = body.decode(encoding, errors="replace")
        except LookupError:
            text = body.decode("utf-8", errors="replace")
        return FetchedPage(url=final_url, content=text.encode("utf-8"))

    def _read_limited(self, url: str, response: httpx.Response) -> bytes:
        chunks: List[bytes] = []
        received = 0
        for chunk in response.iter_bytes():
            received += len(chunk)
            if self.max_bytes is not None and received > self.max_bytes:
                raise ExtractionFailed(f"Web page {url} exceeds the limit of {self.max_bytes} bytes")
            chunks.append(chunk)
        return b"".join(chunks)


def default_extractors() -> Dict[DocumentKind, Extractor]:
    return {
        DocumentKind.PDF: PDFExtractor(),
        DocumentKind.DOCX: DocxExtractor(),
        DocumentKind.SPREADSHEET: SpreadsheetExtractor(),
        DocumentKind.WEB: WebPageExtractor(),
    }


__all__ = [
    "DocxExtractor",
    "Extractor",
    "FetchedPage",
    "PDFExtractor",
    "SpreadsheetExtractor",
    "WebPageExtractor",
    "WebPageFetcher",
    "default_extractors",
]
