"""Text clean-up helpers: normalisation, HTML flattening and language detection."""
from __future__ import annotations

import logging
import re
import unicodedata
from html.parser import HTMLParser
from typing import List, Optional

from langdetect import DetectorFactory, LangDetectException, detect

LOGGER = logging.getLogger(__name__)
DetectorFactory.seed = 0

_WHITESPACE_RE = re.compile("[ \\t\\f\\v\\u00a0]+")
_MULTIPLE_NEWLINES_RE = re.compile(r"\n{3,}")
_TRAILING_SPACE_RE = re.compile(r" *\n *")
_ZERO_WIDTH_RE = re.compile("[\\u200b\\u200c\\u200d\\ufeff]")

_LANGUAGE_SAMPLE_CHARS = 2000


def normalize_text(text: str) -> str:
    """Normalise Unicode form, line endings and runs of whitespace."""

    normalized = unicodedata.normalize("NFC", text)
    normalized = _ZERO_WIDTH_RE.sub("", normalized)
    normalized = normalized.replace("\r\n", "\n").replace("\r", "\n")
    normalized = _WHITESPACE_RE.sub(" ", normalized)
    normalized = _TRAILING_SPACE_RE.sub("\n", normalized)
    normalized = _MULTIPLE_NEWLINES_RE.sub("\n\n", normalized)
    return normalized.strip()


def detect_language(text: str) -> Optional[str]:
    """Return an ISO language code for ``text`` or ``None`` when undetermined."""

    sample = text.strip()[:_LANGUAGE_SAMPLE_CHARS]
    if not sample:
        return None
    try:
        return detect(sample)
    except LangDetectException:
        LOGGER.info("Unable to determine language for text of length %s", len(text))
        return None


class _HTMLTextParser(HTMLParser):
    """Collects visible text, turning block-level elements into line breaks."""

    _SKIP_TAGS = {"script", "style", "noscript", "template", "svg"}
    _BLOCK_TAGS = {
        "address", "article", "aside", "blockquote", "br", "dd", "div", "dl", "dt",
        "figcaption", "footer", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr",
        "li", "main", "nav", "ol", "p", "pre", "section", "table", "td", "th", "tr", "ul",
    }

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.title: Optional[str] = None
        self._parts: List[str] = []
        self._skip_depth = 0
        self._in_title = False
        self._title_parts: List[str] = []

    def handle_starttag(self, tag: str, attrs) -> None:
        # Only the first document title counts; svg icons carry their own.
        if tag == "title" and self.title is None and not self._skip_depth:
            self._in_title = True
            self._title_parts = []
        if tag in self._SKIP_TAGS:
            self._skip_depth += 1
        elif tag in self._BLOCK_TAGS:
            self._parts.append("\n")

    def handle_endtag(self, tag: str) -> None:
        if tag == "title" and self._in_title:
            self._in_title = False
            self.title = " ".join("".join(self._title_parts).split()) or None
        if tag in self._SKIP_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
        elif tag in self._BLOCK_TAGS:
            self._parts.append("\n")

    def handle_data(self, data: str) -> None:
        if self._in_title:
            self._title_parts.append(data)
            return
        if self._skip_depth:
            return
        self._parts.append(data)

    def text(self) -> str:
        return "".join(self._parts)


def html_to_text(html: str) -> tuple[Optional[str], str]:
    """Flatten an HTML document into ``(title, text)``."""

    parser = _HTMLTextParser()
    parser.feed(html)
    parser.close()
    lines = [" ".join(line.split()) for line in parser.text().splitlines()]
    body = "\n".join(line for line in lines if line)
    return parser.title, body
