"""Utilities for detecting the kind of uploaded documents."""
from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Iterable, Optional

from docchat.errors import UnsupportedKind

from .models import DocumentKind


class DocumentKindDetector:
    """Detects the document kind based on file name and optional MIME type."""

    _MIME_MAP = {
        "application/pdf": DocumentKind.PDF,
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentKind.DOCX,
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": DocumentKind.SPREADSHEET,
    }
    _SUFFIX_MAP = {
        ".pdf": DocumentKind.PDF,
        ".docx": DocumentKind.DOCX,
        ".xlsx": DocumentKind.SPREADSHEET,
        ".xlsm": DocumentKind.SPREADSHEET,
    }

    @classmethod
    def detect(
        cls,
        file_name: str,
        mime_type: Optional[str] = None,
        *,
        allowed: Iterable[DocumentKind] | None = None,
    ) -> DocumentKind:
        """Return the detected document kind.

        The file suffix wins when it is known, then the explicit MIME type, then
        `mimetypes.guess_type`. Browsers often send ``application/octet-stream``
        so the suffix is the more reliable signal.
        """

        suffix = Path(file_name or "").suffix.lower()
        kind = cls._SUFFIX_MAP.get(suffix)
        if kind is None and mime_type:
            kind = cls._MIME_MAP.get(mime_type.split(";")[0].strip().lower())
        if kind is None:
            guessed_type, _ = mimetypes.guess_type(file_name or "")
            if guessed_type:
                kind = cls._MIME_MAP.get(guessed_type)

        if kind is None:
            raise UnsupportedKind(f"Unsupported file type: {file_name or '<unnamed>'}")

        allowed_kinds = set(allowed) if allowed is not None else None
        if allowed_kinds is not None and kind not in allowed_kinds:
            expected = ", ".join(sorted(item.value for item in allowed_kinds))
            raise UnsupportedKind(f"Unsupported file type: {file_name}; expected one of: {expected}")
        return kind
