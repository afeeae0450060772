import pytest

from docchat.errors import UnsupportedKind
from docchat.ingest import DocumentKind, DocumentKindDetector


@pytest.mark.parametrize(
    ("file_name", "expected"),
    [
        ("report.pdf", DocumentKind.PDF),
        ("REPORT.PDF", DocumentKind.PDF),
        ("notes.docx", DocumentKind.DOCX),
        ("budget.xlsx", DocumentKind.SPREADSHEET),
        ("macros.xlsm", DocumentKind.SPREADSHEET),
    ],
)
def test_detect_by_suffix(file_name, expected):
    assert DocumentKindDetector.detect(file_name) is expected


def test_suffix_wins_over_generic_mime_type():
    kind = DocumentKindDetector.detect("scan.pdf", "application/octet-stream")

    assert kind is DocumentKind.PDF


def test_mime_type_used_when_suffix_unknown():
    kind = DocumentKindDetector.detect("upload", "application/pdf; charset=binary")

    assert kind is DocumentKind.PDF


@pytest.mark.parametrize("file_name", ["legacy.xls", "notes.txt", "archive.zip", ""])
def test_unknown_kinds_are_rejected(file_name):
    with pytest.raises(UnsupportedKind):
        DocumentKindDetector.detect(file_name)


def test_kind_outside_allowed_set_is_rejected():
    with pytest.raises(UnsupportedKind) as excinfo:
        DocumentKindDetector.detect(
            "budget.xlsx", allowed=[DocumentKind.PDF, DocumentKind.DOCX]
        )

    assert "docx, pdf" in str(excinfo.value)
