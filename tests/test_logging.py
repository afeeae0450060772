import json
import logging

from docchat.logging_config import AUDIT_LOGGER_NAME, MinimalJSONFormatter, configure_logging
from docchat.telemetry import log_event


def make_record(msg, **extra) -> logging.LogRecord:
    record = logging.LogRecord("docchat.test", logging.INFO, __file__, 1, msg, None, None)
    record.__dict__.update(extra)
    return record


def test_formatter_merges_dict_messages():
    payload = json.loads(MinimalJSONFormatter().format(make_record({"step": "ingest.start", "chunks": 3})))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "docchat.test"
    assert payload["step"] == "ingest.start"
    assert payload["chunks"] == 3
    assert payload["ts"].endswith("Z")


def test_formatter_keeps_plain_messages_and_extras():
    payload = json.loads(MinimalJSONFormatter().format(make_record("hello", source="doc.pdf")))

    assert payload["message"] == "hello"
    assert payload["source"] == "doc.pdf"


def test_formatter_omits_standard_record_attributes():
    payload = json.loads(MinimalJSONFormatter().format(make_record("hello", chunk_count=2)))

    assert set(payload) == {"ts", "level", "logger", "message", "chunk_count"}


def test_audit_logger_writes_json_lines(tmp_path):
    configure_logging(tmp_path)
    audit = logging.getLogger(AUDIT_LOGGER_NAME)

    audit.info({"event": "ingest", "source": "report.pdf", "chunk_count": 2})
    for handler in audit.handlers:
        handler.flush()

    lines = (tmp_path / "ingest_audit.log").read_text(encoding="utf-8").splitlines()
    record = json.loads(lines[-1])
    assert record["event"] == "ingest"
    assert record["chunk_count"] == 2


def test_log_event_includes_exception_text():
    captured = []

    class ListHandler(logging.Handler):
        def emit(self, record):
            captured.append(record)

    logger = logging.getLogger("docchat.test.events")
    logger.addHandler(ListHandler())
    logger.setLevel(logging.INFO)
    try:
        log_event(logger, "inference.result", level="error", duration_ms=1.23456, exc=ValueError("bad"))
    finally:
        logger.handlers.clear()

    event = captured[0].msg
    assert event["step"] == "inference.result"
    assert event["duration_ms"] == 1.235
    assert "ValueError: bad" in event["exc"]
