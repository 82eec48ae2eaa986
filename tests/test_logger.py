"""
Structured logging
"""

import json
import logging
import sys

from searchsync.utils import JsonFormatter, get_logger, setup_logging


def _record(level: int = logging.INFO, msg: str = "hello %s", args=("world",)) -> logging.LogRecord:
    return logging.LogRecord("searchsync.test", level, __file__, 1, msg, args, None)


def test_json_formatter_includes_extra_fields():
    record = _record()
    record.index = "myindex"
    record.count = 3

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "hello world"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "searchsync.test"
    assert payload["index"] == "myindex"
    assert payload["count"] == 3
    assert "args" not in payload


def test_json_formatter_includes_exception():
    record = _record(logging.ERROR, "failed", ())
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record.exc_info = sys.exc_info()

    payload = json.loads(JsonFormatter().format(record))

    assert "RuntimeError: boom" in payload["exception"]


def test_get_logger_is_namespaced():
    assert get_logger("engine.adapter").name == "searchsync.engine.adapter"


def test_setup_logging_replaces_handlers():
    logger = setup_logging(level="debug", format_type="text")
    setup_logging(level="warning", format_type="json")

    try:
        assert logger.name == "searchsync"
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JsonFormatter)
    finally:
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
