"""Tests for request-scoped log records."""

import logging
import uuid

from threatgraph.core.context import clear_request_context, set_request_id
from threatgraph.core.logging_config import RequestIdFilter, configure_logging


def make_record() -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)


def test_filter_stamps_request_id():
    request_id = uuid.uuid4()
    set_request_id(request_id)
    try:
        record = make_record()
        assert RequestIdFilter().filter(record) is True
        assert record.request_id == str(request_id)
    finally:
        clear_request_context()


def test_filter_outside_request():
    record = make_record()
    _ = RequestIdFilter().filter(record)
    assert record.request_id == "-"


def test_configure_logging_installs_one_handler():
    root = logging.getLogger()
    level = root.level
    try:
        configure_logging("debug")
        configure_logging("warning")
        handlers = [
            h
            for h in root.handlers
            if any(isinstance(f, RequestIdFilter) for f in h.filters)
        ]
        assert len(handlers) == 1
        assert root.level == logging.WARNING
    finally:
        root.setLevel(level)
