"""Tests for logging configuration, formatting and worker context."""

import json
import logging
import sys

import pytest

from autoreel.config.models import LoggingConfig
from autoreel.logging import (
    JSONFormatter,
    WorkerContextFilter,
    configure_logging,
    get_worker_context,
    worker_context,
)


def make_record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="autoreel.jobs.worker",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestWorkerContext:
    """Tests for worker_context() and WorkerContextFilter."""

    def test_context_is_restored(self):
        with worker_context("worker-a"):
            with worker_context("worker-a", "1a2b3c4d-0000"):
                assert get_worker_context() == ("worker-a", "1a2b3c4d-0000")
            assert get_worker_context() == ("worker-a", None)
        assert get_worker_context() == (None, None)

    def test_tag_with_job(self):
        record = make_record()
        with worker_context("worker-a", "1a2b3c4d-5e6f"):
            WorkerContextFilter().filter(record)
        assert record.worker_tag == "[Wworker-a:1a2b3c4d] "
        assert record.job_id == "1a2b3c4d-5e6f"

    def test_tag_without_context(self):
        record = make_record()
        assert WorkerContextFilter().filter(record) is True
        assert record.worker_tag == ""


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(make_record("rendered 3")))

        assert entry["level"] == "INFO"
        assert entry["message"] == "rendered 3"
        assert entry["logger"] == "autoreel.jobs.worker"
        assert entry["timestamp"].endswith("+00:00")
        assert "context" not in entry

    def test_context_includes_ids_and_extra(self):
        record = make_record(worker_id="worker-a", job_id="abc", segment=2)
        entry = json.loads(JSONFormatter().format(record))

        assert entry["context"] == {
            "worker_id": "worker-a",
            "job_id": "abc",
            "segment": 2,
        }

    def test_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = make_record(exc_info=sys.exc_info())
        entry = json.loads(JSONFormatter().format(record))

        assert "RuntimeError: boom" in entry["exception"]


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_file_handler(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "autoreel.log"
        configure_logging(LoggingConfig(level="debug", file=log_file))

        logging.getLogger("autoreel.test").debug("to file")
        for handler in restore_root_logger.handlers:
            handler.flush()

        assert restore_root_logger.level == logging.DEBUG
        assert "to file" in log_file.read_text()

    def test_stderr_when_no_file(self, restore_root_logger):
        configure_logging(LoggingConfig(level="warning"))

        handlers = restore_root_logger.handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert restore_root_logger.level == logging.WARNING

    def test_json_format(self, restore_root_logger):
        configure_logging(LoggingConfig(format="json"))

        assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)
