"""Tests for structured logging configuration."""

import io
import json
import logging
import sys

from linguacrm.logging_config import (
    JsonFormatter,
    TextFormatter,
    correlation_id_ctx,
    correlation_scope,
    get_logger,
    new_correlation_id,
    setup_logging,
)


def _record(
    level: int = logging.INFO, msg: str = "Test", **kwargs
) -> logging.LogRecord:
    return logging.LogRecord(
        name=kwargs.pop("name", "test"),
        level=level,
        pathname=kwargs.pop("pathname", ""),
        lineno=kwargs.pop("lineno", 0),
        msg=msg,
        args=(),
        exc_info=kwargs.pop("exc_info", None),
    )


class TestJsonFormatter:
    """Tests for JSON log formatting."""

    def test_json_format_basic(self):
        formatter = JsonFormatter(service_name="test-service")

        parsed = json.loads(
            formatter.format(_record(msg="Backup written", name="linguacrm.backup"))
        )

        assert parsed["level"] == "INFO"
        assert parsed["service"] == "test-service"
        assert parsed["message"] == "Backup written"
        assert parsed["logger"] == "linguacrm.backup"
        assert "timestamp" in parsed

    def test_json_format_with_correlation_id(self):
        formatter = JsonFormatter()

        token = correlation_id_ctx.set("run-123")
        try:
            parsed = json.loads(formatter.format(_record()))
            assert parsed["correlation_id"] == "run-123"
        finally:
            correlation_id_ctx.reset(token)

    def test_json_format_without_correlation_id(self):
        parsed = json.loads(JsonFormatter().format(_record()))

        assert "correlation_id" not in parsed

    def test_json_format_includes_extra_fields(self):
        record = _record()
        record.extra_fields = {"record_counts": {"prospects": 2}, "path": "a.json"}

        parsed = json.loads(JsonFormatter().format(record))

        assert parsed["record_counts"] == {"prospects": 2}
        assert parsed["path"] == "a.json"

    def test_json_format_error_includes_location(self):
        record = _record(level=logging.ERROR, pathname="/app/backup.py", lineno=42)
        record.funcName = "perform_auto_backup"

        parsed = json.loads(JsonFormatter().format(record))

        assert parsed["location"] == {
            "file": "/app/backup.py",
            "line": 42,
            "function": "perform_auto_backup",
        }

    def test_json_format_with_exception(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        parsed = json.loads(
            JsonFormatter().format(_record(level=logging.ERROR, exc_info=exc_info))
        )

        assert "ValueError" in parsed["exception"]


class TestTextFormatter:
    """Tests for text log formatting."""

    def test_text_format_basic(self):
        output = TextFormatter(service_name="test-service").format(
            _record(msg="Test message")
        )

        assert "test-service" in output
        assert "INFO" in output
        assert "Test message" in output
        assert "[-]" in output

    def test_text_format_with_correlation_id(self):
        token = correlation_id_ctx.set("abc-123")
        try:
            assert "[abc-123]" in TextFormatter().format(_record())
        finally:
            correlation_id_ctx.reset(token)

    def test_text_format_appends_extra_fields(self):
        record = _record(msg="Backup uploaded to server")
        record.extra_fields = {"url": "http://backup.test/api/backup"}

        output = TextFormatter().format(record)

        assert output.endswith(
            "Backup uploaded to server url=http://backup.test/api/backup"
        )


class TestStructuredLogger:
    """Tests for the StructuredLogger wrapper."""

    def test_logger_info(self, caplog):
        logger = get_logger("test.logger")

        with caplog.at_level(logging.INFO):
            logger.info("Test info message")

        assert "Test info message" in caplog.text

    def test_logger_attaches_extra_fields(self, caplog):
        logger = get_logger("test.logger")

        with caplog.at_level(logging.INFO):
            logger.info("Data export initiated", user_id="user-1")

        assert caplog.records[-1].extra_fields == {"user_id": "user-1"}

    def test_logger_without_extra_fields(self, caplog):
        logger = get_logger("test.logger")

        with caplog.at_level(logging.WARNING):
            logger.warning("No extras")

        assert not hasattr(caplog.records[-1], "extra_fields")


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_setup_json_logging(self):
        setup_logging(log_format="json", log_level="DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_setup_text_logging(self):
        setup_logging(log_format="text", log_level="INFO")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_setup_quiets_third_party_loggers(self):
        setup_logging(log_format="json", log_level="DEBUG")

        assert logging.getLogger("apscheduler").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_setup_writes_to_given_stream(self):
        stream = io.StringIO()
        setup_logging(log_format="json", log_level="INFO", stream=stream)

        get_logger("test.stream").info("Backup uploaded to server")

        assert json.loads(stream.getvalue())["message"] == "Backup uploaded to server"

    def test_setup_custom_service_name(self):
        setup_logging(log_format="json", service_name="custom-service")

        formatter = logging.getLogger().handlers[0].formatter
        assert isinstance(formatter, JsonFormatter)
        assert formatter.service_name == "custom-service"


def test_new_correlation_id_is_unique():
    first, second = new_correlation_id(), new_correlation_id()

    assert len(first) == 12
    assert first != second


class TestCorrelationScope:
    """Tests for correlation_scope."""

    def test_sets_and_resets_run_id(self):
        with correlation_scope() as run_id:
            assert correlation_id_ctx.get() == run_id

        assert correlation_id_ctx.get() is None

    def test_nested_scope_reuses_outer_id(self):
        with correlation_scope("outer-run") as outer:
            with correlation_scope() as inner:
                assert inner == outer == "outer-run"

    def test_explicit_id_wins(self):
        with correlation_scope("outer-run"):
            with correlation_scope("backup-run") as inner:
                assert inner == "backup-run"
            assert correlation_id_ctx.get() == "outer-run"
