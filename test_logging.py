"""
Tests for the logging system of the espresso journal server.

Tests cover:
- Logging configuration and initialization
- Log file creation and rotation
- JSON log formatting
- Request tracking with correlation IDs
- Log retrieval endpoint
"""

import pytest
import json
import logging
import sys
from pathlib import Path
from unittest.mock import patch
from fastapi.testclient import TestClient

from logging_config import setup_logging, JSONFormatter, HumanReadableFormatter, get_logger, LOGGER_NAME
from main import app


@pytest.fixture
def temp_log_dir(tmp_path):
    """Directory for log files; restores the app logger afterwards."""
    logger = logging.getLogger(LOGGER_NAME)
    saved_handlers, saved_level = list(logger.handlers), logger.level
    yield tmp_path
    for handler in logger.handlers:
        if handler not in saved_handlers:
            handler.close()
    logger.handlers = saved_handlers
    logger.setLevel(saved_level)


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    return TestClient(app)


def make_record(level=logging.INFO, msg="Test message", exc_info=None):
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info
    )


class TestLoggingConfiguration:
    """Tests for logging configuration setup."""

    def test_setup_logging_creates_directory(self, temp_log_dir):
        log_dir = temp_log_dir / "new_logs"
        assert not log_dir.exists()

        logger = setup_logging(log_dir=str(log_dir))

        assert log_dir.exists()
        assert logger is not None

    def test_setup_logging_creates_log_files(self, temp_log_dir):
        logger = setup_logging(log_dir=str(temp_log_dir))

        logger.info("Test log entry")
        logger.error("Test error entry")

        assert (temp_log_dir / "espresso-journal.log").exists()
        assert (temp_log_dir / "espresso-journal-errors.log").exists()

    def test_error_file_only_gets_errors(self, temp_log_dir):
        logger = setup_logging(log_dir=str(temp_log_dir))
        logger.info("Routine entry")
        logger.error("Broken grinder", extra={"shot_id": "abc"})
        for handler in logger.handlers:
            handler.flush()

        lines = (temp_log_dir / "espresso-journal-errors.log").read_text().splitlines()
        entries = [json.loads(line) for line in lines]
        assert [e["message"] for e in entries] == ["Broken grinder"]
        assert entries[0]["shot_id"] == "abc"

    def test_setup_logging_configures_handlers(self, temp_log_dir):
        logger = setup_logging(log_dir=str(temp_log_dir))

        # Console, all logs, error logs
        assert len(logger.handlers) == 3

        handler_types = [type(h).__name__ for h in logger.handlers]
        assert 'StreamHandler' in handler_types
        assert handler_types.count('RotatingFileHandler') == 2

    def test_setup_logging_twice_does_not_duplicate_handlers(self, temp_log_dir):
        setup_logging(log_dir=str(temp_log_dir))
        logger = setup_logging(log_dir=str(temp_log_dir))
        assert len(logger.handlers) == 3

    def test_setup_logging_log_level(self, temp_log_dir):
        logger = setup_logging(log_dir=str(temp_log_dir), log_level="DEBUG")
        assert logger.level == logging.DEBUG

        logger = setup_logging(log_dir=str(temp_log_dir), log_level="error")
        assert logger.level == logging.ERROR

    def test_get_logger_returns_configured_logger(self, temp_log_dir):
        setup_logging(log_dir=str(temp_log_dir))
        logger = get_logger()

        assert logger.name == "espresso-journal"
        assert len(logger.handlers) > 0


class TestJSONFormatter:
    """Tests for JSON log formatting."""

    def test_json_formatter_basic_fields(self):
        log_data = json.loads(JSONFormatter().format(make_record()))

        assert log_data["timestamp"].endswith("Z")
        assert log_data["level"] == "INFO"
        assert log_data["logger"] == "test"
        assert log_data["message"] == "Test message"
        assert log_data["line"] == 42

    def test_json_formatter_with_exception(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            record = make_record(logging.ERROR, "Error occurred", sys.exc_info())

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["exception"]["type"] == "ValueError"
        assert "Test error" in log_data["exception"]["message"]
        assert "traceback" in log_data["exception"]

    def test_json_formatter_with_extra_fields(self):
        record = make_record()
        record.request_id = "test-123"
        record.endpoint = "/api/shots"
        record.duration_ms = 150
        record.query = "Kenya"

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["request_id"] == "test-123"
        assert log_data["endpoint"] == "/api/shots"
        assert log_data["duration_ms"] == 150
        assert log_data["query"] == "Kenya"

    def test_json_formatter_serializes_unknown_types(self):
        record = make_record()
        record.path = Path("/tmp/shots.json")
        log_data = json.loads(JSONFormatter().format(record))
        assert log_data["path"] == "/tmp/shots.json"


class TestHumanReadableFormatter:
    """Tests for human-readable log formatting."""

    def test_human_readable_formatter_format(self):
        formatted = HumanReadableFormatter().format(make_record())

        assert "test" in formatted
        assert "INFO" in formatted
        assert "Test message" in formatted


class TestLogRetrieval:
    """Tests for the /api/logs endpoint."""

    def write_log(self, path: Path, entries):
        path.write_text("".join(json.dumps(e) + "\n" for e in entries))

    def test_get_logs_returns_most_recent_first(self, client, tmp_path):
        self.write_log(tmp_path / "espresso-journal.log", [
            {"level": "INFO", "message": "first"},
            {"level": "INFO", "message": "second"},
        ])
        with patch('config.LOG_DIR', tmp_path):
            response = client.get("/api/logs")

        assert response.status_code == 200
        data = response.json()
        assert [e["message"] for e in data["logs"]] == ["second", "first"]
        assert data["total_lines"] == 2

    def test_get_logs_filters_by_level(self, client, tmp_path):
        self.write_log(tmp_path / "espresso-journal.log", [
            {"level": "INFO", "message": "Info message"},
            {"level": "ERROR", "message": "Error message"},
            {"level": "DEBUG", "message": "Debug message"},
        ])
        with patch('config.LOG_DIR', tmp_path):
            data = client.get("/api/logs?level=error").json()

        assert [e["level"] for e in data["logs"]] == ["ERROR"]

    def test_get_logs_limits_lines(self, client, tmp_path):
        self.write_log(
            tmp_path / "espresso-journal.log",
            [{"level": "INFO", "message": f"Message {i}"} for i in range(200)]
        )
        with patch('config.LOG_DIR', tmp_path):
            data = client.get("/api/logs?lines=50").json()

        assert len(data["logs"]) == 50
        assert data["logs"][0]["message"] == "Message 199"

    def test_get_logs_skips_malformed_lines(self, client, tmp_path):
        (tmp_path / "espresso-journal.log").write_text('not json\n{"level": "INFO", "message": "ok"}\n')
        with patch('config.LOG_DIR', tmp_path):
            data = client.get("/api/logs").json()
        assert [e["message"] for e in data["logs"]] == ["ok"]

    def test_get_logs_error_type(self, client, tmp_path):
        self.write_log(tmp_path / "espresso-journal-errors.log", [{"level": "ERROR", "message": "boom"}])
        with patch('config.LOG_DIR', tmp_path):
            data = client.get("/api/logs?log_type=errors").json()
        assert data["log_file"].endswith("espresso-journal-errors.log")
        assert data["logs"][0]["message"] == "boom"

    def test_get_logs_missing_file(self, client, tmp_path):
        with patch('config.LOG_DIR', tmp_path / "nowhere"):
            data = client.get("/api/logs").json()
        assert data["total_lines"] == 0
        assert "message" in data


class TestRequestLogging:
    """Tests for request logging middleware."""

    def test_response_carries_request_id(self, client):
        first = client.get("/api/status").headers["X-Request-ID"]
        second = client.get("/api/status").headers["X-Request-ID"]
        assert first and second and first != second

    def test_requests_are_logged_with_id(self, client, temp_log_dir):
        setup_logging(log_dir=str(temp_log_dir))
        response = client.get("/api/shots")
        for handler in get_logger().handlers:
            handler.flush()

        request_id = response.headers["X-Request-ID"]
        entries = [
            json.loads(line)
            for line in (temp_log_dir / "espresso-journal.log").read_text().splitlines()
        ]
        completed = [e for e in entries if e.get("request_id") == request_id and "status_code" in e]
        assert completed[0]["status_code"] == 200
        assert completed[0]["endpoint"] == "/api/shots"

    def test_openapi_includes_logs_endpoint(self, client):
        openapi_data = client.get("/openapi.json").json()
        assert "get" in openapi_data["paths"]["/api/logs"]


class TestLogRotation:
    """Tests for log rotation functionality."""

    def test_rotating_handler_configured(self, temp_log_dir):
        logger = setup_logging(log_dir=str(temp_log_dir), max_bytes=1024, backup_count=2)

        rotating_handlers = [h for h in logger.handlers if type(h).__name__ == 'RotatingFileHandler']

        assert len(rotating_handlers) == 2
        for handler in rotating_handlers:
            assert handler.maxBytes == 1024
            assert handler.backupCount == 2

    def test_log_rotation_creates_backup(self, temp_log_dir):
        logger = setup_logging(log_dir=str(temp_log_dir), max_bytes=500, backup_count=2)

        for i in range(10):
            logger.info("x" * 200, extra={"iteration": i})

        log_files = list(temp_log_dir.glob("espresso-journal.log*"))
        assert len(log_files) >= 2
