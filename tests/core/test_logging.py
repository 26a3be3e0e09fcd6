"""Tests for structured logging."""

import json
import logging
from pathlib import Path

import pytest
import structlog

from forksync.config.models import LoggingConfig, LogOutputConfig
from forksync.core import logging as forksync_logging
from forksync.core.logging import configure_logging, get_logger, get_run_id, set_run_id


class TestRunIdCorrelation:
    """Run ID context variable tests."""

    def setup_method(self) -> None:
        forksync_logging._run_id.set(None)

    def test_given_run_id_when_set_then_can_retrieve(self) -> None:
        # When
        result = set_run_id("run-123")

        # Then
        assert result == "run-123"
        assert get_run_id() == "run-123"

    def test_given_no_id_when_set_then_generates_short_hex(self) -> None:
        rid = set_run_id()

        assert len(rid) == 12
        int(rid, 16)


class TestLoggingConfiguration:
    """Logging configuration tests."""

    def setup_method(self) -> None:
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()
        forksync_logging._run_id.set(None)

    def _json_file_config(self, path: Path, level: str = "DEBUG") -> LoggingConfig:
        return LoggingConfig(
            level=level,  # type: ignore[arg-type]
            outputs=[LogOutputConfig(format="json", destination=str(path))],
        )

    def test_given_json_output_when_log_then_run_id_and_logger_bound(
        self, tmp_path: Path
    ) -> None:
        """Every JSON record carries the logger name and the run ID."""
        # Given
        log_file = tmp_path / "forksync.log"
        configure_logging(config=self._json_file_config(log_file))
        set_run_id("abc123")

        # When
        get_logger("sync.orchestrator").info("merge_attempted", conflicts=2)

        # Then
        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["event"] == "merge_attempted"
        assert data["conflicts"] == 2
        assert data["logger"] == "sync.orchestrator"
        assert data["run_id"] == "abc123"
        assert data["level"] == "info"
        assert "timestamp" in data

    def test_given_config_object_when_configure_then_takes_precedence(
        self, tmp_path: Path
    ) -> None:
        """LoggingConfig wins over the simple level parameter."""
        log_file = tmp_path / "debug.log"

        configure_logging(config=self._json_file_config(log_file), level="ERROR")
        get_logger().debug("debug msg")

        assert "debug msg" in log_file.read_text()

    def test_given_multi_output_config_when_configure_then_levels_apply_per_output(
        self, tmp_path: Path
    ) -> None:
        # Given
        debug_file = tmp_path / "debug.log"
        info_file = tmp_path / "info.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[
                LogOutputConfig(format="json", destination=str(info_file), level="INFO"),
                LogOutputConfig(format="console", destination=str(debug_file)),
            ],
        )

        # When
        configure_logging(config=config)
        logger = get_logger()
        logger.debug("debug only")
        logger.info("info msg")

        # Then
        info_content = info_file.read_text()
        assert "info msg" in info_content
        assert "debug only" not in info_content
        debug_content = debug_file.read_text()
        assert "debug only" in debug_content
        assert "info msg" in debug_content

    def test_given_no_config_when_configure_then_single_stderr_handler(self) -> None:
        configure_logging(level="WARNING")

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert logging.getLogger().level == logging.WARNING

    def test_given_console_handler_when_suppressed_then_record_dropped(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        from forksync.core.progress import suppress_console_logs

        configure_logging(level="INFO")
        logger = get_logger("cli")

        with suppress_console_logs():
            logger.info("hidden")
        logger.info("shown")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err

    def test_given_module_logger_created_before_configure_then_follows_later_config(
        self, tmp_path: Path
    ) -> None:
        """Loggers fetched at import time pick up configuration applied afterwards."""
        # Given
        early = get_logger("sync.swizzle")
        log_file = tmp_path / "late.log"

        # When
        configure_logging(config=self._json_file_config(log_file, level="INFO"))
        early.debug("filtered_out")
        early.info("customization_store_flushed", entries=3)

        # Then
        lines = log_file.read_text().strip().splitlines()
        assert len(lines) == 1
        data = json.loads(lines[0])
        assert data["event"] == "customization_store_flushed"
        assert data["logger"] == "sync.swizzle"

    def test_given_debug_config_when_logging_then_stdout_stays_clean(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        early = get_logger("cli")

        configure_logging(level="DEBUG")
        early.debug("run_opened", fork="/tmp/fork")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "run_opened" in captured.err
