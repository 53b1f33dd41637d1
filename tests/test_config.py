import json
import logging
from logging.handlers import TimedRotatingFileHandler

import pytest

from explain_doctor.core.config import LoggingSettings, Settings, configure, get_settings, reset_settings
from explain_doctor.core.constants import DEFAULT_MAX_CONCURRENT_FETCHES, DEFAULT_QUERY_TIMEOUT
from explain_doctor.core.exceptions import ConfigurationError
from explain_doctor.core.logger import (
    ColoredFormatter,
    LogContext,
    get_logger,
    log_exception,
    setup_logging,
    shutdown_logging,
)


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.database.query_timeout == DEFAULT_QUERY_TIMEOUT
        assert settings.analysis.max_concurrent_fetches == DEFAULT_MAX_CONCURRENT_FETCHES
        assert settings.logging.level == "INFO"
        assert settings.logging.file_enabled is False

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("EXPLAINDOCTOR_ANALYSIS__MAX_CONCURRENT_FETCHES", "8")
        monkeypatch.setenv("EXPLAINDOCTOR_LOGGING__LEVEL", "debug")
        settings = Settings()
        assert settings.analysis.max_concurrent_fetches == 8
        assert settings.logging.level == "DEBUG"

    def test_unknown_level_falls_back_to_info(self):
        assert Settings(logging={"level": "verbose"}).logging.level == "INFO"

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"database": {"query_timeout": 5}}), encoding="utf-8")
        assert Settings.load(path).database.query_timeout == 5

    def test_missing_file_gives_defaults(self, tmp_path):
        assert Settings.load(tmp_path / "nope.json").database.query_timeout == DEFAULT_QUERY_TIMEOUT

    @pytest.mark.parametrize("content", ["{broken", "[1, 2]", json.dumps({"analysis": {"max_concurrent_fetches": 0}})])
    def test_bad_file(self, tmp_path, content):
        path = tmp_path / "settings.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigurationError):
            Settings.load(path)

    def test_global_instance(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"database": {"query_timeout": 9}}), encoding="utf-8")

        assert configure(path) is get_settings()
        assert get_settings().database.query_timeout == 9

        reset_settings()
        assert get_settings().database.query_timeout == DEFAULT_QUERY_TIMEOUT


class TestLogging:
    def test_child_logger_name(self):
        assert get_logger("analysis.plan_builder").name == "ExplainDoctor.analysis.plan_builder"

    def test_log_context(self, caplog):
        logger = get_logger("tests")
        with caplog.at_level(logging.INFO, logger="ExplainDoctor"):
            with LogContext(logger, "Analyzing EXPLAIN plan"):
                pass
        assert "Analyzing EXPLAIN plan... started" in caplog.text
        assert "Analyzing EXPLAIN plan... completed in" in caplog.text

    def test_log_context_does_not_swallow(self, caplog):
        logger = get_logger("tests")
        with pytest.raises(ValueError):
            with LogContext(logger, "Failing step"):
                raise ValueError("boom")
        assert "Failing step... failed after" in caplog.text

    def test_log_exception(self, caplog):
        logger = get_logger("tests")
        log_exception(logger, RuntimeError("lost"), "Fetch failed")
        assert "Fetch failed: lost" in caplog.text
        assert caplog.records[-1].exc_info is not None


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def _detach_handlers(self):
        yield
        shutdown_logging()

    def test_console_only_by_default(self):
        logger = setup_logging(LoggingSettings(level="warning"))
        assert logger.name == "ExplainDoctor"
        assert logger.level == logging.WARNING
        assert [type(h) for h in logger.handlers] == [logging.StreamHandler]
        assert isinstance(logger.handlers[0].formatter, ColoredFormatter)

    def test_rotating_file(self, tmp_path):
        logger = setup_logging(LoggingSettings(file_enabled=True, log_dir=tmp_path, retention_days=3))
        file_handlers = [h for h in logger.handlers if isinstance(h, TimedRotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].backupCount == 3

        get_logger("tests").error("written to file")
        file_handlers[0].flush()
        assert "written to file" in (tmp_path / "explain_doctor.log").read_text(encoding="utf-8")

    def test_setup_twice_replaces_handlers(self):
        setup_logging(LoggingSettings())
        logger = setup_logging(LoggingSettings())
        assert len(logger.handlers) == 1

    def test_uses_global_settings(self, monkeypatch):
        monkeypatch.setenv("EXPLAINDOCTOR_LOGGING__LEVEL", "ERROR")
        assert setup_logging().level == logging.ERROR

    def test_shutdown(self):
        setup_logging(LoggingSettings())
        shutdown_logging()
        assert get_logger().handlers == []
