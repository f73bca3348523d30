"""Tests for configuration and logging setup."""

import logging
from pathlib import Path

import pytest

from productcollect.config import DEFAULT_CLEANUP_DAYS, Config, get_config, reset_config
from productcollect.logging_config import setup_logging


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Clear productcollect variables around each test."""
    for name in (
        "PRODUCTCOLLECT_DB_PATH",
        "PRODUCTCOLLECT_CLEANUP_DAYS",
        "PRODUCTCOLLECT_COLLECTION_LIMIT",
        "PRODUCTCOLLECT_LOG_LEVEL",
        "PRODUCTCOLLECT_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


class TestConfig:
    """Tests for Config."""

    def test_defaults(self):
        """Test defaults when nothing is set."""
        config = Config.from_env()

        assert config.db_path == Path.home() / ".productcollect" / "collects.db"
        assert config.cleanup_days == DEFAULT_CLEANUP_DAYS == 30
        assert config.collection_limit is None
        assert config.log_level == "INFO"
        assert config.log_file is None

    def test_from_env(self, monkeypatch, tmp_path):
        """Test reading every variable."""
        monkeypatch.setenv("PRODUCTCOLLECT_DB_PATH", str(tmp_path / "c.db"))
        monkeypatch.setenv("PRODUCTCOLLECT_CLEANUP_DAYS", "7")
        monkeypatch.setenv("PRODUCTCOLLECT_COLLECTION_LIMIT", "200")
        monkeypatch.setenv("PRODUCTCOLLECT_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("PRODUCTCOLLECT_LOG_FILE", str(tmp_path / "c.log"))

        config = Config.from_env()

        assert config.db_path == tmp_path / "c.db"
        assert config.cleanup_days == 7
        assert config.collection_limit == 200
        assert config.log_level == "DEBUG"
        assert config.log_file == str(tmp_path / "c.log")

    def test_blank_limit_disables_quota(self, monkeypatch):
        """Test an empty limit means no limit."""
        monkeypatch.setenv("PRODUCTCOLLECT_COLLECTION_LIMIT", " ")

        assert Config.from_env().collection_limit is None

    def test_validate_ok(self, tmp_path):
        """Test a valid configuration."""
        config = Config(
            db_path=tmp_path / "sub" / "c.db",
            cleanup_days=30,
            collection_limit=None,
            log_level="INFO",
            log_file=None,
        )

        assert config.validate() == []
        assert (tmp_path / "sub").exists()

    def test_validate_errors(self, tmp_path):
        """Test invalid numbers are reported."""
        config = Config(
            db_path=tmp_path / "c.db",
            cleanup_days=0,
            collection_limit=-5,
            log_level="INFO",
            log_file=None,
        )

        errors = config.validate()

        assert len(errors) == 2
        assert any("Cleanup days" in e for e in errors)
        assert any("Collection limit" in e for e in errors)

    def test_get_config_cached(self):
        """Test the global config is reused until reset."""
        first = get_config()
        assert get_config() is first

        reset_config()
        assert get_config() is not first


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture
    def logger_name(self, request):
        """A dedicated logger, cleaned up after the test."""
        name = f"productcollect.test_logging.{request.node.name}"
        yield name
        logger = logging.getLogger(name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)

    def test_console_handler(self, logger_name):
        """Test a console handler is installed at the given level."""
        setup_logging("debug", logger_name=logger_name)

        logger = logging.getLogger(logger_name)
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_file_handler(self, logger_name, tmp_path):
        """Test a log file is written when configured."""
        logfile = tmp_path / "logs" / "collects.log"
        setup_logging("INFO", str(logfile), logger_name=logger_name)

        logger = logging.getLogger(logger_name)
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()

        assert len(logger.handlers) == 2
        assert "hello" in logfile.read_text()

    def test_second_call_is_noop(self, logger_name):
        """Test handlers are not stacked."""
        setup_logging(logger_name=logger_name)
        setup_logging(logger_name=logger_name)

        assert len(logging.getLogger(logger_name).handlers) == 1

    def test_unknown_level_falls_back(self, logger_name):
        """Test an unknown level name means INFO."""
        setup_logging("chatty", logger_name=logger_name)

        assert logging.getLogger(logger_name).level == logging.INFO
