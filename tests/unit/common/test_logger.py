"""Tests for logger setup."""

import logging
import logging.handlers

import pytest

from accessgate.common.logger import (
    LOGGER_NAME,
    configure_from_settings,
    reset_logger,
    setup_logger,
)
from accessgate.core.config import Settings


@pytest.fixture
def logger_name(request):
    name = f"accessgate-test.{request.node.name}"
    yield name
    reset_logger(name)


class TestSetupLogger:
    """Tests for setup_logger."""

    def test_console_only_by_default(self, logger_name):
        logger = setup_logger(logger_name)
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_file_logging(self, logger_name, tmp_path):
        logger = setup_logger(
            logger_name, log_dir=str(tmp_path / "logs"), level="debug", file_logging=True
        )
        assert logger.level == logging.DEBUG
        assert any(
            isinstance(h, logging.handlers.RotatingFileHandler) for h in logger.handlers
        )

        logger.info("seeded")
        for handler in logger.handlers:
            handler.flush()
        log_file = tmp_path / "logs" / f"{logger_name}.log"
        assert "seeded" in log_file.read_text()

    def test_repeated_setup_does_not_duplicate_handlers(self, logger_name):
        setup_logger(logger_name)
        logger = setup_logger(logger_name, level="WARNING")
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING

    def test_invalid_level(self, logger_name):
        with pytest.raises(ValueError, match="Invalid log level"):
            setup_logger(logger_name, level="LOUD")

    def test_reset_logger(self, logger_name):
        setup_logger(logger_name)
        reset_logger(logger_name)
        assert logging.getLogger(logger_name).handlers == []


class TestConfigureFromSettings:
    def test_uses_settings(self, tmp_path):
        settings = Settings(
            _env_file=None, log_level="error", log_dir=str(tmp_path), log_to_file=True
        )
        try:
            logger = configure_from_settings(settings)
            assert logger.name == LOGGER_NAME
            assert logger.level == logging.ERROR
            assert (tmp_path / f"{LOGGER_NAME}.log").exists()
        finally:
            reset_logger()
