"""Tests for logging setup."""

import logging

import pytest

from webintel.logging_config import QUIET_LOGGERS, setup_logging


@pytest.fixture
def restore_logging():
    names = ["webintel.crawler", *QUIET_LOGGERS]
    levels = {name: logging.getLogger(name).level for name in names}
    root = logging.getLogger()
    root_level, root_handlers = root.level, list(root.handlers)
    yield
    for handler in root.handlers:
        if handler not in root_handlers:
            handler.close()
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)
    root.handlers = root_handlers
    root.setLevel(root_level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_root_level_and_quiet_loggers(self, restore_logging):
        setup_logging(level="debug")

        assert logging.getLogger().level == logging.DEBUG
        assert all(logging.getLogger(name).level == logging.WARNING for name in QUIET_LOGGERS)

    def test_module_levels(self, restore_logging):
        setup_logging(level="WARNING", module_levels={"webintel.crawler": "DEBUG"})

        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("webintel.crawler").level == logging.DEBUG

    def test_log_file_directory_created(self, restore_logging, tmp_path):
        log_file = tmp_path / "logs" / "webintel.log"

        setup_logging(log_file=str(log_file))
        logging.getLogger("webintel.test").warning("written")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_file.parent.is_dir()
        assert "written" in log_file.read_text()
