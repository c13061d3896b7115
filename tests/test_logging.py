"""Tests for logging setup."""

import logging
import logging.handlers

from attachkeeper.core.config import AppConfig
from attachkeeper.utils.logging import (
    SeverityOverrideFilter,
    get_current_log_level,
    set_logging_level,
    setup_logging,
)


def make_record(name: str, level: int = logging.DEBUG) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "message", None, None)


def test_override_filter_matches_logger_prefixes():
    filter_ = SeverityOverrideFilter({"attachkeeper.core": "WARNING", "attachkeeper.core.ingest": "ERROR"})

    ingest = make_record("attachkeeper.core.ingest")
    validate = make_record("attachkeeper.core.validate")
    other = make_record("httpx")

    assert filter_.filter(ingest) and ingest.levelname == "ERROR"
    assert filter_.filter(validate) and validate.levelname == "WARNING"
    assert filter_.filter(other) and other.levelno == logging.DEBUG


def test_forced_level_wins():
    filter_ = SeverityOverrideFilter({"attachkeeper": "ERROR"})
    record = make_record("attachkeeper.cli")
    record.force_level = "INFO"
    filter_.filter(record)
    assert record.levelname == "INFO"


def test_setup_logging_writes_rotating_file(config: AppConfig):
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        log_path = setup_logging(config, level_name="debug")

        assert log_path == config.log_dir / config.general.log_file_name
        assert get_current_log_level() == "DEBUG"
        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)

        set_logging_level("WARNING")
        assert get_current_log_level() == "WARNING"
        assert root.level == logging.WARNING
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        handlers, level = saved
        for handler in handlers:
            root.addHandler(handler)
        root.setLevel(level)
