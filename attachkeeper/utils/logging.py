"""Centralized logging utilities."""
from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Mapping

from rich.logging import RichHandler

from attachkeeper.core.config import AppConfig

_LEVEL_MAP: Mapping[str, int] = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

_current_levelno = logging.INFO
_current_levelname = "INFO"


def _parse_level(value: str | int) -> tuple[int, str]:
    if isinstance(value, int):
        return value, logging.getLevelName(value)
    level_name = str(value).upper()
    if level_name not in _LEVEL_MAP:
        raise ValueError(f"Unsupported log level: {value}")
    return _LEVEL_MAP[level_name], level_name


class SeverityOverrideFilter(logging.Filter):
    """Rewrite record levels per logger category.

    A category matches a record whose logger name equals it or starts with
    ``<category>.``. Records carrying a ``force_level`` extra always use that
    level.
    """

    def __init__(self, category_levels: Mapping[str, str]):
        super().__init__()
        self.category_levels = {
            category: _parse_level(level)[0] for category, level in category_levels.items()
        }

    def _category_level(self, record: logging.LogRecord) -> int | None:
        category = getattr(record, "log_category", None)
        if category and category in self.category_levels:
            return self.category_levels[category]
        best = None
        best_len = -1
        for name, levelno in self.category_levels.items():
            if (record.name == name or record.name.startswith(f"{name}.")) and len(name) > best_len:
                best, best_len = levelno, len(name)
        return best

    def filter(self, record: logging.LogRecord) -> bool:
        forced = getattr(record, "force_level", None)
        if forced:
            levelno, levelname = _parse_level(forced)
            record.levelno = levelno
            record.levelname = levelname
            return True

        levelno = self._category_level(record)
        if levelno is not None:
            record.levelno = levelno
            record.levelname = logging.getLevelName(levelno)
        return True


def build_console_handler(level_name: str) -> logging.Handler:
    levelno, _ = _parse_level(level_name)
    handler = RichHandler(rich_tracebacks=True, show_time=False)
    handler.setLevel(levelno)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def build_file_handler(config: AppConfig) -> logging.Handler:
    log_dir = config.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    file_path = log_dir / config.general.log_file_name
    handler = logging.handlers.RotatingFileHandler(
        file_path,
        maxBytes=config.general.log_file_max_bytes,
        backupCount=config.general.log_file_backup_count,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    return handler


def setup_logging(config: AppConfig, *, level_name: str | None = None, log_to_file: bool = True) -> Path | None:
    """Configure root logging handlers.

    Returns the path to the log file, or None when file logging is off.
    """

    effective_level = (level_name or config.general.log_level).upper()
    levelno, levelname = _parse_level(effective_level)
    global _current_levelno, _current_levelname
    _current_levelno = levelno
    _current_levelname = levelname
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(levelno)

    filter_ = SeverityOverrideFilter(config.general.log_overrides)

    console_handler = build_console_handler(effective_level)
    console_handler.addFilter(filter_)
    root.addHandler(console_handler)

    logging.captureWarnings(True)

    # Make sure uvicorn and httpx propagate to the root logger
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx"):
        logging.getLogger(logger_name).handlers.clear()
        logging.getLogger(logger_name).propagate = True

    if not log_to_file:
        return None

    file_handler = build_file_handler(config)
    file_handler.addFilter(filter_)
    root.addHandler(file_handler)
    return config.log_dir / config.general.log_file_name


def set_logging_level(level_name: str) -> None:
    """Change logging level for all handlers at runtime."""

    levelno, levelname = _parse_level(level_name)
    global _current_levelno, _current_levelname
    _current_levelno = levelno
    _current_levelname = levelname

    root = logging.getLogger()
    root.setLevel(levelno)
    for handler in root.handlers:
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            continue
        handler.setLevel(levelno)


def get_current_log_level() -> str:
    """Return the currently active logging level."""

    return _current_levelname
