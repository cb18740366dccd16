"""Centralized logging utilities."""
from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Mapping

from rich.console import Console
from rich.logging import RichHandler

from memovault.core.config import AppConfig


_LEVEL_MAP: Mapping[str, int] = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def _parse_level(value: str | int) -> tuple[int, str]:
    if isinstance(value, int):
        return value, logging.getLevelName(value)
    level_name = str(value).upper()
    if level_name not in _LEVEL_MAP:
        raise ValueError(f"Unsupported log level: {value}")
    return _LEVEL_MAP[level_name], level_name


class SeverityOverrideFilter(logging.Filter):
    """Filter that lets us override levels by record attributes or categories."""

    def __init__(self, category_levels: Mapping[str, str]):
        super().__init__()
        self.category_levels = {
            category: _parse_level(level)[0] for category, level in category_levels.items()
        }

    def filter(self, record: logging.LogRecord) -> bool:
        forced = getattr(record, "force_level", None)
        if forced:
            levelno, levelname = _parse_level(forced)
            record.levelno = levelno
            record.levelname = levelname
            return True

        category = getattr(record, "log_category", None)
        if category and category in self.category_levels:
            levelno = self.category_levels[category]
            record.levelno = levelno
            record.levelname = logging.getLevelName(levelno)
        return True


def build_console_handler(level_name: str, console: Console | None = None) -> logging.Handler:
    levelno, _ = _parse_level(level_name)
    handler = RichHandler(console=console, rich_tracebacks=True, show_time=False)
    handler.setLevel(levelno)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def build_file_handler(config: AppConfig) -> logging.Handler:
    log_dir = config.general.data_dir / "logs"
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


def setup_logging(
    config: AppConfig,
    *,
    level_name: str | None = None,
    console: Console | None = None,
) -> Path:
    """Configure root logging handlers.

    Returns the path to the primary log file for reference or tests.
    """

    effective_level = (level_name or config.general.log_level).upper()
    levelno, _ = _parse_level(effective_level)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(levelno)

    filter_ = SeverityOverrideFilter(config.general.log_overrides)

    console_handler = build_console_handler(effective_level, console)
    console_handler.addFilter(filter_)
    root.addHandler(console_handler)

    file_handler = build_file_handler(config)
    file_handler.addFilter(filter_)
    root.addHandler(file_handler)

    logging.captureWarnings(True)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(levelno, logging.WARNING))

    return config.general.data_dir / "logs" / config.general.log_file_name

