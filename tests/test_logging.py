"""Tests for logging setup and per-category level overrides."""

import logging
import logging.handlers

import pytest
from rich.console import Console

from memovault.utils.logging import SeverityOverrideFilter, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("memovault.core.sync", logging.INFO, __file__, 1, "msg", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_category_override_changes_level():
    record = make_record(log_category="sync")

    assert SeverityOverrideFilter({"sync": "debug"}).filter(record)
    assert record.levelno == logging.DEBUG
    assert record.levelname == "DEBUG"


def test_forced_level_wins():
    record = make_record(log_category="sync", force_level="ERROR")

    SeverityOverrideFilter({"sync": "DEBUG"}).filter(record)

    assert record.levelno == logging.ERROR


def test_unknown_category_untouched():
    record = make_record(log_category="other")

    SeverityOverrideFilter({"sync": "DEBUG"}).filter(record)

    assert record.levelno == logging.INFO


def test_invalid_override_level():
    with pytest.raises(ValueError):
        SeverityOverrideFilter({"sync": "LOUD"})


def test_setup_logging_installs_handlers(app_config, restore_root_logger):
    log_path = setup_logging(app_config, level_name="warning", console=Console(quiet=True))

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)
    assert log_path.parent.is_dir()
    assert logging.getLogger("httpx").level == logging.WARNING
