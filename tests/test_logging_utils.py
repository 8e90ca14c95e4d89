from __future__ import annotations

import logging

import pytest

from dungeoncrawler import logging_utils
from dungeoncrawler.logging_utils import LOG_FORMAT, configure_logging, parse_log_level


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    yield root
    if logging_utils._handler is not None:
        root.removeHandler(logging_utils._handler)
        logging_utils._handler = None
    root.setLevel(level)


def test_parse_log_level_accepts_any_case() -> None:
    assert parse_log_level("debug") == logging.DEBUG
    assert parse_log_level(" Warning ") == logging.WARNING
    with pytest.raises(ValueError):
        parse_log_level("verbose")


def test_configure_logging_installs_a_single_handler(restore_root_logger) -> None:
    root = restore_root_logger

    configure_logging("debug")
    configure_logging("error")

    installed = [
        handler
        for handler in root.handlers
        if handler.formatter is not None and handler.formatter._fmt == LOG_FORMAT
    ]
    assert installed == [logging_utils._handler]
    assert root.level == logging.ERROR
