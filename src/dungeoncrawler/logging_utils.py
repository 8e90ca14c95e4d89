"""Logging setup shared by the command line and the API server."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_handler: logging.Handler | None = None


def parse_log_level(value: str) -> int:
    """Translate a level name such as ``"info"`` into its numeric value.

    Raises:
        ValueError: If ``value`` is not one of :data:`LOG_LEVELS`.
    """

    name = value.strip().upper()
    if name not in LOG_LEVELS:
        raise ValueError(
            f"Unknown log level {value!r}; expected one of: {', '.join(LOG_LEVELS)}."
        )
    return logging.getLevelName(name)


def configure_logging(level: str | int = "INFO") -> None:
    """Install the package stream handler on the root logger.

    Calling this again swaps the handler instead of stacking a second one.
    """

    global _handler

    numeric = parse_log_level(level) if isinstance(level, str) else level
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(_handler)
    root.setLevel(numeric)


__all__ = ["LOG_FORMAT", "LOG_LEVELS", "configure_logging", "parse_log_level"]
