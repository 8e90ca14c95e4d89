"""Configuration helpers for deploying the dungeon API."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping

from ..endpoints import EndpointConfigStore
from ..logging_utils import LOG_LEVELS
from ..storage import (
    DungeonStore,
    FileDungeonStore,
    InMemoryDungeonStore,
    SqlDungeonStore,
)

logger = logging.getLogger(__name__)

DEFAULT_DATA_PATH = Path("data/dungeon-data.json")
DEFAULT_ENDPOINT_CONFIG_PATH = Path("data/endpoint-config.json")


class StorageMode(str, Enum):
    FILE = "file"
    DATABASE = "database"
    MEMORY = "memory"


def _normalise_path(value: str | None) -> Path | None:
    if value is None:
        return None

    trimmed = value.strip()
    if not trimmed:
        return None

    return Path(trimmed).expanduser()


def _normalise_string(value: str | None, *, default: str) -> str:
    if value is None:
        return default

    trimmed = value.strip()
    return trimmed or default


@dataclass(frozen=True)
class DungeonApiSettings:
    """Deployment settings for the FastAPI application.

    Values come from ``DUNGEONCRAWLER_*`` environment variables so the API can
    be pointed at another store without touching code. Empty strings count as
    unset and paths are expanded to support ``~`` prefixes.
    """

    storage_mode: StorageMode = StorageMode.FILE
    data_path: Path = DEFAULT_DATA_PATH
    database_url: str | None = None
    endpoint_config_path: Path = DEFAULT_ENDPOINT_CONFIG_PATH
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "DungeonApiSettings":
        """Return settings populated from ``environ``.

        Args:
            environ: Optional mapping of environment variables. When omitted,
                :data:`os.environ` is used.

        Raises:
            ValueError: If the storage mode or log level is not recognised.
        """

        source = environ if environ is not None else os.environ

        mode_raw = _normalise_string(
            source.get("DUNGEONCRAWLER_STORAGE_MODE"), default=StorageMode.FILE.value
        ).lower()
        try:
            storage_mode = StorageMode(mode_raw)
        except ValueError as exc:
            allowed = ", ".join(mode.value for mode in StorageMode)
            raise ValueError(
                f"DUNGEONCRAWLER_STORAGE_MODE must be one of: {allowed}."
            ) from exc

        log_level = _normalise_string(
            source.get("DUNGEONCRAWLER_LOG_LEVEL"), default="INFO"
        ).upper()
        if log_level not in LOG_LEVELS:
            raise ValueError(
                "DUNGEONCRAWLER_LOG_LEVEL must be one of: " + ", ".join(LOG_LEVELS) + "."
            )

        database_url = _normalise_string(
            source.get("DUNGEONCRAWLER_DATABASE_URL"), default=""
        )

        return cls(
            storage_mode=storage_mode,
            data_path=_normalise_path(source.get("DUNGEONCRAWLER_DATA_PATH"))
            or DEFAULT_DATA_PATH,
            database_url=database_url or None,
            endpoint_config_path=_normalise_path(
                source.get("DUNGEONCRAWLER_ENDPOINT_CONFIG_PATH")
            )
            or DEFAULT_ENDPOINT_CONFIG_PATH,
            log_level=log_level,
        )


def build_dungeon_store(settings: DungeonApiSettings) -> DungeonStore:
    """Instantiate the storage adapter selected by ``settings``."""

    if settings.storage_mode is StorageMode.MEMORY:
        logger.info("Using in-memory dungeon storage")
        return InMemoryDungeonStore()

    if settings.storage_mode is StorageMode.DATABASE:
        if settings.database_url:
            logger.info("Using database dungeon storage")
            return SqlDungeonStore(settings.database_url)
        logger.warning(
            "Database storage requested without DUNGEONCRAWLER_DATABASE_URL; "
            "falling back to file storage at %s",
            settings.data_path,
        )

    logger.info("Using file dungeon storage at %s", settings.data_path)
    return FileDungeonStore(settings.data_path)


def build_endpoint_store(settings: DungeonApiSettings) -> EndpointConfigStore:
    if settings.storage_mode is StorageMode.MEMORY:
        return EndpointConfigStore()
    return EndpointConfigStore(settings.endpoint_config_path)


__all__ = [
    "DungeonApiSettings",
    "StorageMode",
    "build_dungeon_store",
    "build_endpoint_store",
]
