"""Configuration records that expose stored dungeons on custom URL paths."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, List, Mapping

from .storage import StorageError

logger = logging.getLogger(__name__)

CUSTOM_PATH_PREFIX = "/api/custom/"


class EndpointConfigError(ValueError):
    """Raised when an endpoint configuration breaks a consistency rule."""


class EndpointNotFoundError(LookupError):
    """Raised when an endpoint identifier is unknown."""

    def __init__(self, endpoint_id: str) -> None:
        super().__init__(f"Endpoint configuration '{endpoint_id}' not found.")
        self.endpoint_id = endpoint_id


@dataclass(frozen=True)
class EndpointConfig:
    """Binding between a URL path and a stored dungeon."""

    id: str
    name: str
    path: str
    dungeon_id: str
    description: str = ""
    enabled: bool = True
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "EndpointConfig":
        if not isinstance(payload, Mapping):
            raise EndpointConfigError("Endpoint configuration must be a JSON object.")

        def _text(key: str) -> str:
            value = payload.get(key)
            if value is None:
                return ""
            if not isinstance(value, str):
                raise EndpointConfigError(f"'{key}' must be a string.")
            return value

        enabled = payload.get("enabled", True)
        if not isinstance(enabled, bool):
            raise EndpointConfigError("'enabled' must be a boolean.")

        return cls(
            id=_text("id"),
            name=_text("name"),
            path=_text("path"),
            dungeon_id=_text("dungeonId"),
            description=_text("description"),
            enabled=enabled,
            created_at=payload.get("createdAt"),
            updated_at=payload.get("updatedAt"),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "dungeonId": self.dungeon_id,
            "description": self.description,
            "enabled": self.enabled,
        }
        if self.created_at is not None:
            payload["createdAt"] = self.created_at
        if self.updated_at is not None:
            payload["updatedAt"] = self.updated_at
        return payload


def _check_fields(config: EndpointConfig) -> None:
    missing = [
        name
        for name, value in (
            ("id", config.id),
            ("name", config.name),
            ("path", config.path),
            ("dungeonId", config.dungeon_id),
        )
        if not value.strip()
    ]
    if missing:
        raise EndpointConfigError(
            "Missing required fields: " + ", ".join(missing) + "."
        )
    if not config.path.startswith("/api/"):
        raise EndpointConfigError("Path must start with /api/")


class EndpointConfigStore:
    """Keep endpoint configurations in a ``{"endpoints": [...]}`` JSON file.

    When ``path`` is ``None`` the records only live in memory, which is what
    the tests and the ``memory`` storage mode use.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._records: List[EndpointConfig] = []

    def list_endpoints(self) -> List[EndpointConfig]:
        return self._load()

    def get(self, endpoint_id: str) -> EndpointConfig:
        for record in self._load():
            if record.id == endpoint_id:
                return record
        raise EndpointNotFoundError(endpoint_id)

    def find_enabled_by_path(self, path: str) -> EndpointConfig | None:
        """Return the enabled configuration bound to ``path`` if there is one."""

        for record in self._load():
            if record.path == path and record.enabled:
                return record
        return None

    def create(self, config: EndpointConfig) -> EndpointConfig:
        _check_fields(config)
        records = self._load()
        if any(record.id == config.id for record in records):
            raise EndpointConfigError("Endpoint with this ID already exists")
        if any(record.path == config.path for record in records):
            raise EndpointConfigError("Endpoint with this path already exists")
        records.append(config)
        self._save(records)
        return config

    def update(self, endpoint_id: str, config: EndpointConfig) -> EndpointConfig:
        config = replace(config, id=endpoint_id)
        _check_fields(config)
        records = self._load()
        for index, record in enumerate(records):
            if record.id == endpoint_id:
                break
        else:
            raise EndpointNotFoundError(endpoint_id)

        if any(
            other.path == config.path and other.id != endpoint_id for other in records
        ):
            raise EndpointConfigError("Another endpoint with this path already exists")

        records[index] = config
        self._save(records)
        return config

    def delete(self, endpoint_id: str) -> None:
        records = self._load()
        remaining = [record for record in records if record.id != endpoint_id]
        if len(remaining) == len(records):
            raise EndpointNotFoundError(endpoint_id)
        self._save(remaining)

    def _load(self) -> List[EndpointConfig]:
        if self.path is None:
            return list(self._records)
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.error("Failed to read endpoint configuration %s: %s", self.path, exc)
            raise StorageError("Failed to load endpoint configurations.") from exc

        records = payload.get("endpoints", []) if isinstance(payload, Mapping) else None
        if not isinstance(records, list):
            raise StorageError("Endpoint configuration file must hold an 'endpoints' list.")
        try:
            return [EndpointConfig.from_payload(record) for record in records]
        except EndpointConfigError as exc:
            raise StorageError(f"Stored endpoint configuration is malformed: {exc}") from exc

    def _save(self, records: List[EndpointConfig]) -> None:
        if self.path is None:
            self._records = list(records)
            return

        destination = self.path
        temporary = destination.with_suffix(destination.suffix + ".tmp")
        payload = {"endpoints": [record.to_payload() for record in records]}
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with temporary.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=False, indent=2)
            temporary.replace(destination)
        except OSError as exc:
            logger.exception("Failed to write endpoint configuration %s", destination)
            raise StorageError("Failed to save endpoints.") from exc


__all__ = [
    "CUSTOM_PATH_PREFIX",
    "EndpointConfig",
    "EndpointConfigError",
    "EndpointConfigStore",
    "EndpointNotFoundError",
]
