"""FastAPI application exposing dungeon management endpoints."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Any

from fastapi import Body, FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from starlette.responses import JSONResponse

from ..endpoints import (
    CUSTOM_PATH_PREFIX,
    EndpointConfig,
    EndpointConfigError,
    EndpointConfigStore,
    EndpointNotFoundError,
)
from ..legacy import export_document, import_dungeons, is_legacy_document
from ..models import Dungeon, DungeonFloor, generate_id, utc_timestamp
from ..storage import (
    DungeonAlreadyExistsError,
    DungeonNotFoundError,
    DungeonStore,
    StorageError,
)
from ..validation import ValidationResult, validate_dungeon
from .settings import DungeonApiSettings, build_dungeon_store, build_endpoint_store

logger = logging.getLogger(__name__)

GROUND_FLOOR_NAME = "Ground Floor"

# Download names keep to ASCII so they fit in a Content-Disposition header.
_FILENAME_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class DungeonValidationError(ValueError):
    """Raised when a submitted dungeon fails structural validation."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__("Validation failed")
        self.result = result


class FloorNotFoundError(LookupError):
    """Raised when a dungeon has no floor with the requested number."""


class ValidationIssueResource(BaseModel):
    field: str
    message: str


class ValidationResultResource(BaseModel):
    """Outcome of validating a dungeon document."""

    valid: bool
    errors: list[ValidationIssueResource]

    @classmethod
    def from_result(cls, result: ValidationResult) -> "ValidationResultResource":
        return cls(
            valid=result.valid,
            errors=[
                ValidationIssueResource(field=issue.field, message=issue.message)
                for issue in result.errors
            ],
        )


class DungeonListResponse(BaseModel):
    """Response envelope for the dungeon collection endpoint."""

    data: list[dict[str, Any]]


class DungeonResponse(BaseModel):
    data: dict[str, Any]


class FloorResponse(BaseModel):
    """Single floor of a dungeon."""

    data: dict[str, Any]


class DeletedResource(BaseModel):
    id: str


class DeleteResponse(BaseModel):
    data: DeletedResource


class ImportedDungeonResource(BaseModel):
    dungeon: dict[str, Any]
    validation: ValidationResultResource


class DungeonImportResponse(BaseModel):
    """Dungeons recognised in an uploaded document.

    Imported dungeons are not stored; clients review the validation results
    and submit the ones they want to keep through ``POST /api/dungeons``.
    """

    legacy: bool = Field(
        ..., description="Whether the document was converted from the legacy format."
    )
    data: list[ImportedDungeonResource]


class EndpointConfigRequest(BaseModel):
    """Request payload for creating or replacing an endpoint configuration."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    name: str = ""
    path: str = Field("", description="URL path, must start with /api/.")
    dungeon_id: str = Field("", alias="dungeonId")
    description: str = ""
    enabled: bool = True


class EndpointConfigResponse(BaseModel):
    data: dict[str, Any]


class EndpointConfigListResponse(BaseModel):
    data: list[dict[str, Any]]


@dataclass
class ImportOutcome:
    legacy: bool
    dungeons: list[tuple[Dungeon, ValidationResult]]


class DungeonService:
    """Business logic supporting the dungeon endpoints."""

    def __init__(self, store: DungeonStore) -> None:
        self._store = store

    def list_dungeons(self) -> list[Dungeon]:
        return self._store.list_dungeons()

    def get_dungeon(self, dungeon_id: str) -> Dungeon:
        return self._store.get(dungeon_id)

    def get_floor(self, dungeon_id: str, floor_number: int) -> DungeonFloor:
        """Return floor ``floor_number`` of a dungeon.

        Dungeons without floors expose their flat room list as floor 1.
        """

        dungeon = self._store.get(dungeon_id)
        if not dungeon.floors:
            if floor_number == 1:
                return DungeonFloor(
                    floor_number=1,
                    name=GROUND_FLOOR_NAME,
                    description="",
                    rooms=dungeon.rooms,
                )
        else:
            for floor in dungeon.floors:
                if floor.floor_number == floor_number:
                    return floor
        raise FloorNotFoundError(
            f"Floor {floor_number} not found in dungeon '{dungeon_id}'."
        )

    def create_dungeon(self, payload: Any) -> Dungeon:
        dungeon = Dungeon.from_payload(payload)
        timestamp = utc_timestamp()
        dungeon = replace(
            dungeon,
            id=dungeon.id or generate_id(),
            created_at=timestamp,
            updated_at=timestamp,
        )
        self._ensure_valid(dungeon)
        stored = self._store.create(dungeon)
        logger.info("Created dungeon %s (%s)", stored.id, stored.name)
        return stored

    def update_dungeon(self, dungeon_id: str, payload: Any) -> Dungeon:
        existing = self._store.get(dungeon_id)
        dungeon = replace(
            Dungeon.from_payload(payload),
            id=dungeon_id,
            created_at=existing.created_at,
            updated_at=utc_timestamp(),
        )
        self._ensure_valid(dungeon)
        stored = self._store.update(dungeon_id, dungeon)
        logger.info("Updated dungeon %s", dungeon_id)
        return stored

    def delete_dungeon(self, dungeon_id: str) -> None:
        self._store.delete(dungeon_id)
        logger.info("Deleted dungeon %s", dungeon_id)

    def validate_payload(self, payload: Any) -> ValidationResult:
        return validate_dungeon(payload)

    def import_payload(self, payload: Any) -> ImportOutcome:
        legacy = is_legacy_document(payload)
        dungeons = import_dungeons(payload)
        logger.info(
            "Imported %d dungeon(s)%s",
            len(dungeons),
            " from legacy format" if legacy else "",
        )
        return ImportOutcome(
            legacy=legacy,
            dungeons=[(dungeon, validate_dungeon(dungeon)) for dungeon in dungeons],
        )

    def export_dungeon(self, dungeon_id: str) -> tuple[str, dict[str, Any]]:
        """Return a download filename and the export document for one dungeon."""

        dungeon = self._store.get(dungeon_id)
        stem = _FILENAME_UNSAFE.sub("_", dungeon.name.strip() or dungeon.id).strip("_")
        return f"{stem or 'dungeon'}.json", export_document([dungeon])

    def _ensure_valid(self, dungeon: Dungeon) -> None:
        result = validate_dungeon(dungeon)
        if not result.valid:
            logger.warning(
                "Rejected dungeon %s with %d validation error(s)",
                dungeon.id,
                len(result.errors),
            )
            raise DungeonValidationError(result)


class EndpointService:
    """Manage the endpoint configurations that publish dungeons."""

    def __init__(self, store: EndpointConfigStore) -> None:
        self._store = store

    def list_endpoints(self) -> list[EndpointConfig]:
        return self._store.list_endpoints()

    def get_endpoint(self, endpoint_id: str) -> EndpointConfig:
        return self._store.get(endpoint_id)

    def create_endpoint(self, request: EndpointConfigRequest) -> EndpointConfig:
        timestamp = utc_timestamp()
        config = EndpointConfig(
            id=request.id,
            name=request.name,
            path=request.path,
            dungeon_id=request.dungeon_id,
            description=request.description,
            enabled=request.enabled,
            created_at=timestamp,
            updated_at=timestamp,
        )
        stored = self._store.create(config)
        logger.info("Created endpoint %s at %s", stored.id, stored.path)
        return stored

    def update_endpoint(
        self, endpoint_id: str, request: EndpointConfigRequest
    ) -> EndpointConfig:
        existing = self._store.get(endpoint_id)
        config = EndpointConfig(
            id=endpoint_id,
            name=request.name,
            path=request.path,
            dungeon_id=request.dungeon_id,
            description=request.description,
            enabled=request.enabled,
            created_at=existing.created_at,
            updated_at=utc_timestamp(),
        )
        stored = self._store.update(endpoint_id, config)
        logger.info("Updated endpoint %s", endpoint_id)
        return stored

    def delete_endpoint(self, endpoint_id: str) -> None:
        self._store.delete(endpoint_id)
        logger.info("Deleted endpoint %s", endpoint_id)

    def resolve(self, path: str) -> EndpointConfig:
        """Return the enabled configuration serving ``path``.

        Raises:
            EndpointNotFoundError: If no enabled configuration uses the path.
        """

        config = self._store.find_enabled_by_path(path)
        if config is None:
            raise EndpointNotFoundError(path)
        return config


def create_app(
    dungeon_service: DungeonService | None = None,
    *,
    endpoint_service: EndpointService | None = None,
    settings: DungeonApiSettings | None = None,
) -> FastAPI:
    """Create a FastAPI app exposing the dungeon management endpoints."""

    resolved_settings = settings or DungeonApiSettings.from_env()

    service = dungeon_service
    if service is None:
        service = DungeonService(store=build_dungeon_store(resolved_settings))

    endpoints = endpoint_service
    if endpoints is None:
        endpoints = EndpointService(store=build_endpoint_store(resolved_settings))

    tags_metadata = [
        {
            "name": "Dungeons",
            "description": (
                "CRUD operations, validation, and import/export for dungeon "
                "documents."
            ),
        },
        {
            "name": "Endpoints",
            "description": "Configure custom URL paths that publish a dungeon.",
        },
        {
            "name": "Custom",
            "description": "Serve dungeons through their configured custom paths.",
        },
    ]

    app = FastAPI(
        title="Dungeon Crawler API",
        version="0.1.0",
        description=(
            "HTTP API for authoring dungeon documents. The service validates "
            "room graphs, converts legacy exports, and publishes dungeons on "
            "configurable endpoints."
        ),
        openapi_tags=tags_metadata,
    )

    def _validation_failure(exc: DungeonValidationError) -> HTTPException:
        return HTTPException(
            status_code=400,
            detail={
                "message": str(exc),
                "errors": [issue.to_payload() for issue in exc.result.errors],
            },
        )

    @app.get(
        "/api/dungeons",
        response_model=DungeonListResponse,
        tags=["Dungeons"],
    )
    def list_dungeons() -> DungeonListResponse:
        try:
            dungeons = service.list_dungeons()
        except StorageError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return DungeonListResponse(data=[dungeon.to_payload() for dungeon in dungeons])

    @app.post(
        "/api/dungeons/validate",
        response_model=ValidationResultResource,
        tags=["Dungeons"],
    )
    def validate_dungeon_endpoint(
        payload: Any = Body(..., description="Dungeon document to check."),
    ) -> ValidationResultResource:
        return ValidationResultResource.from_result(service.validate_payload(payload))

    @app.post(
        "/api/dungeons/import",
        response_model=DungeonImportResponse,
        tags=["Dungeons"],
    )
    def import_dungeons_endpoint(
        payload: Any = Body(
            ..., description="Legacy or current-format dungeon document."
        ),
    ) -> DungeonImportResponse:
        try:
            outcome = service.import_payload(payload)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return DungeonImportResponse(
            legacy=outcome.legacy,
            data=[
                ImportedDungeonResource(
                    dungeon=dungeon.to_payload(),
                    validation=ValidationResultResource.from_result(result),
                )
                for dungeon, result in outcome.dungeons
            ],
        )

    @app.get(
        "/api/dungeons/{dungeon_id}",
        response_model=DungeonResponse,
        tags=["Dungeons"],
    )
    def get_dungeon(dungeon_id: str) -> DungeonResponse:
        try:
            dungeon = service.get_dungeon(dungeon_id)
        except DungeonNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except StorageError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return DungeonResponse(data=dungeon.to_payload())

    @app.get(
        "/api/dungeons/{dungeon_id}/floors/{floor_number}",
        response_model=FloorResponse,
        tags=["Dungeons"],
    )
    def get_floor(dungeon_id: str, floor_number: int) -> FloorResponse:
        try:
            floor = service.get_floor(dungeon_id, floor_number)
        except LookupError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except StorageError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return FloorResponse(data=floor.to_payload())

    @app.get(
        "/api/dungeons/{dungeon_id}/export",
        response_model=None,
        tags=["Dungeons"],
    )
    def export_dungeon(dungeon_id: str) -> JSONResponse:
        try:
            filename, document = service.export_dungeon(dungeon_id)
        except DungeonNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except StorageError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return JSONResponse(
            content=document,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post(
        "/api/dungeons",
        response_model=DungeonResponse,
        status_code=201,
        tags=["Dungeons"],
    )
    def create_dungeon(
        payload: Any = Body(..., description="Dungeon document to store."),
    ) -> DungeonResponse:
        try:
            dungeon = service.create_dungeon(payload)
        except DungeonValidationError as exc:
            raise _validation_failure(exc) from exc
        except DungeonAlreadyExistsError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except RuntimeError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return DungeonResponse(data=dungeon.to_payload())

    @app.put(
        "/api/dungeons/{dungeon_id}",
        response_model=DungeonResponse,
        tags=["Dungeons"],
    )
    def update_dungeon(
        dungeon_id: str,
        payload: Any = Body(..., description="Replacement dungeon document."),
    ) -> DungeonResponse:
        try:
            dungeon = service.update_dungeon(dungeon_id, payload)
        except DungeonNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except DungeonValidationError as exc:
            raise _validation_failure(exc) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except RuntimeError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return DungeonResponse(data=dungeon.to_payload())

    @app.delete(
        "/api/dungeons/{dungeon_id}",
        response_model=DeleteResponse,
        tags=["Dungeons"],
    )
    def delete_dungeon(dungeon_id: str) -> DeleteResponse:
        try:
            service.delete_dungeon(dungeon_id)
        except DungeonNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except StorageError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return DeleteResponse(data=DeletedResource(id=dungeon_id))

    @app.get(
        "/api/endpoints",
        response_model=EndpointConfigListResponse,
        tags=["Endpoints"],
    )
    def list_endpoints() -> EndpointConfigListResponse:
        try:
            configs = endpoints.list_endpoints()
        except StorageError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return EndpointConfigListResponse(
            data=[config.to_payload() for config in configs]
        )

    @app.get(
        "/api/endpoints/{endpoint_id}",
        response_model=EndpointConfigResponse,
        tags=["Endpoints"],
    )
    def get_endpoint(endpoint_id: str) -> EndpointConfigResponse:
        try:
            config = endpoints.get_endpoint(endpoint_id)
        except EndpointNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except StorageError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return EndpointConfigResponse(data=config.to_payload())

    @app.post(
        "/api/endpoints",
        response_model=EndpointConfigResponse,
        status_code=201,
        tags=["Endpoints"],
    )
    def create_endpoint(payload: EndpointConfigRequest) -> EndpointConfigResponse:
        try:
            config = endpoints.create_endpoint(payload)
        except EndpointConfigError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except StorageError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return EndpointConfigResponse(data=config.to_payload())

    @app.put(
        "/api/endpoints/{endpoint_id}",
        response_model=EndpointConfigResponse,
        tags=["Endpoints"],
    )
    def update_endpoint(
        endpoint_id: str, payload: EndpointConfigRequest
    ) -> EndpointConfigResponse:
        try:
            config = endpoints.update_endpoint(endpoint_id, payload)
        except EndpointNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except EndpointConfigError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except StorageError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return EndpointConfigResponse(data=config.to_payload())

    @app.delete(
        "/api/endpoints/{endpoint_id}",
        response_model=DeleteResponse,
        tags=["Endpoints"],
    )
    def delete_endpoint(endpoint_id: str) -> DeleteResponse:
        try:
            endpoints.delete_endpoint(endpoint_id)
        except EndpointNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except StorageError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return DeleteResponse(data=DeletedResource(id=endpoint_id))

    @app.get(
        "/api/custom/{custom_path:path}",
        response_model=DungeonResponse,
        tags=["Custom"],
    )
    def serve_custom_endpoint(custom_path: str) -> DungeonResponse:
        full_path = CUSTOM_PATH_PREFIX + custom_path
        try:
            config = endpoints.resolve(full_path)
        except EndpointNotFoundError as exc:
            raise HTTPException(
                status_code=404, detail="Endpoint not found or not enabled"
            ) from exc
        except StorageError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

        try:
            dungeon = service.get_dungeon(config.dungeon_id)
        except DungeonNotFoundError as exc:
            logger.warning(
                "Endpoint %s points at missing dungeon %s", config.id, config.dungeon_id
            )
            raise HTTPException(
                status_code=404, detail="Dungeon not found for this endpoint"
            ) from exc
        except StorageError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return DungeonResponse(data=dungeon.to_payload())

    return app


__all__ = [
    "DungeonService",
    "DungeonValidationError",
    "EndpointService",
    "FloorNotFoundError",
    "create_app",
]
