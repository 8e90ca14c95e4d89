"""Tests for custom endpoint configuration and serving."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from dungeoncrawler import InMemoryDungeonStore
from dungeoncrawler.api import create_app
from dungeoncrawler.api.app import DungeonService, EndpointService
from dungeoncrawler.endpoints import EndpointConfigStore


def _endpoint(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": "public-crypt",
        "name": "Public crypt",
        "path": "/api/custom/crypt",
        "dungeonId": "crypt",
        "description": "Shared with the party.",
        "enabled": True,
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def client(dungeon_payload: dict[str, Any]) -> TestClient:
    service = DungeonService(store=InMemoryDungeonStore())
    endpoints = EndpointService(store=EndpointConfigStore())
    test_client = TestClient(create_app(service, endpoint_service=endpoints))
    assert test_client.post("/api/dungeons", json=dungeon_payload).status_code == 201
    return test_client


def test_create_and_list_endpoints(client: TestClient) -> None:
    response = client.post("/api/endpoints", json=_endpoint())

    assert response.status_code == 201
    created = response.json()["data"]
    assert created["dungeonId"] == "crypt"
    assert created["createdAt"] == created["updatedAt"]

    listing = client.get("/api/endpoints").json()["data"]
    assert [entry["id"] for entry in listing] == ["public-crypt"]
    assert client.get("/api/endpoints/public-crypt").json()["data"] == created


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        (_endpoint(dungeonId=""), "Missing required fields"),
        (_endpoint(path="/custom/crypt"), "Path must start with /api/"),
    ],
)
def test_create_rejects_invalid_configuration(
    client: TestClient, payload: dict[str, Any], message: str
) -> None:
    response = client.post("/api/endpoints", json=payload)

    assert response.status_code == 400
    assert message in response.json()["detail"]


def test_create_rejects_duplicates(client: TestClient) -> None:
    client.post("/api/endpoints", json=_endpoint())

    duplicate_id = client.post("/api/endpoints", json=_endpoint(path="/api/custom/x"))
    duplicate_path = client.post("/api/endpoints", json=_endpoint(id="other"))

    assert duplicate_id.status_code == 400
    assert duplicate_path.status_code == 400


def test_update_keeps_creation_time(client: TestClient) -> None:
    created = client.post("/api/endpoints", json=_endpoint()).json()["data"]

    response = client.put(
        "/api/endpoints/public-crypt", json=_endpoint(name="Renamed", id="ignored")
    )

    assert response.status_code == 200
    updated = response.json()["data"]
    assert updated["id"] == "public-crypt"
    assert updated["name"] == "Renamed"
    assert updated["createdAt"] == created["createdAt"]

    missing = client.put("/api/endpoints/ghost", json=_endpoint(path="/api/custom/g"))
    assert missing.status_code == 404


def test_delete_endpoint(client: TestClient) -> None:
    client.post("/api/endpoints", json=_endpoint())

    response = client.delete("/api/endpoints/public-crypt")

    assert response.status_code == 200
    assert response.json() == {"data": {"id": "public-crypt"}}
    assert client.get("/api/endpoints/public-crypt").status_code == 404
    assert client.delete("/api/endpoints/public-crypt").status_code == 404


def test_custom_path_serves_bound_dungeon(client: TestClient) -> None:
    client.post("/api/endpoints", json=_endpoint(path="/api/custom/maps/crypt"))

    response = client.get("/api/custom/maps/crypt")

    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Forgotten Crypt"


def test_disabled_or_unknown_paths_are_not_served(client: TestClient) -> None:
    client.post("/api/endpoints", json=_endpoint(enabled=False))

    disabled = client.get("/api/custom/crypt")
    unknown = client.get("/api/custom/elsewhere")

    assert disabled.status_code == 404
    assert disabled.json()["detail"] == "Endpoint not found or not enabled"
    assert unknown.status_code == 404


def test_endpoint_pointing_at_deleted_dungeon(client: TestClient) -> None:
    client.post("/api/endpoints", json=_endpoint())
    client.delete("/api/dungeons/crypt")

    response = client.get("/api/custom/crypt")

    assert response.status_code == 404
    assert response.json()["detail"] == "Dungeon not found for this endpoint"


def test_endpoint_configuration_persists_to_file(
    tmp_path: Path, dungeon_payload: dict[str, Any]
) -> None:
    path = tmp_path / "endpoint-config.json"
    service = DungeonService(store=InMemoryDungeonStore())

    first = TestClient(
        create_app(service, endpoint_service=EndpointService(EndpointConfigStore(path)))
    )
    first.post("/api/dungeons", json=dungeon_payload)
    assert first.post("/api/endpoints", json=_endpoint()).status_code == 201

    second = TestClient(
        create_app(service, endpoint_service=EndpointService(EndpointConfigStore(path)))
    )
    assert second.get("/api/custom/crypt").status_code == 200


def test_malformed_endpoint_file_returns_server_error(tmp_path: Path) -> None:
    path = tmp_path / "endpoint-config.json"
    path.write_text('{"endpoints": [{"id": 5}]}', encoding="utf-8")
    client = TestClient(
        create_app(
            DungeonService(store=InMemoryDungeonStore()),
            endpoint_service=EndpointService(EndpointConfigStore(path)),
        )
    )

    response = client.get("/api/endpoints")

    assert response.status_code == 500
    assert "malformed" in response.json()["detail"]
