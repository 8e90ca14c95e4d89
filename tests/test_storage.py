from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable

import pytest
from sqlalchemy import create_engine, func, select

from dungeoncrawler import (
    Dungeon,
    DungeonAlreadyExistsError,
    DungeonNotFoundError,
    DungeonStore,
    FileDungeonStore,
    InMemoryDungeonStore,
    SqlDungeonStore,
    StorageError,
    convert_legacy_format,
)
from dungeoncrawler.storage import rooms_table


def _memory_store(tmp_path: Path) -> DungeonStore:
    return InMemoryDungeonStore()


def _file_store(tmp_path: Path) -> DungeonStore:
    return FileDungeonStore(tmp_path / "data" / "dungeon-data.json")


def _sql_store(tmp_path: Path) -> DungeonStore:
    return SqlDungeonStore(create_engine("sqlite://"))


STORE_FACTORIES: list[Callable[[Path], DungeonStore]] = [
    _memory_store,
    _file_store,
    _sql_store,
]


@pytest.fixture(params=STORE_FACTORIES, ids=["memory", "file", "sql"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> DungeonStore:
    return request.param(tmp_path)


def test_create_and_get(store: DungeonStore, sample_dungeon: Dungeon) -> None:
    store.create(sample_dungeon)

    assert store.get("crypt") == sample_dungeon
    assert store.list_dungeons() == [sample_dungeon]


def test_create_rejects_duplicate_identifier(
    store: DungeonStore, sample_dungeon: Dungeon
) -> None:
    store.create(sample_dungeon)
    with pytest.raises(DungeonAlreadyExistsError):
        store.create(sample_dungeon)


def test_missing_dungeons_raise_not_found(store: DungeonStore, sample_dungeon: Dungeon) -> None:
    with pytest.raises(DungeonNotFoundError):
        store.get("nope")
    with pytest.raises(DungeonNotFoundError):
        store.update("nope", sample_dungeon)
    with pytest.raises(DungeonNotFoundError):
        store.delete("nope")


def test_update_replaces_whole_document(store: DungeonStore, sample_dungeon: Dungeon) -> None:
    store.create(sample_dungeon)
    trimmed = replace(sample_dungeon, name="Collapsed Crypt", rooms=sample_dungeon.rooms[:1])

    store.update("crypt", trimmed)

    assert store.get("crypt") == trimmed


def test_delete_removes_dungeon(store: DungeonStore, sample_dungeon: Dungeon) -> None:
    store.create(sample_dungeon)
    store.delete("crypt")

    assert store.list_dungeons() == []


def test_list_keeps_insertion_order(store: DungeonStore, sample_dungeon: Dungeon) -> None:
    for identifier in ("b", "a", "c"):
        store.create(replace(sample_dungeon, id=identifier))

    store.update("a", replace(sample_dungeon, id="a", name="Renamed"))

    assert [dungeon.id for dungeon in store.list_dungeons()] == ["b", "a", "c"]


def test_floored_dungeons_are_stored_per_floor(
    store: DungeonStore, legacy_payload: dict[str, Any]
) -> None:
    dungeon = convert_legacy_format(legacy_payload)[0]
    store.create(dungeon)

    stored = store.get(dungeon.id)
    assert stored == dungeon
    assert stored.rooms == ()
    assert stored.floors[0].name == "Ground Floor"


def test_file_store_writes_dungeons_document(
    tmp_path: Path, sample_dungeon: Dungeon
) -> None:
    path = tmp_path / "dungeon-data.json"
    FileDungeonStore(path).create(sample_dungeon)

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert [entry["id"] for entry in payload["dungeons"]] == ["crypt"]
    assert not path.with_suffix(".json.tmp").exists()

    assert FileDungeonStore(path).get("crypt") == sample_dungeon


def test_file_store_reports_corrupt_files(tmp_path: Path) -> None:
    path = tmp_path / "dungeon-data.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageError):
        FileDungeonStore(path).list_dungeons()

    path.write_text(json.dumps({"dungeons": {"id": "x"}}), encoding="utf-8")
    with pytest.raises(StorageError):
        FileDungeonStore(path).list_dungeons()


def test_missing_file_reads_as_empty(tmp_path: Path) -> None:
    assert FileDungeonStore(tmp_path / "absent.json").list_dungeons() == []


def test_sql_store_allows_room_ids_to_repeat_across_dungeons(
    sample_dungeon: Dungeon,
) -> None:
    engine = create_engine("sqlite://")
    store = SqlDungeonStore(engine)
    store.create(sample_dungeon)
    store.create(replace(sample_dungeon, id="crypt-2"))

    with engine.connect() as conn:
        count = conn.execute(select(func.count()).select_from(rooms_table)).scalar_one()
    assert count == 6

    store.delete("crypt")
    with engine.connect() as conn:
        count = conn.execute(select(func.count()).select_from(rooms_table)).scalar_one()
    assert count == 3
    assert store.get("crypt-2").rooms == sample_dungeon.rooms


def test_sql_store_accepts_database_url(tmp_path: Path, sample_dungeon: Dungeon) -> None:
    url = f"sqlite:///{tmp_path / 'dungeons.db'}"
    SqlDungeonStore(url).create(sample_dungeon)

    assert SqlDungeonStore(url).get("crypt") == sample_dungeon


def test_room_ids_repeated_across_floors_keep_their_own_content(
    store: DungeonStore,
) -> None:
    dungeon = Dungeon.from_payload(
        {
            "id": "tower",
            "name": "Tower",
            "level": 2,
            "size": {"width": 3, "height": 3, "depth": 2},
            "floors": [
                {
                    "floorNumber": 1,
                    "name": "Base",
                    "rooms": [
                        {
                            "id": "a",
                            "type": "entrance",
                            "coordinates": {"x": 0, "y": 0},
                            "monsters": [
                                {
                                    "id": "m1",
                                    "name": "Rat",
                                    "level": 2,
                                    "stats": {"health": 3},
                                }
                            ],
                        }
                    ],
                },
                {
                    "floorNumber": 2,
                    "name": "Top",
                    "rooms": [
                        {"id": "a", "type": "boss", "coordinates": {"x": 0, "y": 0}}
                    ],
                },
            ],
        }
    )

    store.create(dungeon)

    stored = store.get("tower")
    assert stored == dungeon
    assert [monster.id for monster in stored.floors[0].rooms[0].monsters] == ["m1"]
    assert stored.floors[1].rooms[0].monsters == ()


def test_rooms_without_coordinates_are_stored_as_drafted(
    store: DungeonStore, dungeon_payload: dict[str, Any]
) -> None:
    dungeon_payload["rooms"][1].pop("coordinates")
    dungeon = Dungeon.from_payload(dungeon_payload)

    store.create(dungeon)

    assert store.get("crypt").rooms[1].coordinates is None
