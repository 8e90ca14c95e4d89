from __future__ import annotations

import logging
from typing import Any

import pytest

from dungeoncrawler import (
    Difficulty,
    Direction,
    ImportFormatError,
    RoomType,
    SecretType,
    convert_legacy_format,
    effective_rooms,
    export_document,
    import_dungeons,
    is_legacy_document,
    validate_dungeon,
)


def test_detects_legacy_documents(
    legacy_payload: dict[str, Any], dungeon_payload: dict[str, Any]
) -> None:
    assert is_legacy_document(legacy_payload) is True
    assert is_legacy_document({"dungeons": [dungeon_payload]}) is False
    assert is_legacy_document({"dungeons": []}) is False
    assert is_legacy_document([legacy_payload]) is False


def test_converts_two_room_legacy_dungeon(legacy_payload: dict[str, Any]) -> None:
    dungeons = convert_legacy_format(legacy_payload)

    assert len(dungeons) == 1
    dungeon = dungeons[0]
    assert dungeon.level == 3
    assert dungeon.name == "Level 3 Dungeon"
    assert dungeon.difficulty is Difficulty.MEDIUM
    assert (dungeon.size.width, dungeon.size.height, dungeon.size.depth) == (8, 8, 1)
    assert [floor.name for floor in dungeon.floors] == ["Ground Floor"]

    entrance, boss = effective_rooms(dungeon)
    assert entrance.type is RoomType.ENTRANCE and boss.type is RoomType.BOSS
    for room in (entrance, boss):
        assert not room.id.isdigit()

    assert [(c.direction, c.target_room_id) for c in entrance.connections] == [
        (Direction.SOUTH, boss.id)
    ]
    assert [(c.direction, c.target_room_id) for c in boss.connections] == [
        (Direction.NORTH, entrance.id)
    ]

    assert validate_dungeon(dungeon).valid is True


def test_unresolvable_directions_are_dropped(legacy_payload: dict[str, Any]) -> None:
    rooms = legacy_payload["dungeons"][0]["rooms"]
    rooms[0]["connections"] = ["south", "north", "sideways", "south"]

    dungeon = convert_legacy_format(legacy_payload)[0]
    entrance = effective_rooms(dungeon)[0]

    assert [c.direction for c in entrance.connections] == [Direction.SOUTH]


def test_each_legacy_id_is_logged_with_its_new_id(
    legacy_payload: dict[str, Any], caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.DEBUG, logger="dungeoncrawler.legacy"):
        dungeon = convert_legacy_format(legacy_payload)[0]

    messages = caplog.messages
    for legacy_id, room in zip((1, 2), effective_rooms(dungeon)):
        assert f"Legacy room {legacy_id!r} converted to {room.id}" in messages


def test_converts_every_dungeon_in_the_file(legacy_payload: dict[str, Any]) -> None:
    second = {"level": 1, "rooms": [{"id": 1, "type": "start", "x": 0, "y": 0}]}
    legacy_payload["dungeons"].append(second)
    legacy_payload["dungeons"].append("not a dungeon")

    dungeons = convert_legacy_format(legacy_payload)

    assert [dungeon.level for dungeon in dungeons] == [3, 1]
    assert dungeons[0].id != dungeons[1].id


@pytest.mark.parametrize("payload", [None, [], "text", {"rooms": []}, {"dungeons": 5}])
def test_unrecognised_shapes_convert_to_nothing(payload: Any) -> None:
    assert convert_legacy_format(payload) == []


def test_nested_content_is_mapped(legacy_payload: dict[str, Any]) -> None:
    room = legacy_payload["dungeons"][0]["rooms"][1]
    room.update(
        {
            "type": "Monster",
            "description": "Throne room",
            "monsters": [
                {
                    "name": "Goblin King",
                    "maxHealth": 30,
                    "damage": 6,
                    "defense": 2,
                    "agility": 4,
                    "goldValue": 25,
                    "specialAbility": "rally",
                }
            ],
            "puzzle": {"question": "What walks on four legs?", "answer": "man", "rewardGold": 10},
            "storyEvent": {
                "title": "Parley",
                "description": "The king offers a deal.",
                "choices": [
                    {"text": "Accept", "outcome": {"description": "You gain an ally."}},
                    {"text": "Refuse"},
                ],
            },
            "loreEntry": {"title": "Crown", "text": "Forged in fire."},
            "secret": {"description": "Hidden vault", "rewardGold": 100},
        }
    )

    converted = effective_rooms(convert_legacy_format(legacy_payload)[0])[1]

    assert converted.type is RoomType.COMBAT
    assert converted.description == "Throne room"

    monster = converted.monsters[0]
    assert monster.type == "rally"
    assert monster.level == 3
    assert monster.stats is not None
    assert (monster.stats.health, monster.stats.attack, monster.stats.speed) == (30, 6, 4)
    assert monster.loot == ("25 gold",)

    assert converted.puzzle is not None
    assert converted.puzzle.description == "What walks on four legs?"
    assert converted.puzzle.solution == "man"
    assert converted.puzzle.reward == "10 gold"

    assert converted.story is not None
    assert converted.story.choices == ("Accept", "Refuse")
    assert converted.story.consequences == ("You gain an ally.", "")

    assert converted.lore[0].content == "Forged in fire."
    assert converted.secrets[0].type is SecretType.TREASURE
    assert converted.secrets[0].reward == "100 gold"


def test_unknown_room_types_become_empty(legacy_payload: dict[str, Any]) -> None:
    legacy_payload["dungeons"][0]["rooms"][0]["type"] = "ballroom"
    room = effective_rooms(convert_legacy_format(legacy_payload)[0])[0]
    assert room.type is RoomType.EMPTY


def test_import_accepts_current_exports_and_single_objects(
    dungeon_payload: dict[str, Any]
) -> None:
    exported = import_dungeons({"dungeons": [dungeon_payload]})
    assert [dungeon.id for dungeon in exported] == ["crypt"]

    single = import_dungeons(dungeon_payload)
    assert single[0].name == "Forgotten Crypt"

    dungeon_payload.pop("id")
    fresh = import_dungeons(dungeon_payload)[0]
    assert fresh.id


def test_import_converts_legacy_documents(legacy_payload: dict[str, Any]) -> None:
    dungeons = import_dungeons(legacy_payload)
    assert len(dungeons) == 1
    assert dungeons[0].floors[0].name == "Ground Floor"


@pytest.mark.parametrize("payload", [{}, {"dungeons": []}, [1, 2], {"foo": "bar"}])
def test_import_rejects_documents_without_dungeons(payload: Any) -> None:
    with pytest.raises(ImportFormatError, match="No valid dungeons found in file."):
        import_dungeons(payload)


def test_export_document_feeds_back_into_import(legacy_payload: dict[str, Any]) -> None:
    dungeons = import_dungeons(legacy_payload)
    document = export_document(dungeons)

    assert set(document) == {"dungeons"}
    reimported = import_dungeons(document)
    assert reimported == dungeons
