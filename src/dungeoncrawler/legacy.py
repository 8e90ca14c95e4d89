"""Import helpers for uploaded dungeon files, including the legacy dialect.

Legacy files look like ``{"dungeons": [{"level": 3, "size": 8, "rooms": [...]}]}``
where every room carries a numeric ``id``, flat ``x``/``y`` fields and a bare
list of direction strings instead of explicit connection targets.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from types import MappingProxyType
from typing import Any, Mapping, Sequence

from .models import (
    Coordinates,
    Difficulty,
    Direction,
    Dungeon,
    DungeonFloor,
    DungeonSize,
    Lore,
    Monster,
    MonsterStats,
    Puzzle,
    Room,
    RoomConnection,
    RoomType,
    Secret,
    SecretType,
    StoryEvent,
    generate_id,
    utc_timestamp,
)

logger = logging.getLogger(__name__)


LEGACY_ROOM_TYPES: Mapping[str, RoomType] = MappingProxyType(
    {
        "entrance": RoomType.ENTRANCE,
        "start": RoomType.ENTRANCE,
        "boss": RoomType.BOSS,
        "treasure": RoomType.TREASURE,
        "loot": RoomType.TREASURE,
        "puzzle": RoomType.PUZZLE,
        "riddle": RoomType.PUZZLE,
        "combat": RoomType.COMBAT,
        "monster": RoomType.COMBAT,
        "enemy": RoomType.COMBAT,
        "rest": RoomType.REST,
        "safe": RoomType.REST,
        "campfire": RoomType.REST,
        "trap": RoomType.TRAP,
        "hazard": RoomType.TRAP,
        "empty": RoomType.EMPTY,
        "corridor": RoomType.EMPTY,
    }
)

_DEFAULT_GRID_SIZE = 10


class ImportFormatError(ValueError):
    """Raised when an uploaded document contains no recognisable dungeons."""


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return default


def _as_text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def _gold(amount: Any) -> str | None:
    if amount is None:
        return None
    return f"{amount} gold"


def is_legacy_document(data: Any) -> bool:
    """Return ``True`` when ``data`` looks like the legacy dungeon dialect.

    Only the first room of the first dungeon is inspected: a numeric ``id``
    together with ``x`` and ``y`` directly on the room marks the old format.
    """

    if not isinstance(data, Mapping):
        return False
    dungeons = data.get("dungeons")
    if not isinstance(dungeons, list) or not dungeons:
        return False
    first_dungeon = dungeons[0]
    if not isinstance(first_dungeon, Mapping):
        return False
    rooms = first_dungeon.get("rooms")
    if not isinstance(rooms, list) or not rooms:
        return False
    first_room = rooms[0]
    if not isinstance(first_room, Mapping):
        return False
    room_id = first_room.get("id")
    return (
        isinstance(room_id, int)
        and not isinstance(room_id, bool)
        and "x" in first_room
        and "y" in first_room
    )


def convert_legacy_format(data: Any) -> list[Dungeon]:
    """Convert every legacy dungeon record in ``data`` to the current schema.

    The input is assumed to be legacy-shaped; use :func:`is_legacy_document`
    to decide that beforehand. An unrecognised top-level shape yields an empty
    list. Nested entries are defaulted field by field rather than rejected.
    """

    if not isinstance(data, Mapping):
        return []
    records = data.get("dungeons")
    if not isinstance(records, list):
        return []

    converted: list[Dungeon] = []
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            logger.debug("Skipping legacy dungeon record #%d: not an object", index)
            continue
        converted.append(_convert_dungeon(record))
    return converted


def _legacy_size(value: Any) -> DungeonSize:
    if isinstance(value, Mapping):
        width = _as_int(value.get("width"), _DEFAULT_GRID_SIZE)
        height = _as_int(value.get("height"), _DEFAULT_GRID_SIZE)
    else:
        width = height = _as_int(value, _DEFAULT_GRID_SIZE)
    return DungeonSize(width=max(width, 1), height=max(height, 1), depth=1)


def _convert_dungeon(record: Mapping[str, Any]) -> Dungeon:
    level = max(_as_int(record.get("level"), 1), 1)
    size = _legacy_size(record.get("size"))

    raw_rooms = record.get("rooms")
    legacy_rooms = [
        entry
        for entry in (raw_rooms if isinstance(raw_rooms, list) else [])
        if isinstance(entry, Mapping)
    ]

    # First pass: every room gets its final id and coordinates before any
    # direction is resolved, since resolution searches the full room list.
    rooms: list[Room] = []
    for legacy_room in legacy_rooms:
        room = _convert_room(legacy_room, level)
        logger.debug("Legacy room %r converted to %s", legacy_room.get("id"), room.id)
        rooms.append(room)

    # Second pass: infer targets spatially from the bare direction lists.
    # The first room converted at a position wins when positions repeat.
    by_position: dict[tuple[int, int], Room] = {}
    for room in rooms:
        if room.coordinates is not None:
            by_position.setdefault((room.coordinates.x, room.coordinates.y), room)

    resolved = [
        replace(room, connections=_infer_connections(legacy_room, room, by_position))
        for legacy_room, room in zip(legacy_rooms, rooms)
    ]

    logger.debug(
        "Converted legacy dungeon (level %d) with %d rooms", level, len(resolved)
    )

    timestamp = utc_timestamp()
    return Dungeon(
        id=generate_id(),
        name=f"Level {level} Dungeon",
        difficulty=Difficulty.MEDIUM,
        level=level,
        size=size,
        description=(
            f"Imported from the legacy format: a level {level} dungeon on a "
            f"{size.width}x{size.height} grid."
        ),
        floors=(
            DungeonFloor(
                floor_number=1,
                name="Ground Floor",
                description="",
                rooms=tuple(resolved),
            ),
        ),
        created_at=timestamp,
        updated_at=timestamp,
    )


def _convert_room(legacy_room: Mapping[str, Any], dungeon_level: int) -> Room:
    raw_type = legacy_room.get("type")
    room_type = (
        LEGACY_ROOM_TYPES.get(raw_type.strip().casefold(), RoomType.EMPTY)
        if isinstance(raw_type, str)
        else RoomType.EMPTY
    )

    raw_monsters = legacy_room.get("monsters")
    monsters = tuple(
        _convert_monster(entry, dungeon_level)
        for entry in (raw_monsters if isinstance(raw_monsters, list) else [])
        if isinstance(entry, Mapping)
    )

    raw_puzzle = legacy_room.get("puzzle")
    raw_story = legacy_room.get("storyEvent")
    raw_lore = legacy_room.get("loreEntry")
    raw_secret = legacy_room.get("secret")

    return Room(
        id=generate_id(),
        type=room_type,
        coordinates=Coordinates(
            x=_as_int(legacy_room.get("x"), 0),
            y=_as_int(legacy_room.get("y"), 0),
        ),
        description=_as_text(legacy_room.get("description")),
        monsters=monsters,
        puzzle=_convert_puzzle(raw_puzzle) if isinstance(raw_puzzle, Mapping) else None,
        story=_convert_story(raw_story) if isinstance(raw_story, Mapping) else None,
        lore=(_convert_lore(raw_lore),) if isinstance(raw_lore, Mapping) else (),
        secrets=(
            (_convert_secret(raw_secret),) if isinstance(raw_secret, Mapping) else ()
        ),
    )


def _infer_connections(
    legacy_room: Mapping[str, Any],
    room: Room,
    by_position: Mapping[tuple[int, int], Room],
) -> tuple[RoomConnection, ...]:
    raw_directions = legacy_room.get("connections")
    if not isinstance(raw_directions, list) or room.coordinates is None:
        return ()

    connections: list[RoomConnection] = []
    seen: set[Direction] = set()
    for raw_direction in raw_directions:
        if not isinstance(raw_direction, str):
            continue
        try:
            direction = Direction(raw_direction.strip().casefold())
        except ValueError:
            continue
        if direction in seen:
            continue

        neighbour = room.coordinates.offset(direction)
        target = by_position.get((neighbour.x, neighbour.y))
        if target is None:
            continue

        seen.add(direction)
        connections.append(RoomConnection(direction=direction, target_room_id=target.id))
    return tuple(connections)


def _convert_monster(entry: Mapping[str, Any], dungeon_level: int) -> Monster:
    special_ability = entry.get("specialAbility")
    loot = _gold(entry.get("goldValue"))
    return Monster(
        id=generate_id(),
        name=_as_text(entry.get("name"), "Unknown Monster"),
        type=_as_text(special_ability) if special_ability else "enemy",
        level=_as_int(entry.get("level"), dungeon_level),
        stats=MonsterStats(
            health=_as_int(entry.get("maxHealth"), 1),
            attack=_as_int(entry.get("damage"), 0),
            defense=_as_int(entry.get("defense"), 0),
            speed=_as_int(entry.get("agility"), 0),
        ),
        loot=(loot,) if loot is not None else (),
    )


def _convert_puzzle(entry: Mapping[str, Any]) -> Puzzle:
    description = entry.get("description") or entry.get("question")
    answer = entry.get("answer")
    return Puzzle(
        id=generate_id(),
        type=_as_text(entry.get("type"), "riddle"),
        difficulty=Difficulty.MEDIUM,
        description=_as_text(description),
        solution=_as_text(answer) if answer is not None else None,
        reward=_gold(entry.get("rewardGold")),
    )


def _convert_story(entry: Mapping[str, Any]) -> StoryEvent:
    raw_choices = entry.get("choices")
    choices: list[str] = []
    consequences: list[str] = []
    for choice in raw_choices if isinstance(raw_choices, list) else []:
        if not isinstance(choice, Mapping):
            continue
        outcome = choice.get("outcome")
        choices.append(_as_text(choice.get("text")))
        consequences.append(
            _as_text(outcome.get("description"))
            if isinstance(outcome, Mapping)
            else ""
        )
    return StoryEvent(
        id=generate_id(),
        title=_as_text(entry.get("title")),
        description=_as_text(entry.get("description")),
        choices=tuple(choices),
        consequences=tuple(consequences),
    )


def _convert_lore(entry: Mapping[str, Any]) -> Lore:
    return Lore(
        id=generate_id(),
        title=_as_text(entry.get("title")),
        content=_as_text(entry.get("text")),
    )


def _convert_secret(entry: Mapping[str, Any]) -> Secret:
    return Secret(
        id=generate_id(),
        type=SecretType.TREASURE,
        description=_as_text(entry.get("description")),
        reward=_gold(entry.get("rewardGold")),
    )


def import_dungeons(data: Any) -> list[Dungeon]:
    """Turn an uploaded JSON document into current-schema dungeons.

    Accepts legacy files, current ``{"dungeons": [...]}`` exports and bare
    single-dungeon objects. Every dungeon found is returned; callers decide
    whether to keep only the first.

    Raises:
        ImportFormatError: If no dungeon could be recognised.
        DocumentFormatError: If a current-format dungeon is malformed.
    """

    dungeons: list[Dungeon] = []
    if isinstance(data, Mapping) and isinstance(data.get("dungeons"), list):
        if is_legacy_document(data):
            logger.info("Detected legacy dungeon document; converting")
            dungeons = convert_legacy_format(data)
        else:
            dungeons = [
                _with_fresh_id(entry, path=f"dungeons[{index}]")
                for index, entry in enumerate(data["dungeons"])
            ]
    elif isinstance(data, Mapping) and (data.get("id") or data.get("name")):
        dungeons = [_with_fresh_id(data, path="dungeon")]

    if not dungeons:
        raise ImportFormatError("No valid dungeons found in file.")
    return dungeons


def _with_fresh_id(payload: Any, *, path: str) -> Dungeon:
    if isinstance(payload, Mapping) and not isinstance(payload.get("id"), str):
        payload = {**payload, "id": generate_id()}
    dungeon = Dungeon.from_payload(payload, path=path)
    if not dungeon.id.strip():
        dungeon = replace(dungeon, id=generate_id())
    return dungeon


def export_document(dungeons: Sequence[Dungeon]) -> dict[str, Any]:
    """Return the ``{"dungeons": [...]}`` document accepted by :func:`import_dungeons`."""

    return {"dungeons": [dungeon.to_payload() for dungeon in dungeons]}


__all__ = [
    "ImportFormatError",
    "LEGACY_ROOM_TYPES",
    "convert_legacy_format",
    "export_document",
    "import_dungeons",
    "is_legacy_document",
]
