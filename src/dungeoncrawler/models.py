"""Document model for dungeon definitions and the helpers shared by its consumers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping, TypeVar


class Difficulty(str, Enum):
    """Difficulty rating attached to dungeons and puzzles."""

    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"
    EXPERT = "Expert"


class RoomType(str, Enum):
    """Role a room plays within the dungeon layout."""

    ENTRANCE = "entrance"
    BOSS = "boss"
    TREASURE = "treasure"
    PUZZLE = "puzzle"
    COMBAT = "combat"
    REST = "rest"
    TRAP = "trap"
    EMPTY = "empty"


class Direction(str, Enum):
    """Cardinal directions used by room connections."""

    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"


class SecretType(str, Enum):
    """Kinds of hidden content a room can hold."""

    HIDDEN_ROOM = "hidden_room"
    TREASURE = "treasure"
    PASSAGE = "passage"
    LORE = "lore"


OPPOSITE_DIRECTIONS: Mapping[Direction, Direction] = MappingProxyType(
    {
        Direction.NORTH: Direction.SOUTH,
        Direction.SOUTH: Direction.NORTH,
        Direction.EAST: Direction.WEST,
        Direction.WEST: Direction.EAST,
    }
)

# Grid step (dx, dy) taken when leaving a room in the given direction.
DIRECTION_OFFSETS: Mapping[Direction, tuple[int, int]] = MappingProxyType(
    {
        Direction.NORTH: (0, -1),
        Direction.SOUTH: (0, 1),
        Direction.EAST: (1, 0),
        Direction.WEST: (-1, 0),
    }
)


class DocumentFormatError(ValueError):
    """Raised when a payload does not match the dungeon document schema."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


_EnumT = TypeVar("_EnumT", bound=Enum)


def _require_mapping(value: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise DocumentFormatError(path, f"{path} must be a JSON object.")
    return value


def _string(
    payload: Mapping[str, Any], key: str, path: str, *, default: str = ""
) -> str:
    value = payload.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise DocumentFormatError(f"{path}.{key}", f"{path}.{key} must be a string.")
    return value


def _optional_string(payload: Mapping[str, Any], key: str, path: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DocumentFormatError(f"{path}.{key}", f"{path}.{key} must be a string.")
    return value


def _identifier(payload: Mapping[str, Any], key: str, path: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if isinstance(value, bool):
        raise DocumentFormatError(f"{path}.{key}", f"{path}.{key} must be a string.")
    if isinstance(value, int):
        return str(value)
    if not isinstance(value, str):
        raise DocumentFormatError(f"{path}.{key}", f"{path}.{key} must be a string.")
    return value


def _coerce_int(value: Any, field_path: str) -> int:
    if isinstance(value, bool):
        raise DocumentFormatError(field_path, f"{field_path} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise DocumentFormatError(field_path, f"{field_path} must be an integer.")


def _integer(
    payload: Mapping[str, Any],
    key: str,
    path: str,
    *,
    default: int,
    minimum: int | None = None,
) -> int:
    value = payload.get(key)
    if value is None:
        return default
    field_path = f"{path}.{key}"
    parsed = _coerce_int(value, field_path)
    if minimum is not None and parsed < minimum:
        raise DocumentFormatError(
            field_path, f"{field_path} must be greater than or equal to {minimum}."
        )
    return parsed


def _optional_integer(
    payload: Mapping[str, Any], key: str, path: str, *, minimum: int | None = None
) -> int | None:
    if payload.get(key) is None:
        return None
    return _integer(payload, key, path, default=0, minimum=minimum)


def _boolean(payload: Mapping[str, Any], key: str, path: str) -> bool:
    value = payload.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise DocumentFormatError(f"{path}.{key}", f"{path}.{key} must be a boolean.")
    return value


def _list(payload: Mapping[str, Any], key: str, path: str) -> list[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise DocumentFormatError(f"{path}.{key}", f"{path}.{key} must be a list.")
    return value


def _string_tuple(payload: Mapping[str, Any], key: str, path: str) -> tuple[str, ...]:
    entries = _list(payload, key, path)
    if not all(isinstance(entry, str) for entry in entries):
        raise DocumentFormatError(
            f"{path}.{key}", f"{path}.{key} must be a list of strings."
        )
    return tuple(entries)


def _enum(
    enum_type: type[_EnumT],
    payload: Mapping[str, Any],
    key: str,
    path: str,
    *,
    default: _EnumT,
) -> _EnumT:
    value = payload.get(key)
    if value is None:
        return default
    try:
        return enum_type(value)
    except ValueError as exc:
        allowed = ", ".join(str(member.value) for member in enum_type)
        raise DocumentFormatError(
            f"{path}.{key}",
            f"{path}.{key} must be one of: {allowed} (got {value!r}).",
        ) from exc


@dataclass(frozen=True)
class Coordinates:
    """Grid position of a room; ``z`` is optional for single-level layouts."""

    x: int
    y: int
    z: int | None = None

    @classmethod
    def from_payload(cls, payload: Any, *, path: str = "coordinates") -> "Coordinates":
        data = _require_mapping(payload, path)
        for key in ("x", "y"):
            if data.get(key) is None:
                raise DocumentFormatError(f"{path}.{key}", f"{path}.{key} is required.")
        return cls(
            x=_integer(data, "x", path, default=0),
            y=_integer(data, "y", path, default=0),
            z=_optional_integer(data, "z", path),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"x": self.x, "y": self.y}
        if self.z is not None:
            payload["z"] = self.z
        return payload

    def offset(self, direction: Direction) -> "Coordinates":
        """Return the neighbouring cell one grid step towards ``direction``."""

        dx, dy = DIRECTION_OFFSETS[direction]
        return Coordinates(x=self.x + dx, y=self.y + dy, z=self.z)


@dataclass(frozen=True)
class RoomConnection:
    """Directed edge from the owning room to ``target_room_id``."""

    direction: Direction
    target_room_id: str
    locked: bool = False
    hidden: bool = False

    @classmethod
    def from_payload(cls, payload: Any, *, path: str = "connection") -> "RoomConnection":
        data = _require_mapping(payload, path)
        if data.get("direction") is None:
            raise DocumentFormatError(
                f"{path}.direction", f"{path}.direction is required."
            )
        return cls(
            direction=_enum(
                Direction, data, "direction", path, default=Direction.NORTH
            ),
            target_room_id=_identifier(data, "targetRoomId", path),
            locked=_boolean(data, "locked", path),
            hidden=_boolean(data, "hidden", path),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "direction": self.direction.value,
            "targetRoomId": self.target_room_id,
            "locked": self.locked,
            "hidden": self.hidden,
        }


@dataclass(frozen=True)
class MonsterStats:
    health: int
    attack: int
    defense: int
    speed: int

    @classmethod
    def from_payload(cls, payload: Any, *, path: str = "stats") -> "MonsterStats":
        data = _require_mapping(payload, path)
        return cls(
            health=_integer(data, "health", path, default=0),
            attack=_integer(data, "attack", path, default=0),
            defense=_integer(data, "defense", path, default=0),
            speed=_integer(data, "speed", path, default=0),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "health": self.health,
            "attack": self.attack,
            "defense": self.defense,
            "speed": self.speed,
        }


@dataclass(frozen=True)
class Monster:
    """Creature placed in a room."""

    id: str
    name: str
    type: str
    level: int
    stats: MonsterStats | None = None
    description: str | None = None
    loot: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Any, *, path: str = "monster") -> "Monster":
        data = _require_mapping(payload, path)
        raw_stats = data.get("stats")
        return cls(
            id=_identifier(data, "id", path),
            name=_string(data, "name", path),
            type=_string(data, "type", path),
            level=_integer(data, "level", path, default=1),
            stats=(
                None
                if raw_stats is None
                else MonsterStats.from_payload(raw_stats, path=f"{path}.stats")
            ),
            description=_optional_string(data, "description", path),
            loot=_string_tuple(data, "loot", path),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "level": self.level,
        }
        if self.stats is not None:
            payload["stats"] = self.stats.to_payload()
        if self.description is not None:
            payload["description"] = self.description
        if self.loot:
            payload["loot"] = list(self.loot)
        return payload


@dataclass(frozen=True)
class Puzzle:
    id: str
    type: str
    difficulty: Difficulty
    description: str
    solution: str | None = None
    reward: str | None = None

    @classmethod
    def from_payload(cls, payload: Any, *, path: str = "puzzle") -> "Puzzle":
        data = _require_mapping(payload, path)
        return cls(
            id=_identifier(data, "id", path),
            type=_string(data, "type", path),
            difficulty=_enum(
                Difficulty, data, "difficulty", path, default=Difficulty.EASY
            ),
            description=_string(data, "description", path),
            solution=_optional_string(data, "solution", path),
            reward=_optional_string(data, "reward", path),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "difficulty": self.difficulty.value,
            "description": self.description,
        }
        if self.solution is not None:
            payload["solution"] = self.solution
        if self.reward is not None:
            payload["reward"] = self.reward
        return payload


@dataclass(frozen=True)
class StoryEvent:
    """Narrative beat; ``consequences[i]`` describes the outcome of ``choices[i]``."""

    id: str
    title: str
    description: str
    choices: tuple[str, ...] = ()
    consequences: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Any, *, path: str = "story") -> "StoryEvent":
        data = _require_mapping(payload, path)
        return cls(
            id=_identifier(data, "id", path),
            title=_string(data, "title", path),
            description=_string(data, "description", path),
            choices=_string_tuple(data, "choices", path),
            consequences=_string_tuple(data, "consequences", path),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
        }
        if self.choices:
            payload["choices"] = list(self.choices)
        if self.consequences:
            payload["consequences"] = list(self.consequences)
        return payload


@dataclass(frozen=True)
class Lore:
    id: str
    title: str
    content: str
    discovered: bool = False

    @classmethod
    def from_payload(cls, payload: Any, *, path: str = "lore") -> "Lore":
        data = _require_mapping(payload, path)
        return cls(
            id=_identifier(data, "id", path),
            title=_string(data, "title", path),
            content=_string(data, "content", path),
            discovered=_boolean(data, "discovered", path),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "discovered": self.discovered,
        }


@dataclass(frozen=True)
class Secret:
    id: str
    type: SecretType
    description: str
    discovery_method: str | None = None
    reward: str | None = None

    @classmethod
    def from_payload(cls, payload: Any, *, path: str = "secret") -> "Secret":
        data = _require_mapping(payload, path)
        return cls(
            id=_identifier(data, "id", path),
            type=_enum(SecretType, data, "type", path, default=SecretType.TREASURE),
            description=_string(data, "description", path),
            discovery_method=_optional_string(data, "discoveryMethod", path),
            reward=_optional_string(data, "reward", path),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
        }
        if self.discovery_method is not None:
            payload["discoveryMethod"] = self.discovery_method
        if self.reward is not None:
            payload["reward"] = self.reward
        return payload


@dataclass(frozen=True)
class Room:
    """Node of the room graph.

    Rooms refer to each other exclusively through ``RoomConnection.target_room_id``
    so a dungeon owns its rooms without any cyclic references between them.
    ``coordinates`` is ``None`` while a room is still being drafted; the
    validator reports such rooms inside a dungeon.
    """

    id: str
    type: RoomType
    coordinates: Coordinates | None
    description: str
    connections: tuple[RoomConnection, ...] = ()
    monsters: tuple[Monster, ...] = ()
    puzzle: Puzzle | None = None
    story: StoryEvent | None = None
    lore: tuple[Lore, ...] = ()
    secrets: tuple[Secret, ...] = ()
    visited: bool = False
    cleared: bool = False

    @classmethod
    def from_payload(cls, payload: Any, *, path: str = "room") -> "Room":
        data = _require_mapping(payload, path)
        raw_coordinates = data.get("coordinates")
        raw_puzzle = data.get("puzzle")
        raw_story = data.get("story")
        return cls(
            id=_identifier(data, "id", path),
            type=_enum(RoomType, data, "type", path, default=RoomType.EMPTY),
            coordinates=(
                None
                if raw_coordinates is None
                else Coordinates.from_payload(
                    raw_coordinates, path=f"{path}.coordinates"
                )
            ),
            description=_string(data, "description", path),
            connections=tuple(
                RoomConnection.from_payload(entry, path=f"{path}.connections[{index}]")
                for index, entry in enumerate(_list(data, "connections", path))
            ),
            monsters=tuple(
                Monster.from_payload(entry, path=f"{path}.monsters[{index}]")
                for index, entry in enumerate(_list(data, "monsters", path))
            ),
            puzzle=(
                None
                if raw_puzzle is None
                else Puzzle.from_payload(raw_puzzle, path=f"{path}.puzzle")
            ),
            story=(
                None
                if raw_story is None
                else StoryEvent.from_payload(raw_story, path=f"{path}.story")
            ),
            lore=tuple(
                Lore.from_payload(entry, path=f"{path}.lore[{index}]")
                for index, entry in enumerate(_list(data, "lore", path))
            ),
            secrets=tuple(
                Secret.from_payload(entry, path=f"{path}.secrets[{index}]")
                for index, entry in enumerate(_list(data, "secrets", path))
            ),
            visited=_boolean(data, "visited", path),
            cleared=_boolean(data, "cleared", path),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
        }
        if self.coordinates is not None:
            payload["coordinates"] = self.coordinates.to_payload()
        payload["description"] = self.description
        payload["connections"] = [
            connection.to_payload() for connection in self.connections
        ]
        if self.monsters:
            payload["monsters"] = [monster.to_payload() for monster in self.monsters]
        if self.puzzle is not None:
            payload["puzzle"] = self.puzzle.to_payload()
        if self.story is not None:
            payload["story"] = self.story.to_payload()
        if self.lore:
            payload["lore"] = [entry.to_payload() for entry in self.lore]
        if self.secrets:
            payload["secrets"] = [secret.to_payload() for secret in self.secrets]
        payload["visited"] = self.visited
        payload["cleared"] = self.cleared
        return payload


@dataclass(frozen=True)
class DungeonFloor:
    floor_number: int
    name: str
    description: str = ""
    rooms: tuple[Room, ...] = ()

    @classmethod
    def from_payload(cls, payload: Any, *, path: str = "floor") -> "DungeonFloor":
        data = _require_mapping(payload, path)
        if data.get("floorNumber") is None:
            raise DocumentFormatError(
                f"{path}.floorNumber", f"{path}.floorNumber is required."
            )
        floor_number = _integer(data, "floorNumber", path, default=1, minimum=1)
        return cls(
            floor_number=floor_number,
            name=_string(data, "name", path, default=f"Floor {floor_number}"),
            description=_string(data, "description", path),
            rooms=_rooms_from_payload(data, path),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "floorNumber": self.floor_number,
            "name": self.name,
            "description": self.description,
            "rooms": [room.to_payload() for room in self.rooms],
        }


@dataclass(frozen=True)
class DungeonSize:
    width: int = 10
    height: int = 10
    depth: int | None = None

    @classmethod
    def from_payload(cls, payload: Any, *, path: str = "size") -> "DungeonSize":
        data = _require_mapping(payload, path)
        return cls(
            width=_integer(data, "width", path, default=10, minimum=1),
            height=_integer(data, "height", path, default=10, minimum=1),
            depth=_optional_integer(data, "depth", path, minimum=1),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"width": self.width, "height": self.height}
        if self.depth is not None:
            payload["depth"] = self.depth
        return payload


@dataclass(frozen=True)
class Dungeon:
    """Complete dungeon document.

    Exactly one room container is authoritative: when ``floors`` is non-empty
    the flat ``rooms`` tuple is ignored, otherwise ``rooms`` holds the layout.
    Use :func:`effective_rooms` rather than reading either container directly.
    """

    id: str
    name: str
    difficulty: Difficulty
    level: int
    size: DungeonSize
    description: str
    rooms: tuple[Room, ...] = ()
    floors: tuple[DungeonFloor, ...] = ()
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_payload(cls, payload: Any, *, path: str = "dungeon") -> "Dungeon":
        """Build a dungeon from a parsed JSON object.

        Missing fields fall back to defaults; values of the wrong kind raise
        :class:`DocumentFormatError` naming the offending field.
        """

        data = _require_mapping(payload, path)
        raw_size = data.get("size")

        floors = tuple(
            DungeonFloor.from_payload(entry, path=f"floors[{index}]")
            for index, entry in enumerate(_list(data, "floors", path))
        )
        seen_numbers: set[int] = set()
        for floor in floors:
            if floor.floor_number in seen_numbers:
                raise DocumentFormatError(
                    "floors",
                    f"Floor number {floor.floor_number} is defined more than once.",
                )
            seen_numbers.add(floor.floor_number)

        # A populated floor list makes the flat rooms array a derived cache.
        rooms = () if floors else _rooms_from_payload(data, "")

        return cls(
            id=_identifier(data, "id", path),
            name=_string(data, "name", path),
            difficulty=_enum(
                Difficulty, data, "difficulty", path, default=Difficulty.EASY
            ),
            level=_integer(data, "level", path, default=1, minimum=1),
            size=(
                DungeonSize()
                if raw_size is None
                else DungeonSize.from_payload(raw_size, path="size")
            ),
            description=_string(data, "description", path),
            rooms=rooms,
            floors=floors,
            created_at=_optional_string(data, "createdAt", path),
            updated_at=_optional_string(data, "updatedAt", path),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "difficulty": self.difficulty.value,
            "level": self.level,
            "size": self.size.to_payload(),
            "description": self.description,
            "rooms": [room.to_payload() for room in effective_rooms(self)],
        }
        if self.floors:
            payload["floors"] = [floor.to_payload() for floor in self.floors]
        if self.created_at is not None:
            payload["createdAt"] = self.created_at
        if self.updated_at is not None:
            payload["updatedAt"] = self.updated_at
        return payload


def _rooms_from_payload(data: Mapping[str, Any], path: str) -> tuple[Room, ...]:
    prefix = f"{path}.rooms" if path else "rooms"
    return tuple(
        Room.from_payload(entry, path=f"{prefix}[{index}]")
        for index, entry in enumerate(_list(data, "rooms", path or "dungeon"))
    )


def opposite_direction(direction: Direction) -> Direction:
    """Return the direction a reciprocal connection must use."""

    return OPPOSITE_DIRECTIONS[direction]


def effective_rooms(dungeon: Dungeon) -> tuple[Room, ...]:
    """Return the working room set for ``dungeon``.

    Floors win when present: their rooms are concatenated in floor order.
    Otherwise the flat ``rooms`` container is returned unchanged.
    """

    if dungeon.floors:
        return tuple(room for floor in dungeon.floors for room in floor.rooms)
    return dungeon.rooms


def iter_rooms_with_floor(dungeon: Dungeon) -> Iterator[tuple[int | None, Room]]:
    """Yield ``(floor_number, room)`` pairs; flat dungeons report ``None``."""

    if dungeon.floors:
        for floor in dungeon.floors:
            for room in floor.rooms:
                yield floor.floor_number, room
        return
    for room in dungeon.rooms:
        yield None, room


def generate_id() -> str:
    return str(uuid.uuid4())


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_empty_dungeon(
    name: str, difficulty: Difficulty = Difficulty.EASY
) -> Dungeon:
    """Return a new level 1 dungeon without rooms."""

    timestamp = utc_timestamp()
    return Dungeon(
        id=generate_id(),
        name=name,
        difficulty=difficulty,
        level=1,
        size=DungeonSize(width=10, height=10),
        description="",
        created_at=timestamp,
        updated_at=timestamp,
    )


def create_room(
    room_type: RoomType, coordinates: Coordinates, description: str
) -> Room:
    return Room(
        id=generate_id(),
        type=room_type,
        coordinates=coordinates,
        description=description,
    )


def add_connection(
    source: Room, target: Room, direction: Direction
) -> tuple[Room, Room]:
    """Wire ``source`` and ``target`` together in both directions.

    Returns updated copies of both rooms; the arguments are left untouched.
    Each side only gains an edge when it is not connected to the other room
    already, so calling this twice is harmless.

    Args:
        source: Room the new passage leaves from.
        target: Room reached by travelling ``direction`` from ``source``.
        direction: Direction of travel from ``source`` to ``target``.

    Returns:
        A ``(source, target)`` tuple holding the updated rooms.
    """

    updated_source = source
    if not any(conn.target_room_id == target.id for conn in source.connections):
        updated_source = replace(
            source,
            connections=source.connections
            + (RoomConnection(direction=direction, target_room_id=target.id),),
        )

    updated_target = target
    if not any(conn.target_room_id == source.id for conn in target.connections):
        updated_target = replace(
            target,
            connections=target.connections
            + (
                RoomConnection(
                    direction=opposite_direction(direction),
                    target_room_id=source.id,
                ),
            ),
        )

    return updated_source, updated_target


def replace_room(dungeon: Dungeon, room: Room) -> Dungeon:
    """Return a copy of ``dungeon`` with the room sharing ``room.id`` swapped in.

    Raises:
        LookupError: If no room with that identifier exists in the dungeon.
    """

    if dungeon.floors:
        floors: list[DungeonFloor] = []
        found = False
        for floor in dungeon.floors:
            if any(existing.id == room.id for existing in floor.rooms):
                found = True
                floor = replace(
                    floor,
                    rooms=tuple(
                        room if existing.id == room.id else existing
                        for existing in floor.rooms
                    ),
                )
            floors.append(floor)
        if not found:
            raise LookupError(f"Room '{room.id}' is not part of dungeon '{dungeon.id}'.")
        return replace(dungeon, floors=tuple(floors))

    if not any(existing.id == room.id for existing in dungeon.rooms):
        raise LookupError(f"Room '{room.id}' is not part of dungeon '{dungeon.id}'.")
    return replace(
        dungeon,
        rooms=tuple(
            room if existing.id == room.id else existing for existing in dungeon.rooms
        ),
    )


def connect_rooms(
    dungeon: Dungeon, source_id: str, target_id: str, direction: Direction
) -> Dungeon:
    """Return a copy of ``dungeon`` with a reciprocal passage between two rooms."""

    if source_id == target_id:
        raise ValueError("A room cannot be connected to itself.")

    rooms = {room.id: room for room in effective_rooms(dungeon)}
    try:
        source = rooms[source_id]
        target = rooms[target_id]
    except KeyError as exc:
        raise LookupError(
            f"Room {exc.args[0]!r} is not part of dungeon '{dungeon.id}'."
        ) from exc

    updated_source, updated_target = add_connection(source, target, direction)
    return replace_room(replace_room(dungeon, updated_source), updated_target)


__all__ = [
    "Coordinates",
    "DIRECTION_OFFSETS",
    "Difficulty",
    "Direction",
    "DocumentFormatError",
    "Dungeon",
    "DungeonFloor",
    "DungeonSize",
    "Lore",
    "Monster",
    "MonsterStats",
    "OPPOSITE_DIRECTIONS",
    "Puzzle",
    "Room",
    "RoomConnection",
    "RoomType",
    "Secret",
    "SecretType",
    "StoryEvent",
    "add_connection",
    "connect_rooms",
    "create_empty_dungeon",
    "create_room",
    "effective_rooms",
    "generate_id",
    "iter_rooms_with_floor",
    "opposite_direction",
    "replace_room",
    "utc_timestamp",
]
