"""Structural checks over dungeon documents.

The validator performs a full scan and reports every defect it finds rather
than stopping at the first one. Defects are returned as values; none of the
functions in this module raise for bad documents.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .models import (
    DocumentFormatError,
    Dungeon,
    Monster,
    Room,
    RoomType,
    effective_rooms,
    iter_rooms_with_floor,
    opposite_direction,
)


@dataclass(frozen=True)
class ValidationIssue:
    """Single defect located by a dotted ``field`` path."""

    field: str
    message: str

    def to_payload(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation pass."""

    valid: bool
    errors: tuple[ValidationIssue, ...] = ()

    @classmethod
    def from_issues(cls, issues: list[ValidationIssue]) -> "ValidationResult":
        return cls(valid=not issues, errors=tuple(issues))

    def to_payload(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [issue.to_payload() for issue in self.errors],
        }


def _level_in_bounds(level: int, dungeon_level: int) -> bool:
    return dungeon_level - 2 <= level <= dungeon_level + 2


def validate_dungeon(dungeon: Dungeon | Mapping[str, Any]) -> ValidationResult:
    """Check the room graph and content of ``dungeon``.

    Args:
        dungeon: A parsed :class:`Dungeon` or the raw JSON object describing one.
            Raw objects that cannot be parsed produce a single issue naming the
            malformed field.

    Returns:
        A :class:`ValidationResult`; ``valid`` is ``True`` only when no issue
        was recorded.
    """

    if not isinstance(dungeon, Dungeon):
        try:
            dungeon = Dungeon.from_payload(dungeon)
        except DocumentFormatError as exc:
            return ValidationResult.from_issues([ValidationIssue(exc.field, str(exc))])

    rooms = effective_rooms(dungeon)
    if not rooms:
        return ValidationResult.from_issues(
            [
                ValidationIssue(
                    "rooms", "Dungeon must have at least one floor with rooms"
                )
            ]
        )

    issues: list[ValidationIssue] = []

    depth = dungeon.size.depth
    if dungeon.floors and depth is not None and depth != len(dungeon.floors):
        issues.append(
            ValidationIssue(
                "size.depth",
                f"Dungeon depth ({depth}) does not match number of floors "
                f"({len(dungeon.floors)})",
            )
        )

    if not any(room.type is RoomType.ENTRANCE for room in rooms):
        issues.append(
            ValidationIssue("rooms", "Dungeon must have at least one entrance room")
        )

    if not any(room.type is RoomType.BOSS for room in rooms):
        issues.append(
            ValidationIssue("rooms", "Dungeon must have at least one boss room")
        )

    issues.extend(_coordinate_issues(dungeon))
    issues.extend(_connection_issues(rooms))

    for room in rooms:
        for monster in room.monsters:
            if not _level_in_bounds(monster.level, dungeon.level):
                issues.append(
                    ValidationIssue(
                        f"room.{room.id}.monster.{monster.id}.level",
                        f"Monster level {monster.level} is not appropriate for "
                        f"dungeon level {dungeon.level}",
                    )
                )

    return ValidationResult.from_issues(issues)


def _coordinate_issues(dungeon: Dungeon) -> list[ValidationIssue]:
    # Keys are scoped by floor so equal (x, y) on different floors never clash.
    issues: list[ValidationIssue] = []
    seen: set[tuple[int, int, int, int]] = set()
    for floor_number, room in iter_rooms_with_floor(dungeon):
        coordinates = room.coordinates
        if coordinates is None:
            issues.append(
                ValidationIssue(
                    f"room.{room.id}.coordinates",
                    f"Room {room.id} is missing coordinates",
                )
            )
            continue
        key = (floor_number or 0, coordinates.x, coordinates.y, coordinates.z or 0)
        if key in seen:
            issues.append(
                ValidationIssue(
                    f"room.{room.id}.coordinates",
                    f"Duplicate coordinates found at ({coordinates.x}, {coordinates.y})",
                )
            )
        seen.add(key)
    return issues


def _connection_issues(rooms: tuple[Room, ...]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    room_map = {room.id: room for room in rooms}
    for room in rooms:
        for connection in room.connections:
            target = room_map.get(connection.target_room_id)
            if target is None:
                issues.append(
                    ValidationIssue(
                        f"room.{room.id}.connections",
                        f"Connection to non-existent room: {connection.target_room_id}",
                    )
                )
                continue

            opposite = opposite_direction(connection.direction)
            if not any(
                back.direction is opposite and back.target_room_id == room.id
                for back in target.connections
            ):
                issues.append(
                    ValidationIssue(
                        f"room.{room.id}.connections",
                        f"Missing reciprocal connection from room "
                        f"{connection.target_room_id} ({opposite.value})",
                    )
                )
    return issues


def validate_room(room: Room, dungeon_level: int) -> ValidationResult:
    """Check a single room in isolation, including its monsters."""

    issues: list[ValidationIssue] = []

    if not room.id.strip():
        issues.append(ValidationIssue("room.id", "Room ID is required"))
    if not room.description.strip():
        issues.append(
            ValidationIssue("room.description", "Room description is required")
        )
    if room.coordinates is None:
        issues.append(
            ValidationIssue("room.coordinates", "Room coordinates are required")
        )

    for monster in room.monsters:
        issues.extend(validate_monster(monster, dungeon_level).errors)

    return ValidationResult.from_issues(issues)


def validate_monster(monster: Monster, dungeon_level: int) -> ValidationResult:
    """Check a single monster's identity, stats and level."""

    issues: list[ValidationIssue] = []

    if not monster.id.strip():
        issues.append(ValidationIssue("monster.id", "Monster ID is required"))
    if not monster.name.strip():
        issues.append(ValidationIssue("monster.name", "Monster name is required"))

    stats = monster.stats
    if stats is None:
        issues.append(ValidationIssue("monster.stats", "Monster stats are required"))
    else:
        if stats.health <= 0:
            issues.append(
                ValidationIssue(
                    "monster.stats.health", "Monster health must be positive"
                )
            )
        if stats.attack < 0:
            issues.append(
                ValidationIssue(
                    "monster.stats.attack", "Monster attack cannot be negative"
                )
            )
        if stats.defense < 0:
            issues.append(
                ValidationIssue(
                    "monster.stats.defense", "Monster defense cannot be negative"
                )
            )
        if stats.speed < 0:
            issues.append(
                ValidationIssue("monster.stats.speed", "Monster speed cannot be negative")
            )

    if not _level_in_bounds(monster.level, dungeon_level):
        issues.append(
            ValidationIssue(
                "monster.level",
                f"Monster level should be within ±2 of dungeon level {dungeon_level}",
            )
        )

    return ValidationResult.from_issues(issues)


__all__ = [
    "ValidationIssue",
    "ValidationResult",
    "validate_dungeon",
    "validate_monster",
    "validate_room",
]
