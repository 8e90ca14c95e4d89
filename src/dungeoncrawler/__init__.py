"""Core package for the dungeon crawler document service."""

from .models import (
    Coordinates,
    Difficulty,
    Direction,
    DocumentFormatError,
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
    add_connection,
    connect_rooms,
    create_empty_dungeon,
    create_room,
    effective_rooms,
    opposite_direction,
)
from .validation import (
    ValidationIssue,
    ValidationResult,
    validate_dungeon,
    validate_monster,
    validate_room,
)
from .legacy import (
    ImportFormatError,
    convert_legacy_format,
    export_document,
    import_dungeons,
    is_legacy_document,
)
from .storage import (
    DungeonAlreadyExistsError,
    DungeonNotFoundError,
    DungeonStore,
    FileDungeonStore,
    InMemoryDungeonStore,
    SqlDungeonStore,
    StorageError,
)
from .endpoints import (
    EndpointConfig,
    EndpointConfigError,
    EndpointConfigStore,
    EndpointNotFoundError,
)
from .logging_utils import configure_logging

__all__ = [
    "Coordinates",
    "Difficulty",
    "Direction",
    "DocumentFormatError",
    "Dungeon",
    "DungeonFloor",
    "DungeonSize",
    "Lore",
    "Monster",
    "MonsterStats",
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
    "opposite_direction",
    "ValidationIssue",
    "ValidationResult",
    "validate_dungeon",
    "validate_monster",
    "validate_room",
    "ImportFormatError",
    "convert_legacy_format",
    "export_document",
    "import_dungeons",
    "is_legacy_document",
    "DungeonAlreadyExistsError",
    "DungeonNotFoundError",
    "DungeonStore",
    "FileDungeonStore",
    "InMemoryDungeonStore",
    "SqlDungeonStore",
    "StorageError",
    "EndpointConfig",
    "EndpointConfigError",
    "EndpointConfigStore",
    "EndpointNotFoundError",
    "configure_logging",
]
