"""Persistence adapters for dungeon documents."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Connection,
    Engine,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    select,
)
from sqlalchemy.exc import SQLAlchemyError

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
)

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when the backing store cannot be read or written."""


class DungeonNotFoundError(LookupError):
    """Raised when a dungeon identifier is unknown to the store."""

    def __init__(self, dungeon_id: str) -> None:
        super().__init__(f"Dungeon '{dungeon_id}' not found.")
        self.dungeon_id = dungeon_id


class DungeonAlreadyExistsError(RuntimeError):
    """Raised when creating a dungeon whose identifier is already stored."""

    def __init__(self, dungeon_id: str) -> None:
        super().__init__(f"Dungeon '{dungeon_id}' already exists.")
        self.dungeon_id = dungeon_id


class DungeonStore(ABC):
    """Interface describing how dungeon documents are persisted."""

    @abstractmethod
    def list_dungeons(self) -> List[Dungeon]:
        """Return every stored dungeon."""

    @abstractmethod
    def get(self, dungeon_id: str) -> Dungeon:
        """Return the dungeon with ``dungeon_id``.

        Raises:
            DungeonNotFoundError: If the dungeon cannot be found.
        """

    @abstractmethod
    def create(self, dungeon: Dungeon) -> Dungeon:
        """Persist a new dungeon and return the stored version.

        Raises:
            DungeonAlreadyExistsError: If the identifier is already taken.
        """

    @abstractmethod
    def update(self, dungeon_id: str, dungeon: Dungeon) -> Dungeon:
        """Replace the stored dungeon with ``dungeon``."""

    @abstractmethod
    def delete(self, dungeon_id: str) -> None:
        """Remove the stored dungeon.

        Raises:
            DungeonNotFoundError: If the dungeon cannot be found.
        """


class InMemoryDungeonStore(DungeonStore):
    """Keep dungeons in local process memory."""

    def __init__(self, dungeons: Sequence[Dungeon] = ()) -> None:
        self._dungeons: Dict[str, Dungeon] = {}
        for dungeon in dungeons:
            self.create(dungeon)

    def list_dungeons(self) -> List[Dungeon]:
        return list(self._dungeons.values())

    def get(self, dungeon_id: str) -> Dungeon:
        try:
            return self._dungeons[dungeon_id]
        except KeyError as exc:
            raise DungeonNotFoundError(dungeon_id) from exc

    def create(self, dungeon: Dungeon) -> Dungeon:
        if dungeon.id in self._dungeons:
            raise DungeonAlreadyExistsError(dungeon.id)
        self._dungeons[dungeon.id] = dungeon
        return dungeon

    def update(self, dungeon_id: str, dungeon: Dungeon) -> Dungeon:
        if dungeon_id not in self._dungeons:
            raise DungeonNotFoundError(dungeon_id)
        self._dungeons[dungeon_id] = dungeon
        return dungeon

    def delete(self, dungeon_id: str) -> None:
        if self._dungeons.pop(dungeon_id, None) is None:
            raise DungeonNotFoundError(dungeon_id)


class FileDungeonStore(DungeonStore):
    """Persist every dungeon in a single ``{"dungeons": [...]}`` JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def list_dungeons(self) -> List[Dungeon]:
        return self._load()

    def get(self, dungeon_id: str) -> Dungeon:
        for dungeon in self._load():
            if dungeon.id == dungeon_id:
                return dungeon
        raise DungeonNotFoundError(dungeon_id)

    def create(self, dungeon: Dungeon) -> Dungeon:
        dungeons = self._load()
        if any(existing.id == dungeon.id for existing in dungeons):
            raise DungeonAlreadyExistsError(dungeon.id)
        dungeons.append(dungeon)
        self._save(dungeons)
        return dungeon

    def update(self, dungeon_id: str, dungeon: Dungeon) -> Dungeon:
        dungeons = self._load()
        for index, existing in enumerate(dungeons):
            if existing.id == dungeon_id:
                dungeons[index] = dungeon
                self._save(dungeons)
                return dungeon
        raise DungeonNotFoundError(dungeon_id)

    def delete(self, dungeon_id: str) -> None:
        dungeons = self._load()
        remaining = [dungeon for dungeon in dungeons if dungeon.id != dungeon_id]
        if len(remaining) == len(dungeons):
            raise DungeonNotFoundError(dungeon_id)
        self._save(remaining)

    def _load(self) -> List[Dungeon]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.error("Failed to read dungeon data from %s: %s", self.path, exc)
            raise StorageError("Failed to read dungeon data file.") from exc

        if not isinstance(payload, Mapping):
            raise StorageError("Dungeon data file must contain a JSON object.")
        records = payload.get("dungeons", [])
        if not isinstance(records, list):
            raise StorageError("Dungeon data file must hold a 'dungeons' list.")

        try:
            return [Dungeon.from_payload(record) for record in records]
        except DocumentFormatError as exc:
            raise StorageError(f"Stored dungeon data is malformed: {exc}") from exc

    def _save(self, dungeons: Sequence[Dungeon]) -> None:
        destination = self.path
        temporary = destination.with_suffix(destination.suffix + ".tmp")
        payload = {"dungeons": [dungeon.to_payload() for dungeon in dungeons]}

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with temporary.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=False, indent=2)
            temporary.replace(destination)
        except OSError as exc:
            logger.exception("Failed to write dungeon data to %s", destination)
            raise StorageError("Failed to save dungeons.") from exc

        logger.debug("Wrote %d dungeons to %s", len(dungeons), destination)


metadata = MetaData()

dungeons_table = Table(
    "dungeons",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("position", Integer, nullable=False),
    Column("name", Text, nullable=False),
    Column("difficulty", String(16), nullable=False),
    Column("level", Integer, nullable=False),
    Column("size_width", Integer, nullable=False),
    Column("size_height", Integer, nullable=False),
    Column("size_depth", Integer, nullable=True),
    Column("description", Text, nullable=False),
    Column("created_at", String(64), nullable=True),
    Column("updated_at", String(64), nullable=True),
)

floors_table = Table(
    "dungeon_floors",
    metadata,
    Column("pk", Integer, primary_key=True, autoincrement=True),
    Column(
        "dungeon_id",
        String(64),
        ForeignKey("dungeons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("floor_number", Integer, nullable=False),
    Column("name", Text, nullable=False),
    Column("description", Text, nullable=True),
)

rooms_table = Table(
    "rooms",
    metadata,
    Column("pk", Integer, primary_key=True, autoincrement=True),
    Column(
        "dungeon_id",
        String(64),
        ForeignKey("dungeons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("room_id", String(64), nullable=False),
    Column("floor_number", Integer, nullable=True),
    Column("position", Integer, nullable=False),
    Column("type", String(16), nullable=False),
    Column("coord_x", Integer, nullable=True),
    Column("coord_y", Integer, nullable=True),
    Column("coord_z", Integer, nullable=True),
    Column("description", Text, nullable=False),
    Column("visited", Boolean, nullable=False, default=False),
    Column("cleared", Boolean, nullable=False, default=False),
)

connections_table = Table(
    "room_connections",
    metadata,
    Column("pk", Integer, primary_key=True, autoincrement=True),
    Column(
        "dungeon_id",
        String(64),
        ForeignKey("dungeons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "source_room_pk",
        Integer,
        ForeignKey("rooms.pk", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("source_room_id", String(64), nullable=False),
    Column("target_room_id", String(64), nullable=False),
    Column("position", Integer, nullable=False),
    Column("direction", String(8), nullable=False),
    Column("locked", Boolean, nullable=False, default=False),
    Column("hidden", Boolean, nullable=False, default=False),
)

monsters_table = Table(
    "monsters",
    metadata,
    Column("pk", Integer, primary_key=True, autoincrement=True),
    Column(
        "dungeon_id",
        String(64),
        ForeignKey("dungeons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "room_pk",
        Integer,
        ForeignKey("rooms.pk", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("room_id", String(64), nullable=False),
    Column("monster_id", String(64), nullable=False),
    Column("position", Integer, nullable=False),
    Column("name", Text, nullable=False),
    Column("type", Text, nullable=False),
    Column("level", Integer, nullable=False),
    Column("health", Integer, nullable=True),
    Column("attack", Integer, nullable=True),
    Column("defense", Integer, nullable=True),
    Column("speed", Integer, nullable=True),
    Column("description", Text, nullable=True),
    Column("loot", JSON, nullable=True),
)

puzzles_table = Table(
    "puzzles",
    metadata,
    Column("pk", Integer, primary_key=True, autoincrement=True),
    Column(
        "dungeon_id",
        String(64),
        ForeignKey("dungeons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "room_pk",
        Integer,
        ForeignKey("rooms.pk", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("room_id", String(64), nullable=False),
    Column("puzzle_id", String(64), nullable=False),
    Column("type", Text, nullable=False),
    Column("difficulty", String(16), nullable=False),
    Column("description", Text, nullable=False),
    Column("solution", Text, nullable=True),
    Column("reward", Text, nullable=True),
)

story_events_table = Table(
    "story_events",
    metadata,
    Column("pk", Integer, primary_key=True, autoincrement=True),
    Column(
        "dungeon_id",
        String(64),
        ForeignKey("dungeons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "room_pk",
        Integer,
        ForeignKey("rooms.pk", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("room_id", String(64), nullable=False),
    Column("story_id", String(64), nullable=False),
    Column("title", Text, nullable=False),
    Column("description", Text, nullable=False),
    Column("choices", JSON, nullable=True),
    Column("consequences", JSON, nullable=True),
)

lore_table = Table(
    "lore_entries",
    metadata,
    Column("pk", Integer, primary_key=True, autoincrement=True),
    Column(
        "dungeon_id",
        String(64),
        ForeignKey("dungeons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "room_pk",
        Integer,
        ForeignKey("rooms.pk", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("room_id", String(64), nullable=False),
    Column("lore_id", String(64), nullable=False),
    Column("position", Integer, nullable=False),
    Column("title", Text, nullable=False),
    Column("content", Text, nullable=False),
    Column("discovered", Boolean, nullable=False, default=False),
)

secrets_table = Table(
    "secrets",
    metadata,
    Column("pk", Integer, primary_key=True, autoincrement=True),
    Column(
        "dungeon_id",
        String(64),
        ForeignKey("dungeons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "room_pk",
        Integer,
        ForeignKey("rooms.pk", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("room_id", String(64), nullable=False),
    Column("secret_id", String(64), nullable=False),
    Column("position", Integer, nullable=False),
    Column("type", String(16), nullable=False),
    Column("description", Text, nullable=False),
    Column("discovery_method", Text, nullable=True),
    Column("reward", Text, nullable=True),
)

# Child tables in the order they are cleared before the parent row goes.
_CHILD_TABLES = (
    secrets_table,
    lore_table,
    story_events_table,
    puzzles_table,
    monsters_table,
    connections_table,
    rooms_table,
    floors_table,
)


class SqlDungeonStore(DungeonStore):
    """Persist dungeons in a relational database through SQLAlchemy Core.

    Each dungeon is spread over one table per entity, mirroring the document
    structure. Writes run inside a single transaction so a dungeon is always
    stored or replaced as a whole.
    """

    def __init__(self, engine: Engine | str, *, create_schema: bool = True) -> None:
        if isinstance(engine, str):
            engine = create_engine(engine, pool_pre_ping=True)
        self.engine = engine
        if create_schema:
            try:
                metadata.create_all(self.engine)
            except SQLAlchemyError as exc:
                raise StorageError("Failed to initialise the dungeon schema.") from exc

    def list_dungeons(self) -> List[Dungeon]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(
                    select(dungeons_table).order_by(dungeons_table.c.position)
                ).mappings().all()
                return [self._build_dungeon(conn, row) for row in rows]
        except SQLAlchemyError as exc:
            logger.exception("Failed to fetch dungeons")
            raise StorageError("Failed to fetch dungeons.") from exc

    def get(self, dungeon_id: str) -> Dungeon:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(dungeons_table).where(dungeons_table.c.id == dungeon_id)
                ).mappings().first()
                if row is None:
                    raise DungeonNotFoundError(dungeon_id)
                return self._build_dungeon(conn, row)
        except SQLAlchemyError as exc:
            logger.exception("Failed to fetch dungeon %s", dungeon_id)
            raise StorageError(f"Failed to fetch dungeon '{dungeon_id}'.") from exc

    def create(self, dungeon: Dungeon) -> Dungeon:
        try:
            with self.engine.begin() as conn:
                if self._exists(conn, dungeon.id):
                    raise DungeonAlreadyExistsError(dungeon.id)
                self._insert_dungeon(conn, dungeon, position=self._next_position(conn))
        except SQLAlchemyError as exc:
            logger.exception("Failed to create dungeon %s", dungeon.id)
            raise StorageError(f"Failed to create dungeon: {exc}") from exc
        return self.get(dungeon.id)

    def update(self, dungeon_id: str, dungeon: Dungeon) -> Dungeon:
        try:
            with self.engine.begin() as conn:
                position = conn.execute(
                    select(dungeons_table.c.position).where(
                        dungeons_table.c.id == dungeon_id
                    )
                ).scalar_one_or_none()
                if position is None:
                    raise DungeonNotFoundError(dungeon_id)
                self._delete_rows(conn, dungeon_id)
                self._insert_dungeon(conn, dungeon, position=position)
        except SQLAlchemyError as exc:
            logger.exception("Failed to update dungeon %s", dungeon_id)
            raise StorageError(f"Failed to update dungeon: {exc}") from exc
        return self.get(dungeon.id)

    def delete(self, dungeon_id: str) -> None:
        try:
            with self.engine.begin() as conn:
                if not self._exists(conn, dungeon_id):
                    raise DungeonNotFoundError(dungeon_id)
                self._delete_rows(conn, dungeon_id)
        except SQLAlchemyError as exc:
            logger.exception("Failed to delete dungeon %s", dungeon_id)
            raise StorageError(f"Failed to delete dungeon: {exc}") from exc

    def _exists(self, conn: Connection, dungeon_id: str) -> bool:
        found = conn.execute(
            select(dungeons_table.c.id).where(dungeons_table.c.id == dungeon_id)
        ).first()
        return found is not None

    def _next_position(self, conn: Connection) -> int:
        positions = conn.execute(select(dungeons_table.c.position)).scalars().all()
        return max(positions, default=-1) + 1

    def _delete_rows(self, conn: Connection, dungeon_id: str) -> None:
        # Children are removed explicitly; SQLite ignores ON DELETE CASCADE
        # unless foreign keys are switched on per connection.
        for table in _CHILD_TABLES:
            conn.execute(delete(table).where(table.c.dungeon_id == dungeon_id))
        conn.execute(delete(dungeons_table).where(dungeons_table.c.id == dungeon_id))

    def _insert_dungeon(self, conn: Connection, dungeon: Dungeon, *, position: int) -> None:
        conn.execute(
            dungeons_table.insert().values(
                id=dungeon.id,
                position=position,
                name=dungeon.name,
                difficulty=dungeon.difficulty.value,
                level=dungeon.level,
                size_width=dungeon.size.width,
                size_height=dungeon.size.height,
                size_depth=dungeon.size.depth,
                description=dungeon.description,
                created_at=dungeon.created_at,
                updated_at=dungeon.updated_at,
            )
        )

        if dungeon.floors:
            for floor in dungeon.floors:
                conn.execute(
                    floors_table.insert().values(
                        dungeon_id=dungeon.id,
                        floor_number=floor.floor_number,
                        name=floor.name,
                        description=floor.description or None,
                    )
                )
                self._insert_rooms(conn, dungeon.id, floor.rooms, floor.floor_number)
        else:
            self._insert_rooms(conn, dungeon.id, dungeon.rooms, None)

    def _insert_rooms(
        self,
        conn: Connection,
        dungeon_id: str,
        rooms: Sequence[Room],
        floor_number: int | None,
    ) -> None:
        for room_position, room in enumerate(rooms):
            coordinates = room.coordinates
            result = conn.execute(
                rooms_table.insert().values(
                    dungeon_id=dungeon_id,
                    room_id=room.id,
                    floor_number=floor_number,
                    position=room_position,
                    type=room.type.value,
                    coord_x=coordinates.x if coordinates else None,
                    coord_y=coordinates.y if coordinates else None,
                    coord_z=coordinates.z if coordinates else None,
                    description=room.description,
                    visited=room.visited,
                    cleared=room.cleared,
                )
            )
            room_pk = result.inserted_primary_key[0]
            self._insert_room_content(conn, dungeon_id, room_pk, room)

    def _insert_room_content(
        self, conn: Connection, dungeon_id: str, room_pk: int, room: Room
    ) -> None:
        # Child rows hang off the room row, not its id: room ids only need to
        # be unique within a floor.
        if room.connections:
            conn.execute(
                connections_table.insert(),
                [
                    {
                        "dungeon_id": dungeon_id,
                        "source_room_pk": room_pk,
                        "source_room_id": room.id,
                        "target_room_id": connection.target_room_id,
                        "position": index,
                        "direction": connection.direction.value,
                        "locked": connection.locked,
                        "hidden": connection.hidden,
                    }
                    for index, connection in enumerate(room.connections)
                ],
            )

        if room.monsters:
            conn.execute(
                monsters_table.insert(),
                [
                    {
                        "dungeon_id": dungeon_id,
                        "room_pk": room_pk,
                        "room_id": room.id,
                        "monster_id": monster.id,
                        "position": index,
                        "name": monster.name,
                        "type": monster.type,
                        "level": monster.level,
                        "health": monster.stats.health if monster.stats else None,
                        "attack": monster.stats.attack if monster.stats else None,
                        "defense": monster.stats.defense if monster.stats else None,
                        "speed": monster.stats.speed if monster.stats else None,
                        "description": monster.description,
                        "loot": list(monster.loot),
                    }
                    for index, monster in enumerate(room.monsters)
                ],
            )

        if room.puzzle is not None:
            conn.execute(
                puzzles_table.insert().values(
                    dungeon_id=dungeon_id,
                    room_pk=room_pk,
                    room_id=room.id,
                    puzzle_id=room.puzzle.id,
                    type=room.puzzle.type,
                    difficulty=room.puzzle.difficulty.value,
                    description=room.puzzle.description,
                    solution=room.puzzle.solution,
                    reward=room.puzzle.reward,
                )
            )

        if room.story is not None:
            conn.execute(
                story_events_table.insert().values(
                    dungeon_id=dungeon_id,
                    room_pk=room_pk,
                    room_id=room.id,
                    story_id=room.story.id,
                    title=room.story.title,
                    description=room.story.description,
                    choices=list(room.story.choices),
                    consequences=list(room.story.consequences),
                )
            )

        if room.lore:
            conn.execute(
                lore_table.insert(),
                [
                    {
                        "dungeon_id": dungeon_id,
                        "room_pk": room_pk,
                        "room_id": room.id,
                        "lore_id": entry.id,
                        "position": index,
                        "title": entry.title,
                        "content": entry.content,
                        "discovered": entry.discovered,
                    }
                    for index, entry in enumerate(room.lore)
                ],
            )

        if room.secrets:
            conn.execute(
                secrets_table.insert(),
                [
                    {
                        "dungeon_id": dungeon_id,
                        "room_pk": room_pk,
                        "room_id": room.id,
                        "secret_id": secret.id,
                        "position": index,
                        "type": secret.type.value,
                        "description": secret.description,
                        "discovery_method": secret.discovery_method,
                        "reward": secret.reward,
                    }
                    for index, secret in enumerate(room.secrets)
                ],
            )

    def _build_dungeon(self, conn: Connection, row: Mapping[str, Any]) -> Dungeon:
        dungeon_id = row["id"]
        rooms = self._load_rooms(conn, dungeon_id)
        floor_rows = conn.execute(
            select(floors_table)
            .where(floors_table.c.dungeon_id == dungeon_id)
            .order_by(floors_table.c.floor_number)
        ).mappings().all()

        floors = tuple(
            DungeonFloor(
                floor_number=floor_row["floor_number"],
                name=floor_row["name"],
                description=floor_row["description"] or "",
                rooms=tuple(
                    room
                    for floor_number, room in rooms
                    if floor_number == floor_row["floor_number"]
                ),
            )
            for floor_row in floor_rows
        )

        return Dungeon(
            id=dungeon_id,
            name=row["name"],
            difficulty=Difficulty(row["difficulty"]),
            level=row["level"],
            size=DungeonSize(
                width=row["size_width"],
                height=row["size_height"],
                depth=row["size_depth"],
            ),
            description=row["description"],
            rooms=() if floors else tuple(room for _, room in rooms),
            floors=floors,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _load_rooms(
        self, conn: Connection, dungeon_id: str
    ) -> list[tuple[int | None, Room]]:
        def _rows(table: Table, *order: Any) -> list[Mapping[str, Any]]:
            return list(
                conn.execute(
                    select(table).where(table.c.dungeon_id == dungeon_id).order_by(*order)
                ).mappings()
            )

        connections: dict[int, list[RoomConnection]] = {}
        for row in _rows(connections_table, connections_table.c.position):
            connections.setdefault(row["source_room_pk"], []).append(
                RoomConnection(
                    direction=Direction(row["direction"]),
                    target_room_id=row["target_room_id"],
                    locked=bool(row["locked"]),
                    hidden=bool(row["hidden"]),
                )
            )

        monsters: dict[int, list[Monster]] = {}
        for row in _rows(monsters_table, monsters_table.c.position):
            stats = None
            if row["health"] is not None:
                stats = MonsterStats(
                    health=row["health"],
                    attack=row["attack"] or 0,
                    defense=row["defense"] or 0,
                    speed=row["speed"] or 0,
                )
            monsters.setdefault(row["room_pk"], []).append(
                Monster(
                    id=row["monster_id"],
                    name=row["name"],
                    type=row["type"],
                    level=row["level"],
                    stats=stats,
                    description=row["description"],
                    loot=tuple(row["loot"] or ()),
                )
            )

        puzzles = {
            row["room_pk"]: Puzzle(
                id=row["puzzle_id"],
                type=row["type"],
                difficulty=Difficulty(row["difficulty"]),
                description=row["description"],
                solution=row["solution"],
                reward=row["reward"],
            )
            for row in _rows(puzzles_table, puzzles_table.c.pk)
        }

        stories = {
            row["room_pk"]: StoryEvent(
                id=row["story_id"],
                title=row["title"],
                description=row["description"],
                choices=tuple(row["choices"] or ()),
                consequences=tuple(row["consequences"] or ()),
            )
            for row in _rows(story_events_table, story_events_table.c.pk)
        }

        lore: dict[int, list[Lore]] = {}
        for row in _rows(lore_table, lore_table.c.position):
            lore.setdefault(row["room_pk"], []).append(
                Lore(
                    id=row["lore_id"],
                    title=row["title"],
                    content=row["content"],
                    discovered=bool(row["discovered"]),
                )
            )

        secrets: dict[int, list[Secret]] = {}
        for row in _rows(secrets_table, secrets_table.c.position):
            secrets.setdefault(row["room_pk"], []).append(
                Secret(
                    id=row["secret_id"],
                    type=SecretType(row["type"]),
                    description=row["description"],
                    discovery_method=row["discovery_method"],
                    reward=row["reward"],
                )
            )

        rooms: list[tuple[int | None, Room]] = []
        for row in _rows(rooms_table, rooms_table.c.floor_number, rooms_table.c.position):
            room_pk = row["pk"]
            coordinates = None
            if row["coord_x"] is not None:
                coordinates = Coordinates(
                    x=row["coord_x"], y=row["coord_y"], z=row["coord_z"]
                )
            rooms.append(
                (
                    row["floor_number"],
                    Room(
                        id=row["room_id"],
                        type=RoomType(row["type"]),
                        coordinates=coordinates,
                        description=row["description"],
                        connections=tuple(connections.get(room_pk, ())),
                        monsters=tuple(monsters.get(room_pk, ())),
                        puzzle=puzzles.get(room_pk),
                        story=stories.get(room_pk),
                        lore=tuple(lore.get(room_pk, ())),
                        secrets=tuple(secrets.get(room_pk, ())),
                        visited=bool(row["visited"]),
                        cleared=bool(row["cleared"]),
                    ),
                )
            )
        return rooms


__all__ = [
    "DungeonAlreadyExistsError",
    "DungeonNotFoundError",
    "DungeonStore",
    "FileDungeonStore",
    "InMemoryDungeonStore",
    "SqlDungeonStore",
    "StorageError",
    "metadata",
]
