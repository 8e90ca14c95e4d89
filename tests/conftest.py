"""Test configuration for the dungeon crawler project."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import copy
from typing import Any

import pytest

from dungeoncrawler import Dungeon


def _sample_dungeon_payload() -> dict[str, Any]:
    return {
        "id": "crypt",
        "name": "Forgotten Crypt",
        "difficulty": "Medium",
        "level": 3,
        "size": {"width": 5, "height": 5},
        "description": "A damp crypt beneath the chapel.",
        "rooms": [
            {
                "id": "gate",
                "type": "entrance",
                "coordinates": {"x": 0, "y": 0},
                "description": "A rusted gate.",
                "connections": [{"direction": "east", "targetRoomId": "hall"}],
            },
            {
                "id": "hall",
                "type": "combat",
                "coordinates": {"x": 1, "y": 0},
                "description": "A hall of bones.",
                "connections": [
                    {"direction": "west", "targetRoomId": "gate"},
                    {"direction": "south", "targetRoomId": "tomb"},
                ],
                "monsters": [
                    {
                        "id": "skeleton",
                        "name": "Skeleton",
                        "type": "undead",
                        "level": 3,
                        "stats": {"health": 12, "attack": 4, "defense": 2, "speed": 3},
                        "loot": ["5 gold"],
                    }
                ],
            },
            {
                "id": "tomb",
                "type": "boss",
                "coordinates": {"x": 1, "y": 1},
                "description": "The lich's tomb.",
                "connections": [{"direction": "north", "targetRoomId": "hall"}],
                "monsters": [
                    {
                        "id": "lich",
                        "name": "Lich",
                        "type": "undead",
                        "level": 5,
                        "stats": {"health": 40, "attack": 9, "defense": 5, "speed": 2},
                    }
                ],
                "puzzle": {
                    "id": "seal",
                    "type": "riddle",
                    "difficulty": "Hard",
                    "description": "Speak the name of the dead king.",
                    "solution": "Aldric",
                    "reward": "50 gold",
                },
                "lore": [
                    {"id": "epitaph", "title": "Epitaph", "content": "Here lies Aldric."}
                ],
                "secrets": [
                    {
                        "id": "niche",
                        "type": "treasure",
                        "description": "A loose brick.",
                        "discoveryMethod": "search",
                    }
                ],
            },
        ],
    }


def _legacy_payload() -> dict[str, Any]:
    return {
        "dungeons": [
            {
                "level": 3,
                "size": 8,
                "rooms": [
                    {
                        "id": 1,
                        "type": "entrance",
                        "x": 0,
                        "y": 0,
                        "connections": ["south"],
                    },
                    {
                        "id": 2,
                        "type": "boss",
                        "x": 0,
                        "y": 1,
                        "connections": ["north"],
                    },
                ],
            }
        ]
    }


@pytest.fixture()
def dungeon_payload() -> dict[str, Any]:
    """Return a fresh copy of a valid flat dungeon document."""

    return copy.deepcopy(_sample_dungeon_payload())


@pytest.fixture()
def sample_dungeon(dungeon_payload: dict[str, Any]) -> Dungeon:
    return Dungeon.from_payload(dungeon_payload)


@pytest.fixture()
def legacy_payload() -> dict[str, Any]:
    """Return the two-room legacy document used across importer tests."""

    return copy.deepcopy(_legacy_payload())
