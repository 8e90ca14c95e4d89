"""FastAPI application exposing dungeon management endpoints."""

from .app import create_app
from .settings import DungeonApiSettings

__all__ = ["create_app", "DungeonApiSettings"]
