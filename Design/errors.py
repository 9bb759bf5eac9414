"""Failure taxonomy for layout edits, persistence and blueprints."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class InvalidChunkPlacement(str, Enum):
    NOT_ADJACENT = "not_adjacent"
    OCCUPIED = "occupied"
    MISALIGNED = "misaligned"


class DoorPlacementError(str, Enum):
    OUT_OF_BOUNDS = "out_of_bounds"
    OVERLAPPING = "overlapping"
    UNKNOWN_SEGMENT = "unknown_segment"
    UNKNOWN_DOOR_TYPE = "unknown_door_type"


class PlacementError(str, Enum):
    OUTSIDE_FOOTPRINT = "outside_footprint"
    UNKNOWN_ITEM = "unknown_item"
    NOT_FOUND = "not_found"
    UNKNOWN_SEGMENT = "unknown_segment"
    OUT_OF_BOUNDS = "out_of_bounds"
    INVALID_WALL = "invalid_wall"


class PersistenceFailure(RuntimeError):
    """Raised when a layout cannot be loaded from or written to its store."""

    def __init__(self, namespace: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"Persistence failed for namespace '{namespace}': {message}")
        self.namespace = namespace
        self.cause = cause


class UnknownBlueprint(KeyError):
    """Raised when a blueprint id is not present in the repository."""

    def __init__(self, blueprint_id: str):
        super().__init__(blueprint_id)
        self.blueprint_id = blueprint_id

    def __str__(self) -> str:
        return f"Blueprint {self.blueprint_id} not found"
