"""Pure reducer for layout edits.

``reduce(state, action)`` never mutates ``state``; it returns an
``EditResult`` holding either the next state or the reason the edit was
refused. Refusals are ordinary results, not exceptions, so callers can
give immediate feedback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from Design.catalog import resolve_door_type
from Design.errors import DoorPlacementError, InvalidChunkPlacement, PlacementError
from Design.records import (
    CatalogItem,
    Chunk,
    DoorCatalogEntry,
    DoorPlacement,
    LayoutState,
    Partition,
    Placement,
    WallPlacement,
)
from evaluation.validators import (
    check_door_placement,
    check_furniture_placement,
    check_wall_placement,
    prune_orphans,
)
from geometry.kernel import can_expand, chunks_to_tiles
from geometry.walls import PARTITION, WallSegment, layout_segments, segment_index, separates_tiles

log = logging.getLogger(__name__)

Catalog = Optional[Mapping[str, CatalogItem]]


@dataclass(frozen=True)
class AddChunk:
    chunk: Chunk


@dataclass(frozen=True)
class PlaceFurniture:
    furniture_id: str
    x: int
    y: int
    rotation: int = 0


@dataclass(frozen=True)
class RemoveFurniture:
    placement_id: str


@dataclass(frozen=True)
class PlaceDoor:
    segment_id: str
    position: float
    door_type: Union[str, DoorCatalogEntry]


@dataclass(frozen=True)
class RemoveDoor:
    door_id: str


@dataclass(frozen=True)
class PlaceWallItem:
    furniture_id: str
    segment_id: str
    grid_pos: int
    z: float = 0.0


@dataclass(frozen=True)
class RemoveWallItem:
    item_id: str


@dataclass(frozen=True)
class AddPartition:
    start: Tuple[int, int]
    end: Tuple[int, int]


@dataclass(frozen=True)
class RemovePartition:
    partition_id: str


@dataclass(frozen=True)
class LoadState:
    state: LayoutState
    label: str = "Load layout"


@dataclass(frozen=True)
class EditResult:
    ok: bool
    state: LayoutState
    error: Optional[Enum] = None
    record: Optional[Any] = None
    label: str = ""

    def __bool__(self) -> bool:
        return self.ok


def _accept(state: LayoutState, label: str, record: Any = None) -> EditResult:
    return EditResult(True, state, record=record, label=label)


def _reject(state: LayoutState, error: Enum, label: str) -> EditResult:
    log.debug("%s rejected: %s", label, error.value)
    return EditResult(False, state, error=error, label=label)


def _segments(state: LayoutState) -> Dict[str, WallSegment]:
    return segment_index(layout_segments(chunks_to_tiles(state.chunks), state.partitions))


def _settle(state: LayoutState, catalog: Catalog) -> LayoutState:
    """Re-derive geometry after a structural change and drop dangling references."""
    tiles = chunks_to_tiles(state.chunks)
    return prune_orphans(state, tiles, layout_segments(tiles, state.partitions), catalog)


def _add_chunk(state: LayoutState, action: AddChunk, catalog: Catalog) -> EditResult:
    label = "Add chunk"
    chunk = action.chunk
    if chunk in state.chunks:
        return _reject(state, InvalidChunkPlacement.OCCUPIED, label)
    if not can_expand(state.chunks, chunk):
        return _reject(state, InvalidChunkPlacement.NOT_ADJACENT, label)
    nxt = state.model_copy(update={"chunks": state.chunks + (chunk,)})
    return _accept(_settle(nxt, catalog), label, chunk)


def _place_furniture(state: LayoutState, action: PlaceFurniture, catalog: Catalog) -> EditResult:
    label = "Place furniture"
    tiles = chunks_to_tiles(state.chunks)
    reason = check_furniture_placement(tiles, action.furniture_id, action.x, action.y, action.rotation, catalog)
    if reason is not None:
        return _reject(state, reason, label)
    placement = Placement(furnitureId=action.furniture_id, x=action.x, y=action.y, rotation=action.rotation % 4)
    return _accept(state.model_copy(update={"placements": state.placements + (placement,)}), label, placement)


def _remove_furniture(state: LayoutState, action: RemoveFurniture, catalog: Catalog) -> EditResult:
    label = "Remove furniture"
    kept = tuple(p for p in state.placements if p.id != action.placement_id)
    if len(kept) == len(state.placements):
        return _reject(state, PlacementError.NOT_FOUND, label)
    return _accept(state.model_copy(update={"placements": kept}), label)


def _place_door(state: LayoutState, action: PlaceDoor, catalog: Catalog) -> EditResult:
    label = "Place door"
    segment = _segments(state).get(action.segment_id)
    if segment is None:
        return _reject(state, DoorPlacementError.UNKNOWN_SEGMENT, label)
    door_type = resolve_door_type(action.door_type)
    if door_type is None:
        return _reject(state, DoorPlacementError.UNKNOWN_DOOR_TYPE, label)
    reason = check_door_placement(segment, state.doors, action.position, door_type.width)
    if reason is not None:
        return _reject(state, reason, label)
    door = DoorPlacement(
        segmentId=segment.id,
        position=action.position,
        doorType=door_type.id,
        width=door_type.width,
    )
    return _accept(state.model_copy(update={"doors": state.doors + (door,)}), label, door)


def _remove_door(state: LayoutState, action: RemoveDoor, catalog: Catalog) -> EditResult:
    label = "Remove door"
    kept = tuple(d for d in state.doors if d.id != action.door_id)
    if len(kept) == len(state.doors):
        return _reject(state, PlacementError.NOT_FOUND, label)
    return _accept(state.model_copy(update={"doors": kept}), label)


def _place_wall_item(state: LayoutState, action: PlaceWallItem, catalog: Catalog) -> EditResult:
    label = "Place wall item"
    if catalog is not None and action.furniture_id not in catalog:
        return _reject(state, PlacementError.UNKNOWN_ITEM, label)
    reason = check_wall_placement(_segments(state).get(action.segment_id), action.grid_pos, action.z)
    if reason is not None:
        return _reject(state, reason, label)
    item = WallPlacement(
        furnitureId=action.furniture_id,
        segmentId=action.segment_id,
        gridPos=action.grid_pos,
        z=action.z,
    )
    return _accept(state.model_copy(update={"wallPlacements": state.wallPlacements + (item,)}), label, item)


def _remove_wall_item(state: LayoutState, action: RemoveWallItem, catalog: Catalog) -> EditResult:
    label = "Remove wall item"
    kept = tuple(wp for wp in state.wallPlacements if wp.id != action.item_id)
    if len(kept) == len(state.wallPlacements):
        return _reject(state, PlacementError.NOT_FOUND, label)
    return _accept(state.model_copy(update={"wallPlacements": kept}), label)


def _add_partition(state: LayoutState, action: AddPartition, catalog: Catalog) -> EditResult:
    label = "Add partition"
    (x1, y1), (x2, y2) = action.start, action.end
    if (x1 != x2 and y1 != y2) or (x1, y1) == (x2, y2):
        return _reject(state, PlacementError.INVALID_WALL, label)
    partition = Partition(start=action.start, end=action.end)
    segment = WallSegment(partition.id, PARTITION, tuple(partition.start), tuple(partition.end))
    if not separates_tiles(segment, chunks_to_tiles(state.chunks)):
        return _reject(state, PlacementError.INVALID_WALL, label)
    nxt = state.model_copy(update={"partitions": state.partitions + (partition,)})
    return _accept(_settle(nxt, catalog), label, partition)


def _remove_partition(state: LayoutState, action: RemovePartition, catalog: Catalog) -> EditResult:
    label = "Remove partition"
    kept = tuple(p for p in state.partitions if p.id != action.partition_id)
    if len(kept) == len(state.partitions):
        return _reject(state, PlacementError.NOT_FOUND, label)
    return _accept(_settle(state.model_copy(update={"partitions": kept}), catalog), label)


def _load_state(state: LayoutState, action: LoadState, catalog: Catalog) -> EditResult:
    return _accept(_settle(action.state, catalog), action.label)


_HANDLERS: Dict[type, Callable[[LayoutState, Any, Catalog], EditResult]] = {
    AddChunk: _add_chunk,
    PlaceFurniture: _place_furniture,
    RemoveFurniture: _remove_furniture,
    PlaceDoor: _place_door,
    RemoveDoor: _remove_door,
    PlaceWallItem: _place_wall_item,
    RemoveWallItem: _remove_wall_item,
    AddPartition: _add_partition,
    RemovePartition: _remove_partition,
    LoadState: _load_state,
}


def reduce(state: LayoutState, action: Any, catalog: Catalog = None) -> EditResult:
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unsupported layout action {type(action).__name__}")
    return handler(state, action, catalog)
