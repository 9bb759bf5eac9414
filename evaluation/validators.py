"""Checks for editable room layouts.

The ``check_*_placement`` helpers answer a single yes/no question for an
edit about to be applied and return the failure reason (or ``None``).
The ``check_*`` functions that take a whole state return human readable
strings describing every issue found, and :func:`prune_orphans` repairs
the references a footprint change can break.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Mapping, Optional, Set

from Design.errors import DoorPlacementError, PlacementError
from Design.records import CatalogItem, Chunk, DoorPlacement, LayoutState, lookup_catalog
from evaluation.connectivity import ConnectivityGraph, build_connectivity_graph
from geometry.kernel import Tile, chunks_share_edge, chunks_to_tiles, footprint
from geometry.walls import WallSegment, layout_segments, segment_index

log = logging.getLogger(__name__)


def _spans_overlap(a_start: float, a_end: float, b_start: float, b_end: float) -> bool:
    return a_start < b_end and b_start < a_end


def check_door_placement(
    segment: Optional[WallSegment],
    doors: Iterable[DoorPlacement],
    position: float,
    width: float,
    ignore_id: Optional[str] = None,
) -> Optional[DoorPlacementError]:
    """Return why a door span cannot go on ``segment``, or ``None`` if it fits."""
    if segment is None:
        return DoorPlacementError.UNKNOWN_SEGMENT
    if not (math.isfinite(position) and math.isfinite(width)):
        return DoorPlacementError.OUT_OF_BOUNDS
    if position < 0 or width <= 0 or position + width > segment.length:
        return DoorPlacementError.OUT_OF_BOUNDS
    for door in doors:
        if door.segmentId != segment.id or door.id == ignore_id:
            continue
        if _spans_overlap(position, position + width, door.position, door.end):
            return DoorPlacementError.OVERLAPPING
    return None


def check_wall_placement(
    segment: Optional[WallSegment], grid_pos: int, z: float = 0.0
) -> Optional[PlacementError]:
    if segment is None:
        return PlacementError.UNKNOWN_SEGMENT
    if grid_pos < 0 or grid_pos >= segment.length or not math.isfinite(z):
        return PlacementError.OUT_OF_BOUNDS
    return None


def check_furniture_placement(
    tiles: Set[Tile],
    furniture_id: str,
    x: int,
    y: int,
    rotation: int = 0,
    catalog: Optional[Mapping[str, CatalogItem]] = None,
) -> Optional[PlacementError]:
    item = lookup_catalog(catalog, furniture_id)
    if catalog is not None and item is None:
        return PlacementError.UNKNOWN_ITEM
    if not all(t in tiles for t in footprint(x, y, item, rotation)):
        return PlacementError.OUTSIDE_FOOTPRINT
    return None


def check_chunks(chunks: List[Chunk]) -> List[str]:
    """Verify the chunk footprint is one edge-connected region without duplicates."""
    issues: List[str] = []
    seen: Set[Chunk] = set()
    for chunk in chunks:
        if chunk in seen:
            issues.append(f"Chunk ({chunk.cx}, {chunk.cy}) appears more than once")
        seen.add(chunk)
    unique = list(dict.fromkeys(chunks))
    if len(unique) <= 1:
        return issues

    graph: Dict[int, Set[int]] = {i: set() for i in range(len(unique))}
    for i, a in enumerate(unique):
        for j in range(i + 1, len(unique)):
            if chunks_share_edge(a, unique[j]):
                graph[i].add(j)
                graph[j].add(i)
    visited = {0}
    stack = [0]
    while stack:
        node = stack.pop()
        for nbr in graph[node]:
            if nbr not in visited:
                visited.add(nbr)
                stack.append(nbr)
    for i, chunk in enumerate(unique):
        if i not in visited:
            issues.append(f"Chunk ({chunk.cx}, {chunk.cy}) is not attached to the rest of the floor")
    return issues


def check_doors(doors: Iterable[DoorPlacement], segments: Iterable[WallSegment]) -> List[str]:
    index = segment_index(segments)
    issues: List[str] = []
    checked: List[DoorPlacement] = []
    for door in doors:
        reason = check_door_placement(index.get(door.segmentId), checked, door.position, door.width)
        if reason is DoorPlacementError.UNKNOWN_SEGMENT:
            issues.append(f"Door {door.id} references missing wall {door.segmentId}")
        elif reason is DoorPlacementError.OUT_OF_BOUNDS:
            issues.append(
                f"Door {door.id} at {door.position} (width {door.width}) does not fit on wall {door.segmentId}"
            )
        elif reason is DoorPlacementError.OVERLAPPING:
            issues.append(f"Door {door.id} overlaps another door on wall {door.segmentId}")
        checked.append(door)
    return issues


def check_placements(
    state: LayoutState,
    tiles: Set[Tile],
    segments: Iterable[WallSegment],
    catalog: Optional[Mapping[str, CatalogItem]] = None,
) -> List[str]:
    issues: List[str] = []
    for p in state.placements:
        reason = check_furniture_placement(tiles, p.furnitureId, p.x, p.y, p.rotation, catalog)
        if reason is PlacementError.UNKNOWN_ITEM:
            issues.append(f"Furniture {p.id} uses unknown item {p.furnitureId}")
        elif reason is PlacementError.OUTSIDE_FOOTPRINT:
            issues.append(f"Furniture {p.furnitureId} at ({p.x}, {p.y}) extends outside the floor")
    index = segment_index(segments)
    for wp in state.wallPlacements:
        if check_wall_placement(index.get(wp.segmentId), wp.gridPos, wp.z) is not None:
            issues.append(f"Wall item {wp.furnitureId} at {wp.segmentId}:{wp.gridPos} has no wall to hang on")
    return issues


def check_connectivity(graph: ConnectivityGraph) -> List[str]:
    if graph.is_fully_connected:
        return []
    sizes = ", ".join(str(len(c)) for c in graph.components)
    return [f"Room is split into {len(graph.components)} unreachable regions (tiles per region: {sizes})"]


def prune_orphans(
    state: LayoutState,
    tiles: Set[Tile],
    segments: Iterable[WallSegment],
    catalog: Optional[Mapping[str, CatalogItem]] = None,
) -> LayoutState:
    """Drop doors, wall décor and furniture a footprint change left dangling."""
    index = segment_index(segments)
    doors: List[DoorPlacement] = []
    for door in state.doors:
        if check_door_placement(index.get(door.segmentId), doors, door.position, door.width) is None:
            doors.append(door)
    wall_items = [
        wp for wp in state.wallPlacements
        if check_wall_placement(index.get(wp.segmentId), wp.gridPos, wp.z) is None
    ]
    placements = [
        p for p in state.placements
        if check_furniture_placement(tiles, p.furnitureId, p.x, p.y, p.rotation, catalog) is None
    ]
    dropped = (
        len(state.doors) - len(doors)
        + len(state.wallPlacements) - len(wall_items)
        + len(state.placements) - len(placements)
    )
    if not dropped:
        return state
    log.info("Pruned %s orphaned placements after layout change", dropped)
    return state.model_copy(
        update={"doors": tuple(doors), "wallPlacements": tuple(wall_items), "placements": tuple(placements)}
    )


def validate_layout(
    state: LayoutState,
    catalog: Optional[Mapping[str, CatalogItem]] = None,
    require_connectivity: bool = True,
) -> List[str]:
    """Run all layout checks and return a list of issues."""
    tiles = chunks_to_tiles(state.chunks)
    segments = layout_segments(tiles, state.partitions)
    issues: List[str] = []
    issues.extend(check_chunks(list(state.chunks)))
    issues.extend(check_doors(state.doors, segments))
    issues.extend(check_placements(state, tiles, segments, catalog))
    if require_connectivity:
        graph = build_connectivity_graph(tiles, segments, state.doors)
        issues.extend(check_connectivity(graph))
    return issues
