"""Reachability of a designed room.

Tiles are nodes; two grid-adjacent active tiles are joined unless a wall
segment lies on their shared edge and no door on that segment covers the
edge.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set, Tuple

from Design.records import DoorPlacement
from geometry.kernel import Tile
from geometry.walls import WallSegment

# A unit edge on a grid line: ("v", x, y) is the edge x=const from y to y+1,
# ("h", x, y) is the edge y=const from x to x+1.
UnitEdge = Tuple[str, int, int]


@dataclass
class ConnectivityGraph:
    components: List[List[Tile]] = field(default_factory=list)
    is_fully_connected: bool = True

    def to_dict(self) -> dict:
        return {
            "components": [[list(t) for t in comp] for comp in self.components],
            "isFullyConnected": self.is_fully_connected,
        }


def _unit_edge(segment: WallSegment, k: int) -> UnitEdge:
    x, y = segment.start
    if segment.direction == "vertical":
        return ("v", x, y + k)
    return ("h", x + k, y)


def blocked_edges(segments: Iterable[WallSegment], doors: Iterable[DoorPlacement]) -> Set[UnitEdge]:
    """Unit edges covered by a wall and not opened by a door."""
    by_id: Dict[str, WallSegment] = {}
    walls: Set[UnitEdge] = set()
    for seg in segments:
        by_id[seg.id] = seg
        for k in range(seg.length):
            walls.add(_unit_edge(seg, k))
    opened: Set[UnitEdge] = set()
    for door in doors:
        seg = by_id.get(door.segmentId)
        if seg is None or not (math.isfinite(door.position) and math.isfinite(door.end)):
            continue
        # a door opens every unit edge its span overlaps
        first = max(0, int(math.floor(door.position)))
        last = min(seg.length, int(math.ceil(door.end)))
        for k in range(first, last):
            opened.add(_unit_edge(seg, k))
    return walls - opened


def build_connectivity_graph(
    tiles: Iterable[Tile],
    segments: Iterable[WallSegment],
    doors: Iterable[DoorPlacement],
) -> ConnectivityGraph:
    """Connected components of the active tiles.

    Traversal starts from the lowest unvisited tile so the result is
    deterministic for a given input.
    """
    tiles = set(tiles)
    if len(tiles) <= 1:
        return ConnectivityGraph([sorted(tiles)] if tiles else [], True)

    blocked = blocked_edges(segments, doors)

    def neighbours(tile: Tile):
        x, y = tile
        if (x + 1, y) in tiles and ("v", x + 1, y) not in blocked:
            yield (x + 1, y)
        if (x - 1, y) in tiles and ("v", x, y) not in blocked:
            yield (x - 1, y)
        if (x, y + 1) in tiles and ("h", x, y + 1) not in blocked:
            yield (x, y + 1)
        if (x, y - 1) in tiles and ("h", x, y) not in blocked:
            yield (x, y - 1)

    visited: Set[Tile] = set()
    components: List[List[Tile]] = []
    for start in sorted(tiles):
        if start in visited:
            continue
        visited.add(start)
        queue = deque([start])
        comp: List[Tile] = []
        while queue:
            node = queue.popleft()
            comp.append(node)
            for nbr in neighbours(node):
                if nbr not in visited:
                    visited.add(nbr)
                    queue.append(nbr)
        components.append(sorted(comp))
    return ConnectivityGraph(components, len(components) == 1)
