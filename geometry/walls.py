"""Wall geometry derived from the floor footprint.

Walls live on tile grid lines. A segment is a maximal straight run of
exposed tile edges on one face of the footprint; doors are cut into
segments as ``[position, position + width)`` offsets from the segment
start.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from Design.constants import WALL_HEIGHT_DEFAULT
from Design.records import DoorPlacement, Partition
from geometry.iso import back_corner
from geometry.kernel import RoomBounds, Tile

LEFT_WALL = "left-wall"
RIGHT_WALL = "right-wall"
FRONT_LEFT = "front-left"
FRONT_RIGHT = "front-right"
PARTITION = "partition"


@dataclass(frozen=True)
class WallSegment:
    id: str
    side: str
    start: Tile
    end: Tile

    @property
    def direction(self) -> str:
        return "vertical" if self.start[0] == self.end[0] else "horizontal"

    @property
    def length(self) -> int:
        return abs(self.end[0] - self.start[0]) + abs(self.end[1] - self.start[1])

    def point_at(self, offset: float) -> Tuple[float, float]:
        """Tile-space point ``offset`` tiles from the segment start."""
        if self.length == 0:
            return float(self.start[0]), float(self.start[1])
        t = offset / self.length
        return (
            self.start[0] + (self.end[0] - self.start[0]) * t,
            self.start[1] + (self.end[1] - self.start[1]) * t,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "side": self.side,
            "start": list(self.start),
            "end": list(self.end),
            "length": self.length,
            "direction": self.direction,
        }


@dataclass(frozen=True)
class SubSpan:
    start: float
    end: float
    is_door: bool = False
    door_id: Optional[str] = None

    @property
    def length(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end, "isDoor": self.is_door, "doorId": self.door_id}


def primary_wall_segments(bounds: RoomBounds) -> List[WallSegment]:
    """The two back walls of the bounding box, meeting at its back corner."""
    back, prev, nxt = back_corner(bounds)
    return [
        WallSegment(f"left-{back[0]}-{back[1]}", LEFT_WALL, back, prev),
        WallSegment(f"right-{back[0]}-{back[1]}", RIGHT_WALL, back, nxt),
    ]


def _runs(edges: Dict[int, List[int]]) -> List[Tuple[int, int, int]]:
    """Group unit offsets per grid line into ``(line, first, count)`` runs."""
    out: List[Tuple[int, int, int]] = []
    for line in sorted(edges):
        offsets = sorted(edges[line])
        first = prev = offsets[0]
        for off in offsets[1:]:
            if off != prev + 1:
                out.append((line, first, prev - first + 1))
                first = off
            prev = off
        out.append((line, first, prev - first + 1))
    return out


def derive_wall_segments(tiles: Set[Tile], include_front: bool = False) -> List[WallSegment]:
    """Trace the footprint perimeter into straight wall segments.

    Back faces (``left-wall`` on the low-x side, ``right-wall`` on the
    low-y side) are always traced; the two front faces only when
    ``include_front`` is set since the editor leaves them open.
    """
    left: Dict[int, List[int]] = {}
    right: Dict[int, List[int]] = {}
    front_left: Dict[int, List[int]] = {}
    front_right: Dict[int, List[int]] = {}
    for x, y in tiles:
        if (x - 1, y) not in tiles:
            left.setdefault(x, []).append(y)
        if (x, y - 1) not in tiles:
            right.setdefault(y, []).append(x)
        if include_front:
            if (x, y + 1) not in tiles:
                front_left.setdefault(y + 1, []).append(x)
            if (x + 1, y) not in tiles:
                front_right.setdefault(x + 1, []).append(y)

    segments: List[WallSegment] = []
    for x, y0, n in _runs(left):
        segments.append(WallSegment(f"left-{x}-{y0}", LEFT_WALL, (x, y0), (x, y0 + n)))
    for y, x0, n in _runs(right):
        segments.append(WallSegment(f"right-{x0}-{y}", RIGHT_WALL, (x0, y), (x0 + n, y)))
    for y, x0, n in _runs(front_left):
        segments.append(WallSegment(f"front-left-{x0}-{y}", FRONT_LEFT, (x0, y), (x0 + n, y)))
    for x, y0, n in _runs(front_right):
        segments.append(WallSegment(f"front-right-{x}-{y0}", FRONT_RIGHT, (x, y0), (x, y0 + n)))
    return segments


def partition_segments(partitions: Iterable[Partition]) -> List[WallSegment]:
    return [WallSegment(p.id, PARTITION, tuple(p.start), tuple(p.end)) for p in partitions]


def segment_index(segments: Iterable[WallSegment]) -> Dict[str, WallSegment]:
    return {s.id: s for s in segments}


def split_segment_for_doors(
    segment: WallSegment,
    doors: Iterable[DoorPlacement],
    include_gaps: bool = False,
) -> List[SubSpan]:
    """Split a segment into drawable wall spans around its door gaps.

    Doors belonging to other segments are ignored. Doors that overlap or
    stick out of the segment are clipped rather than rejected.
    """
    length = segment.length
    if length <= 0:
        return []
    own = sorted((d for d in doors if d.segmentId == segment.id), key=lambda d: (d.position, d.id))
    spans: List[SubSpan] = []
    cursor = 0.0
    for door in own:
        start = min(max(door.position, cursor), length)
        end = min(door.end, length)
        if end <= start:
            continue
        if start > cursor:
            spans.append(SubSpan(cursor, start))
        if include_gaps:
            spans.append(SubSpan(start, end, True, door.id))
        cursor = end
    if cursor < length:
        spans.append(SubSpan(cursor, float(length)))
    return spans


def wall_segment_path(
    segment: WallSegment, span: SubSpan, wall_height: float = WALL_HEIGHT_DEFAULT
) -> List[Tuple[float, float, float]]:
    """Corners of the vertical panel standing on ``span``.

    Order: floor start, floor end, top end, top start.
    """
    x1, y1 = segment.point_at(span.start)
    x2, y2 = segment.point_at(span.end)
    return [
        (x1, y1, 0.0),
        (x2, y2, 0.0),
        (x2, y2, float(wall_height)),
        (x1, y1, float(wall_height)),
    ]


def layout_segments(tiles: Set[Tile], partitions: Iterable[Partition] = ()) -> List[WallSegment]:
    """Every wall a door may be cut into: traced back walls plus partitions."""
    return derive_wall_segments(tiles) + partition_segments(partitions)


def separates_tiles(segment: WallSegment, tiles: Set[Tile]) -> bool:
    """True when at least one unit edge of ``segment`` lies between two active tiles."""
    x, y = segment.start
    for k in range(segment.length):
        if segment.direction == "vertical":
            pair = ((x - 1, y + k), (x, y + k))
        else:
            pair = ((x + k, y - 1), (x + k, y))
        if pair[0] in tiles and pair[1] in tiles:
            return True
    return False
