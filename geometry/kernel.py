from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from Design.constants import CHUNK_SIZE
from Design.records import Chunk, CatalogItem

Tile = Tuple[int, int]

_NEIGHBOUR_OFFSETS = ((-CHUNK_SIZE, 0), (CHUNK_SIZE, 0), (0, -CHUNK_SIZE), (0, CHUNK_SIZE))


@dataclass(frozen=True)
class RoomBounds:
    min_x: int
    max_x: int
    min_y: int
    max_y: int

    @property
    def width(self) -> int:
        return self.max_x - self.min_x

    @property
    def depth(self) -> int:
        return self.max_y - self.min_y

    def corners(self) -> List[Tile]:
        # clockwise in tile space starting at (min_x, min_y)
        return [
            (self.min_x, self.min_y),
            (self.max_x, self.min_y),
            (self.max_x, self.max_y),
            (self.min_x, self.max_y),
        ]

    def to_dict(self) -> dict:
        return {"minX": self.min_x, "maxX": self.max_x, "minY": self.min_y, "maxY": self.max_y}


def chunk_tiles(chunk: Chunk) -> List[Tile]:
    return [(chunk.cx + dx, chunk.cy + dy) for dx in range(CHUNK_SIZE) for dy in range(CHUNK_SIZE)]


def chunks_to_tiles(chunks: Iterable[Chunk]) -> Set[Tile]:
    """Union of the tiles covered by each chunk."""
    tiles: Set[Tile] = set()
    for chunk in chunks:
        tiles.update(chunk_tiles(chunk))
    return tiles


def chunk_bounds(chunks: Iterable[Chunk]) -> RoomBounds:
    chunks = list(chunks)
    if not chunks:
        return RoomBounds(0, CHUNK_SIZE, 0, CHUNK_SIZE)
    return RoomBounds(
        min(c.cx for c in chunks),
        max(c.cx for c in chunks) + CHUNK_SIZE,
        min(c.cy for c in chunks),
        max(c.cy for c in chunks) + CHUNK_SIZE,
    )


def chunks_share_edge(a: Chunk, b: Chunk) -> bool:
    dx = abs(a.cx - b.cx)
    dy = abs(a.cy - b.cy)
    return (dx == CHUNK_SIZE and dy == 0) or (dx == 0 and dy == CHUNK_SIZE)


def expandable_chunks(chunks: Iterable[Chunk]) -> List[Chunk]:
    """Chunks not yet present that share a side with the footprint.

    Order follows the existing chunks, then left/right/up/down, so the
    frontier is stable between calls.
    """
    chunks = list(chunks)
    existing = {(c.cx, c.cy) for c in chunks}
    seen: Set[Tile] = set()
    out: List[Chunk] = []
    for chunk in chunks:
        for dx, dy in _NEIGHBOUR_OFFSETS:
            key = (chunk.cx + dx, chunk.cy + dy)
            if key in existing or key in seen:
                continue
            seen.add(key)
            out.append(Chunk(cx=key[0], cy=key[1]))
    return out


def can_expand(chunks: Iterable[Chunk], chunk: Chunk) -> bool:
    chunks = list(chunks)
    if not chunks:
        return True
    if chunk in chunks:
        return False
    return any(chunks_share_edge(c, chunk) for c in chunks)


def footprint(x: int, y: int, item: Optional[CatalogItem] = None, rotation: int = 0) -> List[Tile]:
    """Tiles covered by a furniture item anchored at ``(x, y)``.

    Odd rotations swap width and depth. Without a catalog entry the item
    covers its anchor tile only.
    """
    w, d = item.size if item is not None else (1, 1)
    if rotation % 2 == 1:
        w, d = d, w
    return [(x + dx, y + dy) for dx in range(w) for dy in range(d)]


def is_placement_valid(tiles: Set[Tile], x: int, y: int, width: int, depth: int) -> bool:
    """True when the ``width`` x ``depth`` rectangle anchored at ``(x, y)`` lies on active tiles."""
    return all((x + dx, y + dy) in tiles for dx in range(width) for dy in range(depth))
