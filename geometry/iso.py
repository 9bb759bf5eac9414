"""Isometric projection between tile space and screen space."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from Design.constants import TILE_HEIGHT_DEFAULT, TILE_WIDTH_DEFAULT
from geometry.kernel import RoomBounds

Point = Tuple[float, float]


def _half_sizes(tile_w: float, tile_h: float) -> Tuple[float, float]:
    if tile_w <= 0 or tile_h <= 0:
        raise ValueError(f"Tile size must be positive, got {tile_w}x{tile_h}")
    return tile_w / 2.0, tile_h / 2.0


def to_iso(x: float, y: float, tile_w: float = TILE_WIDTH_DEFAULT, tile_h: float = TILE_HEIGHT_DEFAULT) -> Point:
    """Project a tile-space point onto the screen."""
    hw, hh = _half_sizes(tile_w, tile_h)
    return (x - y) * hw, (x + y) * hh


def from_iso(sx: float, sy: float, tile_w: float = TILE_WIDTH_DEFAULT, tile_h: float = TILE_HEIGHT_DEFAULT) -> Point:
    """Inverse of :func:`to_iso`.

    With ``u = sx / hw`` and ``v = sy / hh`` the projection reads
    ``u = x - y`` and ``v = x + y``, so ``x = (v + u) / 2`` and
    ``y = (v - u) / 2``.
    """
    hw, hh = _half_sizes(tile_w, tile_h)
    u = sx / hw
    v = sy / hh
    return (v + u) / 2.0, (v - u) / 2.0


def tile_outline(x: int, y: int, tile_w: float = TILE_WIDTH_DEFAULT, tile_h: float = TILE_HEIGHT_DEFAULT) -> List[Point]:
    """Screen corners of one tile, clockwise from its back corner."""
    return [
        to_iso(x, y, tile_w, tile_h),
        to_iso(x + 1, y, tile_w, tile_h),
        to_iso(x + 1, y + 1, tile_w, tile_h),
        to_iso(x, y + 1, tile_w, tile_h),
    ]


def project_panel(
    points: Iterable[Sequence[float]],
    tile_w: float = TILE_WIDTH_DEFAULT,
    tile_h: float = TILE_HEIGHT_DEFAULT,
    unit_height: Optional[float] = None,
) -> List[Point]:
    """Project ``(x, y, z)`` wall panel corners; ``z`` lifts the point up the screen.

    ``unit_height`` converts ``z`` (tile units) to pixels and defaults to the
    tile height.
    """
    lift = tile_h if unit_height is None else unit_height
    out: List[Point] = []
    for x, y, z in points:
        sx, sy = to_iso(x, y, tile_w, tile_h)
        out.append((sx, sy - z * lift))
    return out


def back_corner(
    bounds: RoomBounds,
    tile_w: float = TILE_WIDTH_DEFAULT,
    tile_h: float = TILE_HEIGHT_DEFAULT,
) -> Tuple[Tuple[int, int], Tuple[int, int], Tuple[int, int]]:
    """Return ``(back, prev, next)`` corners of the bounding box.

    ``back`` is the corner drawn highest on screen; ``prev`` and ``next``
    are its neighbours walking the box corners clockwise.
    """
    corners = bounds.corners()
    screen_y = [to_iso(cx, cy, tile_w, tile_h)[1] for cx, cy in corners]
    idx = min(range(4), key=lambda i: (screen_y[i], i))
    return corners[idx], corners[(idx - 1) % 4], corners[(idx + 1) % 4]
