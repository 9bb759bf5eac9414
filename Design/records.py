"""Validated record types for layouts, doors, furniture and blueprints.

Field names follow the persisted camelCase wire format so that a dumped
``LayoutState`` can be written straight to storage and read back.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from Design.constants import CHUNK_SIZE

log = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Chunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    cx: int
    cy: int

    @field_validator("cx", "cy")
    @classmethod
    def _aligned(cls, value: int) -> int:
        if value % CHUNK_SIZE != 0:
            raise ValueError(f"Chunk anchors must be multiples of {CHUNK_SIZE}")
        return value


class Placement(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    furnitureId: str = Field(min_length=1)
    x: int
    y: int
    rotation: int = Field(default=0, ge=0, le=3)


class WallPlacement(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    id: str = Field(default_factory=new_id)
    furnitureId: str = Field(min_length=1)
    segmentId: str
    gridPos: int = Field(ge=0)
    z: float = 0.0


class DoorPlacement(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    id: str = Field(default_factory=new_id)
    segmentId: str
    position: float = Field(ge=0)
    doorType: str
    width: float = Field(gt=0)

    @property
    def end(self) -> float:
        return self.position + self.width


class Partition(BaseModel):
    """An interior wall drawn along tile grid lines."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    start: Tuple[int, int]
    end: Tuple[int, int]

    @model_validator(mode="before")
    @classmethod
    def _order_endpoints(cls, data: Any) -> Any:
        if isinstance(data, dict) and "start" in data and "end" in data:
            try:
                start, end = tuple(data["start"]), tuple(data["end"])
                swap = end < start
            except TypeError:
                return data
            if swap:
                data = {**data, "start": end, "end": start}
        return data

    @model_validator(mode="after")
    def _axis_aligned(self) -> "Partition":
        (x1, y1), (x2, y2) = self.start, self.end
        if x1 != x2 and y1 != y2:
            raise ValueError("Partitions must be horizontal or vertical")
        if (x1, y1) == (x2, y2):
            raise ValueError("Partitions must span at least one tile edge")
        return self


class DoorCatalogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    width: float = Field(gt=0)
    height: float = Field(default=3, gt=0)
    cost: int = Field(ge=0)
    color: str


class CatalogItem(BaseModel):
    """Furniture / wall décor lookup entry supplied by the shop catalog."""

    model_config = ConfigDict(frozen=True)

    id: str
    size: Tuple[int, int] = (1, 1)
    cost: int = Field(default=0, ge=0)

    @field_validator("size")
    @classmethod
    def _positive(cls, value: Tuple[int, int]) -> Tuple[int, int]:
        if value[0] < 1 or value[1] < 1:
            raise ValueError("Catalog item sizes must be at least 1x1")
        return value


_STATE_FIELDS = {
    "chunks": Chunk,
    "placements": Placement,
    "wallPlacements": WallPlacement,
    "doors": DoorPlacement,
    "partitions": Partition,
}


class LayoutState(BaseModel):
    """Immutable snapshot of one editable room layout."""

    model_config = ConfigDict(frozen=True)

    chunks: Tuple[Chunk, ...] = ()
    placements: Tuple[Placement, ...] = ()
    wallPlacements: Tuple[WallPlacement, ...] = ()
    doors: Tuple[DoorPlacement, ...] = ()
    partitions: Tuple[Partition, ...] = ()

    @classmethod
    def from_raw(cls, data: Any) -> "LayoutState":
        """Build a state from untrusted persisted data.

        Non-list fields become empty collections and records that fail
        validation are dropped with a warning instead of raising.
        """
        if not isinstance(data, dict):
            if data is not None:
                log.warning("Ignoring layout payload of type %s", type(data).__name__)
            return cls()
        fields: Dict[str, List[Any]] = {}
        for name, model in _STATE_FIELDS.items():
            raw = data.get(name)
            if not isinstance(raw, list):
                if raw is not None:
                    log.warning("Layout field %s is not a list; defaulting to empty", name)
                fields[name] = []
                continue
            items = []
            seen = set()
            for entry in raw:
                try:
                    item = model.model_validate(entry)
                except ValidationError as exc:
                    log.warning("Dropping malformed %s entry %r: %s", name, entry, exc.errors()[0]["msg"])
                    continue
                if name == "chunks":
                    if item in seen:
                        continue
                    seen.add(item)
                items.append(item)
            fields[name] = items
        return cls(**fields)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    @property
    def is_empty(self) -> bool:
        return not (self.chunks or self.placements or self.wallPlacements or self.doors or self.partitions)


class Blueprint(BaseModel):
    """A named, priced snapshot of a complete room layout."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    price: int = Field(default=0, ge=0)
    tags: Tuple[str, ...] = ()
    chunks: Tuple[Chunk, ...] = ()
    placements: Tuple[Placement, ...] = ()
    wallPlacements: Tuple[WallPlacement, ...] = ()
    doors: Tuple[DoorPlacement, ...] = ()
    partitions: Tuple[Partition, ...] = ()
    isPublished: bool = False
    createdAt: str = Field(default_factory=utc_now)
    updatedAt: str = Field(default_factory=utc_now)

    @field_validator("name")
    @classmethod
    def _named(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Blueprint name cannot be empty")
        return value

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        out: List[str] = []
        for tag in value:
            tag = tag.strip()
            if tag and tag not in out:
                out.append(tag)
        return tuple(out)

    def layout(self) -> LayoutState:
        return LayoutState(
            chunks=self.chunks,
            placements=self.placements,
            wallPlacements=self.wallPlacements,
            doors=self.doors,
            partitions=self.partitions,
        )


def as_chunk(value: Any) -> Chunk:
    """Accept a ``Chunk``, a ``{cx, cy}`` mapping or an ``(cx, cy)`` pair."""
    if isinstance(value, Chunk):
        return value
    if isinstance(value, dict):
        return Chunk.model_validate(value)
    cx, cy = value
    return Chunk(cx=cx, cy=cy)


def lookup_catalog(catalog: Optional[Mapping[str, Any]], item_id: str) -> Optional[CatalogItem]:
    if catalog is None:
        return None
    item = catalog.get(item_id)
    if item is None or isinstance(item, CatalogItem):
        return item
    return CatalogItem.model_validate(item)
