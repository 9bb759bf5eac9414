"""Blueprint snapshots of complete layouts and their repository.

A blueprint freezes the chunks, furniture, wall décor, doors and partitions
of a layout under a name and price. Applying it yields a fresh layout whose
placement ids never collide with another application of the same
blueprint.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from Design.constants import BLUEPRINT_COPY_SUFFIX
from Design.errors import PersistenceFailure, UnknownBlueprint
from Design.records import Blueprint, LayoutState, new_id, utc_now

log = logging.getLogger(__name__)

_EDITABLE_FIELDS = {
    "name", "description", "price", "tags",
    "chunks", "placements", "wallPlacements", "doors", "partitions",
}


def create_blueprint(
    name: str,
    description: str,
    price: int,
    layout: LayoutState,
    tags: Iterable[str] = (),
) -> Blueprint:
    """Snapshot ``layout`` into a new unpublished blueprint.

    Raises ``pydantic.ValidationError`` for an empty name or negative price.
    """
    snapshot = layout.model_copy(deep=True)
    return Blueprint(
        name=name,
        description=description,
        price=price,
        tags=tuple(tags),
        chunks=snapshot.chunks,
        placements=snapshot.placements,
        wallPlacements=snapshot.wallPlacements,
        doors=snapshot.doors,
        partitions=snapshot.partitions,
    )


def apply_blueprint(blueprint: Blueprint) -> LayoutState:
    """Clone a blueprint into a working layout with fresh placement ids."""
    return LayoutState(
        chunks=blueprint.chunks,
        placements=tuple(p.model_copy(update={"id": new_id()}) for p in blueprint.placements),
        wallPlacements=tuple(wp.model_copy(update={"id": new_id()}) for wp in blueprint.wallPlacements),
        doors=tuple(d.model_copy(update={"id": new_id()}) for d in blueprint.doors),
        partitions=blueprint.partitions,
    )


def update_blueprint(blueprint: Blueprint, **changes: Any) -> Blueprint:
    unknown = set(changes) - _EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update blueprint fields: {', '.join(sorted(unknown))}")
    data = blueprint.model_dump()
    data.update(changes)
    data["updatedAt"] = utc_now()
    # re-validate so an emptied name is refused exactly like on creation
    return Blueprint.model_validate(data)


def publish(blueprint: Blueprint) -> Blueprint:
    return blueprint.model_copy(update={"isPublished": True, "updatedAt": utc_now()})


def unpublish(blueprint: Blueprint) -> Blueprint:
    return blueprint.model_copy(update={"isPublished": False, "updatedAt": utc_now()})


def duplicate_blueprint(blueprint: Blueprint) -> Blueprint:
    now = utc_now()
    return blueprint.model_copy(
        update={
            "id": new_id(),
            "name": f"{blueprint.name}{BLUEPRINT_COPY_SUFFIX}",
            "isPublished": False,
            "createdAt": now,
            "updatedAt": now,
        }
    )


class BlueprintRepository:
    """Blueprint records keyed by id, optionally mirrored to a JSON file."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path
        self._items: Dict[str, Blueprint] = {}
        self._lock = threading.RLock()
        if path and os.path.exists(path):
            self._load()

    def _load(self) -> None:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as exc:
            log.warning("Blueprint file %s is not valid JSON (%s); starting empty", self.path, exc)
            return
        except OSError as exc:
            raise PersistenceFailure("blueprints", f"cannot read {self.path}", exc) from exc
        for entry in raw if isinstance(raw, list) else []:
            try:
                bp = Blueprint.model_validate(entry)
            except ValidationError as exc:
                log.warning("Dropping malformed blueprint %r: %s", entry.get("id") if isinstance(entry, dict) else entry, exc)
                continue
            self._items[bp.id] = bp

    def _flush(self) -> None:
        if not self.path:
            return
        payload = [bp.model_dump(mode="json") for bp in self._items.values()]
        tmp_path = f"{self.path}.tmp"
        try:
            parent = os.path.dirname(self.path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise PersistenceFailure("blueprints", f"cannot write {self.path}", exc) from exc

    def _put(self, blueprint: Blueprint) -> Blueprint:
        previous = self._items.get(blueprint.id)
        self._items[blueprint.id] = blueprint
        try:
            self._flush()
        except PersistenceFailure:
            if previous is None:
                self._items.pop(blueprint.id, None)
            else:
                self._items[blueprint.id] = previous
            raise
        return blueprint

    def get(self, blueprint_id: str) -> Blueprint:
        with self._lock:
            try:
                return self._items[blueprint_id]
            except KeyError:
                raise UnknownBlueprint(blueprint_id) from None

    def list(self) -> List[Blueprint]:
        with self._lock:
            return list(self._items.values())

    def published(self) -> List[Blueprint]:
        with self._lock:
            return [bp for bp in self._items.values() if bp.isPublished]

    def create(
        self,
        name: str,
        description: str,
        price: int,
        layout: LayoutState,
        tags: Iterable[str] = (),
    ) -> Blueprint:
        blueprint = create_blueprint(name, description, price, layout, tags)
        with self._lock:
            return self._put(blueprint)

    def update(self, blueprint_id: str, **changes: Any) -> Blueprint:
        with self._lock:
            return self._put(update_blueprint(self.get(blueprint_id), **changes))

    def delete(self, blueprint_id: str) -> None:
        with self._lock:
            removed = self._items.pop(blueprint_id, None)
            if removed is None:
                raise UnknownBlueprint(blueprint_id)
            try:
                self._flush()
            except PersistenceFailure:
                self._items[blueprint_id] = removed
                raise

    def duplicate(self, blueprint_id: str) -> Blueprint:
        with self._lock:
            return self._put(duplicate_blueprint(self.get(blueprint_id)))

    def publish(self, blueprint_id: str) -> Blueprint:
        with self._lock:
            return self._put(publish(self.get(blueprint_id)))

    def unpublish(self, blueprint_id: str) -> Blueprint:
        with self._lock:
            return self._put(unpublish(self.get(blueprint_id)))
