"""Layout store used by the editor UI and the HTTP API.

``LayoutEditor`` owns the current ``LayoutState`` for one namespace. All
edits go through :func:`Design.actions.reduce`; accepted edits push the
previous state onto the history and notify subscribers. Geometry and
connectivity are re-derived after every accepted change.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple, Union

from pydantic import ValidationError

from Design.actions import (
    AddChunk,
    AddPartition,
    EditResult,
    LoadState,
    PlaceDoor,
    PlaceFurniture,
    PlaceWallItem,
    RemoveDoor,
    RemoveFurniture,
    RemovePartition,
    RemoveWallItem,
    reduce,
)
from Design.constants import HISTORY_LIMIT, SANDBOX_NAMESPACE
from Design.errors import InvalidChunkPlacement, PersistenceFailure
from Design.history import LayoutHistory
from Design.persistence import LayoutStore
from Design.records import CatalogItem, Chunk, DoorCatalogEntry, LayoutState, as_chunk
from evaluation.connectivity import ConnectivityGraph, build_connectivity_graph
from evaluation.validators import prune_orphans
from geometry.kernel import RoomBounds, Tile, chunk_bounds, chunks_to_tiles, expandable_chunks
from geometry.walls import SubSpan, WallSegment, layout_segments, split_segment_for_doors

log = logging.getLogger(__name__)

Listener = Callable[["LayoutEditor"], None]


class LayoutEditor:
    def __init__(
        self,
        namespace: str = SANDBOX_NAMESPACE,
        state: Optional[LayoutState] = None,
        store: Optional[LayoutStore] = None,
        catalog: Optional[Mapping[str, CatalogItem]] = None,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        self.namespace = namespace
        self.store = store
        self.catalog = catalog
        self.history = LayoutHistory(history_limit)
        self._listeners: List[Listener] = []
        self._state = state or LayoutState()
        self._derive()

    # -- derived views -----------------------------------------------------

    def _derive(self) -> None:
        state = self._state
        self._tiles = chunks_to_tiles(state.chunks)
        self._segments = layout_segments(self._tiles, state.partitions)
        self._graph = build_connectivity_graph(self._tiles, self._segments, state.doors)

    @property
    def state(self) -> LayoutState:
        return self._state

    @property
    def chunks(self) -> Tuple[Chunk, ...]:
        return self._state.chunks

    def active_tiles(self) -> Set[Tile]:
        return set(self._tiles)

    def expandable_chunks(self) -> List[Chunk]:
        return expandable_chunks(self._state.chunks)

    @property
    def bounds(self) -> RoomBounds:
        return chunk_bounds(self._state.chunks)

    @property
    def wall_segments(self) -> List[WallSegment]:
        return list(self._segments)

    def segment_spans(self, include_gaps: bool = False) -> Dict[str, List[SubSpan]]:
        return {s.id: split_segment_for_doors(s, self._state.doors, include_gaps) for s in self._segments}

    @property
    def connectivity(self) -> ConnectivityGraph:
        return self._graph

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def view(self) -> Dict[str, Any]:
        """Everything a renderer needs, as plain JSON-ready data."""
        spans = self.segment_spans(include_gaps=True)
        return {
            "namespace": self.namespace,
            "state": self._state.to_dict(),
            "activeTiles": [list(t) for t in sorted(self._tiles)],
            "expandableChunks": [c.model_dump() for c in self.expandable_chunks()],
            "bounds": self.bounds.to_dict(),
            "wallSegments": [
                {**s.to_dict(), "spans": [sp.to_dict() for sp in spans[s.id]]} for s in self._segments
            ],
            "connectivity": self._graph.to_dict(),
            "canUndo": self.can_undo,
            "canRedo": self.can_redo,
        }

    # -- observers -----------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: LayoutState) -> None:
        self._state = state
        self._derive()
        for listener in list(self._listeners):
            listener(self)

    # -- edits -------------------------------------------------------------

    def dispatch(self, action: Any) -> EditResult:
        result = reduce(self._state, action, self.catalog)
        if result.ok:
            self.history.record(result.label, self._state)
            self._set_state(result.state)
        return result

    def add_chunk(self, chunk: Union[Chunk, Tuple[int, int], dict]) -> EditResult:
        try:
            action = AddChunk(as_chunk(chunk))
        except (ValidationError, TypeError, ValueError):
            log.debug("Add chunk rejected: %r is not on the chunk grid", chunk)
            return EditResult(False, self._state, error=InvalidChunkPlacement.MISALIGNED, label="Add chunk")
        return self.dispatch(action)

    def place_furniture(self, furniture_id: str, x: int, y: int, rotation: int = 0) -> EditResult:
        return self.dispatch(PlaceFurniture(furniture_id, x, y, rotation))

    def remove_furniture(self, placement_id: str) -> EditResult:
        return self.dispatch(RemoveFurniture(placement_id))

    def place_door(self, segment_id: str, position: float, door_type: Union[str, DoorCatalogEntry]) -> EditResult:
        return self.dispatch(PlaceDoor(segment_id, position, door_type))

    def remove_door(self, door_id: str) -> EditResult:
        return self.dispatch(RemoveDoor(door_id))

    def place_wall_item(self, furniture_id: str, segment_id: str, grid_pos: int, z: float = 0.0) -> EditResult:
        return self.dispatch(PlaceWallItem(furniture_id, segment_id, grid_pos, z))

    def remove_wall_item(self, item_id: str) -> EditResult:
        return self.dispatch(RemoveWallItem(item_id))

    def add_partition(self, start: Tuple[int, int], end: Tuple[int, int]) -> EditResult:
        return self.dispatch(AddPartition(tuple(start), tuple(end)))

    def remove_partition(self, partition_id: str) -> EditResult:
        return self.dispatch(RemovePartition(partition_id))

    def load_state(self, state: LayoutState, label: str = "Load layout") -> EditResult:
        return self.dispatch(LoadState(state, label))

    def reset_layout(self) -> None:
        """Clear every chunk, placement, door and partition plus all history."""
        self.history.clear()
        self._set_state(LayoutState())

    def undo(self) -> bool:
        previous = self.history.undo(self._state)
        if previous is None:
            return False
        self._set_state(previous)
        return True

    def redo(self) -> bool:
        following = self.history.redo(self._state)
        if following is None:
            return False
        self._set_state(following)
        return True

    # -- persistence -------------------------------------------------------

    def load(self) -> LayoutState:
        """Replace the current state with the stored one and start a fresh history.

        References the stored geometry no longer supports are dropped.
        """
        if self.store is None:
            raise PersistenceFailure(self.namespace, "no layout store configured")
        state = self.store.load(self.namespace)
        tiles = chunks_to_tiles(state.chunks)
        state = prune_orphans(state, tiles, layout_segments(tiles, state.partitions), self.catalog)
        self.history.clear()
        self._set_state(state)
        return state

    def save(self) -> None:
        """Write the current state; failures leave the in-memory layout untouched."""
        if self.store is None:
            raise PersistenceFailure(self.namespace, "no layout store configured")
        try:
            self.store.save(self.namespace, self._state)
        except PersistenceFailure:
            raise
        except Exception as exc:
            log.warning("Saving layout %s failed: %s", self.namespace, exc)
            raise PersistenceFailure(self.namespace, str(exc), exc) from exc
