from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from Design.constants import HISTORY_LIMIT
from Design.records import LayoutState, utc_now


@dataclass(frozen=True)
class HistoryEntry:
    label: str
    state: LayoutState
    timestamp: str = field(default_factory=utc_now)


class LayoutHistory:
    """Bounded undo/redo stacks of layout snapshots.

    ``record`` is called with the state *before* a mutation. Recording a new
    mutation discards anything that could have been redone.
    """

    def __init__(self, limit: int = HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit
        self._undo: List[HistoryEntry] = []
        self._redo: List[HistoryEntry] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def record(self, label: str, before: LayoutState) -> None:
        self._undo.append(HistoryEntry(label, before))
        if len(self._undo) > self.limit:
            del self._undo[0]
        self._redo.clear()

    def undo(self, current: LayoutState) -> Optional[LayoutState]:
        if not self._undo:
            return None
        entry = self._undo.pop()
        self._redo.append(HistoryEntry(entry.label, current))
        return entry.state

    def redo(self, current: LayoutState) -> Optional[LayoutState]:
        if not self._redo:
            return None
        entry = self._redo.pop()
        self._undo.append(HistoryEntry(entry.label, current))
        return entry.state

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()

    def labels(self) -> List[str]:
        return [e.label for e in self._undo]

    def __len__(self) -> int:
        return len(self._undo)
