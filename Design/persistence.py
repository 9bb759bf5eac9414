"""Persistence port for layouts plus a debounced background saver.

The editor only talks to a ``LayoutStore``; which backing store sits behind
it (memory, JSON files, a hosted backend adapter) is the caller's choice.
"""

from __future__ import annotations

import json
import logging
import os
import queue
import re
import threading
import time
from typing import Any, Dict, Optional, Protocol, Set

from Design.constants import PERSIST_DEBOUNCE_S
from Design.errors import PersistenceFailure
from Design.records import LayoutState

log = logging.getLogger(__name__)

_NAMESPACE_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class LayoutStore(Protocol):
    def load(self, namespace: str) -> LayoutState: ...

    def save(self, namespace: str, state: LayoutState) -> None: ...


def check_namespace(namespace: str) -> str:
    if not _NAMESPACE_RE.match(namespace or "") or namespace in (".", ".."):
        raise ValueError(f"Invalid layout namespace {namespace!r}")
    return namespace


class MemoryLayoutStore:
    """Keeps serialized layouts in a dict; used by tests and ephemeral servers."""

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def load(self, namespace: str) -> LayoutState:
        with self._lock:
            raw = self._data.get(check_namespace(namespace))
        return LayoutState.from_raw(raw)

    def save(self, namespace: str, state: LayoutState) -> None:
        payload = state.to_dict()
        with self._lock:
            self._data[check_namespace(namespace)] = payload


class JsonLayoutStore:
    """One ``<namespace>.json`` file per layout inside ``directory``."""

    def __init__(self, directory: str) -> None:
        self.directory = directory

    def path_for(self, namespace: str) -> str:
        return os.path.join(self.directory, f"{check_namespace(namespace)}.json")

    def load(self, namespace: str) -> LayoutState:
        path = self.path_for(namespace)
        if not os.path.exists(path):
            return LayoutState()
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as exc:
            log.warning("Layout file %s is not valid JSON (%s); starting empty", path, exc)
            return LayoutState()
        except OSError as exc:
            raise PersistenceFailure(namespace, f"cannot read {path}", exc) from exc
        return LayoutState.from_raw(raw)

    def save(self, namespace: str, state: LayoutState) -> None:
        path = self.path_for(namespace)
        tmp_path = f"{path}.tmp"
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, indent=2)
            os.replace(tmp_path, path)
        except OSError as exc:
            raise PersistenceFailure(namespace, f"cannot write {path}", exc) from exc


class DebouncedSaver:
    """Write layout snapshots in the background, coalescing bursts of edits.

    ``schedule`` never blocks the caller. A worker thread waits ``delay``
    seconds after the first pending save for a namespace and then writes
    the latest snapshot. Failures are logged and kept in ``status`` so they
    can be reported; the snapshot stays pending for the next attempt.
    """

    def __init__(self, store: LayoutStore, delay: float = PERSIST_DEBOUNCE_S) -> None:
        self.store = store
        self.delay = delay
        self._pending: Dict[str, LayoutState] = {}
        self._queued: Set[str] = set()
        self._status: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._queue: "queue.Queue[str]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is None:
            self._thread = threading.Thread(target=self._worker, name="layout-saver", daemon=True)
            self._thread.start()

    def schedule(self, namespace: str, state: LayoutState) -> None:
        with self._lock:
            self._pending[namespace] = state
            first = namespace not in self._queued
            self._queued.add(namespace)
            self._status.setdefault(namespace, {"status": "idle", "error": None, "savedAt": None})
            self._status[namespace]["status"] = "pending"
        if first:
            self._queue.put(namespace)

    def _worker(self) -> None:
        while True:
            namespace = self._queue.get()
            try:
                time.sleep(self.delay)
                self.flush(namespace)
            finally:
                self._queue.task_done()

    def flush(self, namespace: Optional[str] = None) -> Dict[str, Optional[str]]:
        """Write pending snapshots now; returns ``{namespace: error or None}``."""
        with self._lock:
            names = [namespace] if namespace is not None else list(self._pending)
            batch = {ns: self._pending.pop(ns) for ns in names if ns in self._pending}
            self._queued.difference_update(batch)
        results: Dict[str, Optional[str]] = {}
        for ns, state in batch.items():
            try:
                self.store.save(ns, state)
            except Exception as exc:
                log.exception("Saving layout %s failed: %s", ns, exc)
                with self._lock:
                    # keep the newest snapshot if an edit arrived meanwhile
                    self._pending.setdefault(ns, state)
                    self._status[ns] = {"status": "failed", "error": str(exc), "savedAt": None}
                results[ns] = str(exc)
                continue
            with self._lock:
                still_pending = ns in self._pending
                self._status[ns] = {
                    "status": "pending" if still_pending else "saved",
                    "error": None,
                    "savedAt": time.time(),
                }
            results[ns] = None
        return results

    def status(self, namespace: str) -> Dict[str, Any]:
        with self._lock:
            return dict(self._status.get(namespace, {"status": "idle", "error": None, "savedAt": None}))
