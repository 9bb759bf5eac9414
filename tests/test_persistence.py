import json

import pytest

from Design.editor import LayoutEditor
from Design.errors import PersistenceFailure
from Design.persistence import DebouncedSaver, JsonLayoutStore, MemoryLayoutStore, check_namespace
from Design.records import LayoutState


class FlakyStore(MemoryLayoutStore):
    def __init__(self):
        super().__init__()
        self.fail = True

    def save(self, namespace, state):
        if self.fail:
            raise PersistenceFailure(namespace, "backend unavailable")
        super().save(namespace, state)


@pytest.mark.parametrize(
    "raw",
    [None, [], "nope", {"chunks": "nope"}, {"chunks": [{"cx": 1, "cy": 0}, "junk"]}],
)
def test_malformed_payloads_default_to_empty(raw):
    state = LayoutState.from_raw(raw)
    assert state.chunks == ()
    assert state.is_empty


def test_malformed_items_are_dropped():
    raw = {
        "chunks": [{"cx": 0, "cy": 0}, {"cx": 0, "cy": 0}, {"cx": 3, "cy": 0}],
        "doors": [{"segmentId": "left-0-0", "position": 0, "doorType": "door_basic", "width": 2}, {"position": 1}],
        "placements": {"not": "a list"},
    }
    state = LayoutState.from_raw(raw)
    assert len(state.chunks) == 1
    assert len(state.doors) == 1
    assert state.placements == ()
    assert state.partitions == ()


def test_json_store_round_trip(tmp_path):
    store = JsonLayoutStore(str(tmp_path))
    editor = LayoutEditor("blueprint", store=store)
    editor.add_chunk((0, 0))
    editor.place_door("left-0-0", 0, "door_basic")
    editor.save()
    data = json.loads((tmp_path / "blueprint.json").read_text())
    assert data["chunks"] == [{"cx": 0, "cy": 0}]

    other = LayoutEditor("blueprint", store=store)
    assert other.load().to_dict() == editor.state.to_dict()
    assert not other.can_undo


def test_json_store_ignores_corrupt_file(tmp_path):
    (tmp_path / "test.json").write_text("{not json")
    assert JsonLayoutStore(str(tmp_path)).load("test").is_empty


def test_namespaces_are_checked(tmp_path):
    with pytest.raises(ValueError):
        check_namespace("../etc")
    with pytest.raises(ValueError):
        JsonLayoutStore(str(tmp_path)).load("a/b")


def test_save_failure_keeps_state():
    editor = LayoutEditor(store=FlakyStore())
    editor.add_chunk((0, 0))
    before = editor.state
    with pytest.raises(PersistenceFailure):
        editor.save()
    assert editor.state == before


def test_save_without_store():
    with pytest.raises(PersistenceFailure):
        LayoutEditor().save()


def test_debounced_saver_retries_after_failure():
    store = FlakyStore()
    saver = DebouncedSaver(store, delay=0)
    editor = LayoutEditor(store=store)
    editor.subscribe(lambda ed: saver.schedule(ed.namespace, ed.state))
    editor.add_chunk((0, 0))
    editor.add_chunk((2, 0))

    results = saver.flush()
    assert results["test"] is not None
    status = saver.status("test")
    assert status["status"] == "failed"
    assert "backend unavailable" in status["error"]
    assert len(editor.chunks) == 2

    store.fail = False
    assert saver.flush() == {"test": None}
    assert saver.status("test")["status"] == "saved"
    assert len(store.load("test").chunks) == 2


def test_saver_status_defaults_to_idle():
    saver = DebouncedSaver(MemoryLayoutStore())
    assert saver.status("nothing")["status"] == "idle"
    assert saver.flush() == {}


def test_load_drops_references_the_footprint_no_longer_supports(tmp_path):
    raw = {
        "chunks": [{"cx": 0, "cy": 0}],
        "doors": [
            {"id": "kept", "segmentId": "left-0-0", "position": 0, "doorType": "door_basic", "width": 1},
            {"id": "overlap", "segmentId": "left-0-0", "position": 0.5, "doorType": "door_basic", "width": 1},
            {"id": "dangling", "segmentId": "left-8-8", "position": 0, "doorType": "door_basic", "width": 2},
        ],
        "placements": [
            {"id": "inside", "furnitureId": "chair", "x": 1, "y": 1},
            {"id": "outside", "furnitureId": "chair", "x": 5, "y": 5},
        ],
        "wallPlacements": [{"id": "gone", "furnitureId": "painting", "segmentId": "top-8-8", "gridPos": 0}],
    }
    (tmp_path / "test.json").write_text(json.dumps(raw))
    editor = LayoutEditor(store=JsonLayoutStore(str(tmp_path)))
    state = editor.load()
    assert [d.id for d in state.doors] == ["kept"]
    assert [p.id for p in state.placements] == ["inside"]
    assert state.wallPlacements == ()
    assert editor.state == state
    assert not editor.can_undo


def test_non_finite_numbers_are_dropped_on_load(tmp_path):
    raw = {
        "chunks": [{"cx": 0, "cy": 0}],
        "doors": [
            {"segmentId": "left-0-0", "position": 0, "doorType": "door_basic", "width": float("inf")},
            {"segmentId": "left-0-0", "position": float("nan"), "doorType": "door_basic", "width": 2},
            {"segmentId": "left-0-0", "position": 1e308, "doorType": "door_basic", "width": 1e308},
        ],
        "wallPlacements": [{"furnitureId": "painting", "segmentId": "left-0-0", "gridPos": 0, "z": float("inf")}],
    }
    # json.dumps writes Infinity and NaN literals, which json.load accepts back
    (tmp_path / "test.json").write_text(json.dumps(raw))
    editor = LayoutEditor(store=JsonLayoutStore(str(tmp_path)))
    state = editor.load()
    assert len(state.chunks) == 1
    assert state.doors == ()
    assert state.wallPlacements == ()
    assert editor.connectivity.is_fully_connected
