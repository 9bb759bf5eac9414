import pytest

hypothesis = pytest.importorskip("hypothesis")
from hypothesis import given, settings, strategies as st

from Design.editor import LayoutEditor
from Design.history import LayoutHistory
from Design.records import LayoutState


def _edit(editor, step):
    kind = step % 3
    if kind == 0:
        frontier = editor.expandable_chunks()
        return editor.add_chunk(frontier[step % len(frontier)])
    if kind == 1:
        return editor.place_furniture("chair", 0, 0, rotation=step % 4)
    return editor.place_door("right-0-0", 0, "door_basic")


@settings(max_examples=40, deadline=None)
@given(st.lists(st.integers(min_value=0, max_value=50), min_size=1, max_size=15))
def test_undo_then_redo_restores_states(steps):
    editor = LayoutEditor()
    editor.add_chunk((0, 0))
    editor.history.clear()
    start = editor.state
    accepted = sum(1 for step in steps if _edit(editor, step))
    end = editor.state
    for _ in range(accepted):
        assert editor.undo()
    assert editor.state == start
    assert not editor.undo()
    for _ in range(accepted):
        assert editor.redo()
    assert editor.state == end
    assert not editor.can_redo


def test_new_edit_clears_redo():
    editor = LayoutEditor()
    editor.add_chunk((0, 0))
    editor.add_chunk((2, 0))
    assert editor.undo()
    assert editor.can_redo
    editor.add_chunk((0, 2))
    assert not editor.can_redo


def test_history_is_bounded():
    history = LayoutHistory(limit=3)
    for i in range(5):
        history.record(f"edit {i}", LayoutState())
    assert len(history) == 3
    assert history.labels() == ["edit 2", "edit 3", "edit 4"]


def test_editor_history_limit():
    editor = LayoutEditor(history_limit=2)
    editor.add_chunk((0, 0))
    editor.add_chunk((2, 0))
    editor.add_chunk((4, 0))
    assert editor.undo()
    assert editor.undo()
    assert not editor.undo()
    assert len(editor.chunks) == 1


def test_reset_clears_state_and_history():
    editor = LayoutEditor()
    editor.add_chunk((0, 0))
    editor.reset_layout()
    assert editor.state.is_empty
    assert not editor.can_undo
    assert not editor.can_redo


def test_invalid_limit():
    with pytest.raises(ValueError):
        LayoutHistory(limit=0)


def test_subscribers_see_every_change():
    editor = LayoutEditor()
    seen = []
    unsubscribe = editor.subscribe(lambda ed: seen.append(len(ed.chunks)))
    editor.add_chunk((0, 0))
    editor.add_chunk((6, 6))
    editor.undo()
    unsubscribe()
    editor.redo()
    assert seen == [1, 0]
