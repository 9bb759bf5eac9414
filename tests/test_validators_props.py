import pytest

hypothesis = pytest.importorskip("hypothesis")
from hypothesis import given, settings, strategies as st

from Design.editor import LayoutEditor
from evaluation.validators import check_doors, prune_orphans, validate_layout
from geometry.walls import segment_index

door_types = st.sampled_from(["door_basic", "door_double", "door_arch", "portal"])
positions = st.floats(min_value=-2, max_value=10, allow_nan=False, allow_infinity=False)


@settings(max_examples=60, deadline=None)
@given(
    st.integers(min_value=1, max_value=4),
    st.lists(st.tuples(st.sampled_from(["left", "right"]), positions, door_types), max_size=12),
)
def test_accepted_doors_never_overlap_or_overhang(row, attempts):
    editor = LayoutEditor()
    for i in range(row):
        assert editor.add_chunk((2 * i, 0))
    for face, position, door_type in attempts:
        editor.place_door(f"{face}-0-0", position, door_type)
    segments = editor.wall_segments
    assert check_doors(editor.state.doors, segments) == []
    index = segment_index(segments)
    for door in editor.state.doors:
        assert 0 <= door.position
        assert door.end <= index[door.segmentId].length
    assert validate_layout(editor.state) == []


@settings(max_examples=30, deadline=None)
@given(st.lists(st.integers(min_value=0, max_value=100), max_size=8))
def test_growth_never_leaves_dangling_doors(picks):
    editor = LayoutEditor()
    editor.add_chunk((0, 0))
    editor.place_door("left-0-0", 0, "door_basic")
    editor.place_door("right-0-0", 0, "door_arch")
    for pick in picks:
        frontier = editor.expandable_chunks()
        editor.add_chunk(frontier[pick % len(frontier)])
        state = editor.state
        tiles = editor.active_tiles()
        assert prune_orphans(state, tiles, editor.wall_segments) is state
