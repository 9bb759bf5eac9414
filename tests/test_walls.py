from Design.records import Chunk, DoorPlacement, Partition
from geometry.kernel import chunk_bounds, chunks_to_tiles
from geometry.walls import (
    FRONT_LEFT,
    FRONT_RIGHT,
    LEFT_WALL,
    RIGHT_WALL,
    derive_wall_segments,
    layout_segments,
    primary_wall_segments,
    separates_tiles,
    split_segment_for_doors,
    wall_segment_path,
)


def _tiles(*anchors):
    return chunks_to_tiles(Chunk(cx=cx, cy=cy) for cx, cy in anchors)


def _door(segment_id, position, width, door_id=None):
    return DoorPlacement(id=door_id or f"d{position}", segmentId=segment_id, position=position, doorType="door_basic", width=width)


def test_single_chunk_has_two_back_walls():
    segments = derive_wall_segments(_tiles((0, 0)))
    by_id = {s.id: s for s in segments}
    assert set(by_id) == {"left-0-0", "right-0-0"}
    assert by_id["left-0-0"].side == LEFT_WALL
    assert by_id["left-0-0"].direction == "vertical"
    assert by_id["right-0-0"].side == RIGHT_WALL
    assert by_id["right-0-0"].end == (2, 0)
    assert all(s.length == 2 for s in segments)


def test_primary_walls_match_rectangle_trace():
    chunks = [Chunk(cx=0, cy=0), Chunk(cx=2, cy=0)]
    traced = {(s.id, s.start, s.end) for s in derive_wall_segments(chunks_to_tiles(chunks))}
    primary = {(s.id, s.start, s.end) for s in primary_wall_segments(chunk_bounds(chunks))}
    assert primary == traced


def test_step_shape_traces_each_exposed_run():
    # L-shape opening toward negative y: the back face steps at x=2
    segments = derive_wall_segments(_tiles((0, 0), (2, 0), (2, -2)))
    by_id = {s.id: s for s in segments}
    assert by_id["right-0-0"].end == (2, 0)
    assert by_id["right-2--2"].end == (4, -2)
    assert by_id["left-2--2"].end == (2, 0)
    assert by_id["left-0-0"].length == 2


def test_front_faces_only_on_request():
    tiles = _tiles((0, 0))
    sides = {s.side for s in derive_wall_segments(tiles, include_front=True)}
    assert {FRONT_LEFT, FRONT_RIGHT} <= sides
    assert FRONT_LEFT not in {s.side for s in derive_wall_segments(tiles)}


def test_split_segment_for_doors():
    segment = {s.id: s for s in derive_wall_segments(_tiles((0, 0), (2, 0)))}["right-0-0"]
    doors = [_door("right-0-0", 1, 2), _door("left-0-0", 0, 2)]
    spans = split_segment_for_doors(segment, doors)
    assert [(s.start, s.end) for s in spans] == [(0.0, 1), (3, 4.0)]
    with_gaps = split_segment_for_doors(segment, doors, include_gaps=True)
    assert [s.is_door for s in with_gaps] == [False, True, False]
    assert sum(s.length for s in with_gaps) == segment.length


def test_split_without_doors_is_whole_segment():
    segment = derive_wall_segments(_tiles((0, 0)))[0]
    spans = split_segment_for_doors(segment, [])
    assert len(spans) == 1
    assert spans[0].length == segment.length


def test_wall_segment_path_for_span():
    segment = {s.id: s for s in derive_wall_segments(_tiles((0, 0), (2, 0)))}["right-0-0"]
    span = split_segment_for_doors(segment, [_door("right-0-0", 0, 1)])[0]
    assert wall_segment_path(segment, span, 3) == [
        (1.0, 0.0, 0.0),
        (4.0, 0.0, 0.0),
        (4.0, 0.0, 3.0),
        (1.0, 0.0, 3.0),
    ]


def test_partition_joins_layout_segments():
    tiles = _tiles((0, 0), (2, 0))
    partition = Partition(id="p1", start=(2, 2), end=(2, 0))
    assert partition.start == (2, 0)
    segments = layout_segments(tiles, [partition])
    wall = {s.id: s for s in segments}["p1"]
    assert wall.length == 2
    assert separates_tiles(wall, tiles)
    assert not separates_tiles({s.id: s for s in segments}["left-0-0"], tiles)
