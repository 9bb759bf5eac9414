import json
import threading
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from Design.blueprints import (
    BlueprintRepository,
    apply_blueprint,
    create_blueprint,
    duplicate_blueprint,
    publish,
    update_blueprint,
)
from Design.editor import LayoutEditor
from Design.errors import PersistenceFailure, UnknownBlueprint


@pytest.fixture
def furnished():
    ed = LayoutEditor()
    ed.add_chunk((0, 0))
    ed.add_chunk((2, 0))
    partition = ed.add_partition((2, 0), (2, 2)).record
    ed.place_door(partition.id, 0, "door_basic")
    ed.place_door("right-0-0", 0, "door_arch")
    ed.place_furniture("bed", 1, 1)
    ed.place_wall_item("painting", "left-0-0", 1, z=1.5)
    return ed.state


def _strip_ids(records):
    return [r.model_dump(exclude={"id"}) for r in records]


def test_round_trip_modulo_ids(furnished):
    bp = create_blueprint("Studio", "Two rooms", 250, furnished, tags=["cozy", " cozy ", ""])
    assert bp.tags == ("cozy",)
    assert not bp.isPublished
    state = apply_blueprint(bp)
    assert state.chunks == furnished.chunks
    assert state.partitions == furnished.partitions
    for field in ("placements", "wallPlacements", "doors"):
        original = getattr(furnished, field)
        applied = getattr(state, field)
        assert _strip_ids(applied) == _strip_ids(original)
        assert not {r.id for r in applied} & {r.id for r in original}


def test_applying_twice_gives_distinct_ids(furnished):
    bp = create_blueprint("Studio", "", 0, furnished)
    first, second = apply_blueprint(bp), apply_blueprint(bp)
    assert {d.id for d in first.doors}.isdisjoint({d.id for d in second.doors})


def test_applied_blueprint_keeps_connectivity(furnished):
    editor = LayoutEditor()
    assert editor.load_state(apply_blueprint(create_blueprint("Studio", "", 0, furnished)))
    assert editor.connectivity.is_fully_connected
    assert len(editor.state.doors) == 2


@pytest.mark.parametrize("name", ["", "   "])
def test_empty_name_rejected(furnished, name):
    with pytest.raises(ValidationError):
        create_blueprint(name, "", 10, furnished)


def test_negative_price_rejected(furnished):
    with pytest.raises(ValidationError):
        create_blueprint("Loft", "", -1, furnished)


def test_update_and_duplicate(furnished):
    bp = publish(create_blueprint("Loft", "", 10, furnished))
    renamed = update_blueprint(bp, name="Big loft", price=20)
    assert renamed.id == bp.id
    assert renamed.name == "Big loft"
    with pytest.raises(ValidationError):
        update_blueprint(bp, name=" ")
    with pytest.raises(ValueError):
        update_blueprint(bp, id="other")
    copy = duplicate_blueprint(renamed)
    assert copy.id != renamed.id
    assert copy.name == "Big loft (copy)"
    assert not copy.isPublished
    assert copy.chunks == renamed.chunks


def test_repository_persists_to_file(tmp_path, furnished):
    path = tmp_path / "blueprints.json"
    repo = BlueprintRepository(str(path))
    bp = repo.create("Loft", "desc", 10, furnished, tags=["a"])
    repo.publish(bp.id)
    repo.duplicate(bp.id)
    assert len(json.loads(path.read_text())) == 2

    reloaded = BlueprintRepository(str(path))
    assert reloaded.get(bp.id).isPublished
    assert [b.id for b in reloaded.published()] == [bp.id]
    assert len(reloaded.list()) == 2
    assert reloaded.get(bp.id).layout().to_dict() == furnished.to_dict()


def test_repository_unknown_id():
    repo = BlueprintRepository()
    with pytest.raises(UnknownBlueprint):
        repo.get("missing")
    with pytest.raises(KeyError):
        repo.delete("missing")


def test_repository_rolls_back_on_write_failure(tmp_path, furnished):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    repo = BlueprintRepository(str(blocker / "blueprints.json"))
    with pytest.raises(PersistenceFailure):
        repo.create("Loft", "", 10, furnished)
    assert repo.list() == []


def test_repository_drops_malformed_records(tmp_path, furnished):
    good = create_blueprint("Loft", "", 10, furnished).model_dump(mode="json")
    path = tmp_path / "blueprints.json"
    path.write_text(json.dumps([good, {"id": "x", "name": ""}, "junk"]))
    repo = BlueprintRepository(str(path))
    assert [b.id for b in repo.list()] == [good["id"]]


def test_repository_reads_wait_for_pending_write(furnished):
    repo = BlueprintRepository()
    seen = []
    reader = threading.Thread(target=lambda: seen.append([b.name for b in repo.list()]))

    def slow_flush():
        reader.start()
        reader.join(timeout=0.1)
        assert reader.is_alive()

    with patch.object(repo, "_flush", side_effect=slow_flush):
        created = repo.create("Loft", "", 10, furnished)
    reader.join(timeout=5)
    assert seen == [["Loft"]]
    assert repo.update(created.id, name="Attic").name == "Attic"
    assert repo.publish(created.id).isPublished
