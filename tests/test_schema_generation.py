import json

from Design.schema import emit_schema, versioned_schema


def test_layout_schema_contains_core_fields(tmp_path):
    schema = versioned_schema("layout")
    assert isinstance(schema, dict)
    props = schema.get("properties") or {}
    for field in ("chunks", "placements", "wallPlacements", "doors", "partitions"):
        assert field in props
    assert schema["$id"].endswith(":layout:v1")


def test_blueprint_schema_written(tmp_path):
    out = tmp_path / "schema" / "blueprint.v1.json"
    emit_schema("blueprint", str(out))
    loaded = json.loads(out.read_text())
    assert "name" in loaded["properties"]
    assert "isPublished" in loaded["properties"]
