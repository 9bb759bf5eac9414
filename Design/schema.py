import json
import os
from typing import Any, Dict, Type

from pydantic import BaseModel

from Design.constants import VERSION
from Design.records import Blueprint, LayoutState

SCHEMAS: Dict[str, Type[BaseModel]] = {
    "layout": LayoutState,
    "blueprint": Blueprint,
}


def versioned_schema(name: str) -> Dict[str, Any]:
    """JSON Schema for a persisted record, tagged with the state version."""
    schema = SCHEMAS[name].model_json_schema()
    schema["$id"] = f"urn:space-design:{name}:{VERSION}"
    schema["$schema"] = "https://json-schema.org/draft/2020-12/schema"
    return schema


def emit_schema(name: str, path: str) -> None:
    """Write the versioned JSON Schema for ``name`` to the given path."""
    schema = versioned_schema(name)
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2)
