#!/usr/bin/env python
"""
Emit the versioned JSON Schemas for layouts and blueprints to schema/
"""
import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT)

from Design.constants import VERSION
from Design.schema import SCHEMAS, emit_schema

if __name__ == "__main__":
    for name in SCHEMAS:
        out = os.path.join(ROOT, "schema", f"{name}.{VERSION}.json")
        emit_schema(name, out)
        print(f"Wrote {out}")
