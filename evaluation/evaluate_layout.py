"""Check a saved layout file offline.

Accepts a persisted layout state or a blueprint record, runs every layout
check, and prints a short summary of the derived geometry and
connectivity.
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional


# Ensure repository root is on ``sys.path`` when running as a script
current_dir = os.path.dirname(os.path.abspath(__file__))
repo_root = os.path.abspath(os.path.join(current_dir, ".."))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

from Design.catalog import StaticCatalog
from Design.records import LayoutState
from evaluation.connectivity import build_connectivity_graph
from evaluation.validators import validate_layout
from geometry.kernel import chunk_bounds, chunks_to_tiles
from geometry.walls import layout_segments


class LayoutCheckError(RuntimeError):
    """Raised in strict mode when a layout has issues."""


log = logging.getLogger(__name__)


def summarize_layout(state: LayoutState) -> Dict[str, Any]:
    tiles = chunks_to_tiles(state.chunks)
    segments = layout_segments(tiles, state.partitions)
    graph = build_connectivity_graph(tiles, segments, state.doors)
    return {
        "chunks": len(state.chunks),
        "tiles": len(tiles),
        "bounds": chunk_bounds(state.chunks).to_dict(),
        "wallSegments": len(segments),
        "doors": len(state.doors),
        "regions": len(graph.components),
        "isFullyConnected": graph.is_fully_connected,
    }


def check_layout_file(
    path: str,
    catalog_path: Optional[str] = None,
    require_connectivity: bool = True,
) -> Dict[str, Any]:
    """Load ``path`` and return ``{"summary": ..., "issues": [...]}``."""
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    catalog = None
    if catalog_path:
        with open(catalog_path, "r", encoding="utf-8") as f:
            catalog = StaticCatalog(json.load(f))
    state = LayoutState.from_raw(raw)
    issues: List[str] = validate_layout(state, catalog, require_connectivity=require_connectivity)
    return {"summary": summarize_layout(state), "issues": issues}


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("--layout", required=True, help="Path to a layout or blueprint JSON file")
    ap.add_argument("--catalog", help="Optional furniture catalog JSON ([{id, size, cost}])")
    ap.add_argument(
        "--allow-disconnected",
        action="store_true",
        help="Do not report regions unreachable through doors",
    )
    ap.add_argument("--json-report", help="Write summary and issues to this JSON file")
    ap.add_argument(
        "--strict",
        action="store_true",
        help="Exit with a non-zero status if any validation issues are found",
    )
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    report = check_layout_file(
        args.layout,
        catalog_path=args.catalog,
        require_connectivity=not args.allow_disconnected,
    )
    summary = report["summary"]
    log.info(
        "%s chunks, %s tiles, %s walls, %s doors, %s regions",
        summary["chunks"],
        summary["tiles"],
        summary["wallSegments"],
        summary["doors"],
        summary["regions"],
    )

    if args.json_report:
        with open(args.json_report, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2)
        log.info("Wrote report to %s", args.json_report)

    issues = report["issues"]
    if issues:
        log_func = log.error if args.strict else log.warning
        for msg in issues:
            log_func(msg)
        if args.strict:
            raise LayoutCheckError("; ".join(issues))
    else:
        log.info("No issues detected")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as exc:  # pragma: no cover - CLI entry point
        log.error("%s", exc)
        sys.exit(1)
