import argparse
import json
import logging
import sys
import requests
from requests.exceptions import RequestException


def _print_summary(layout):
    state = layout.get("state", {})
    graph = layout.get("connectivity", {})
    print(f"Namespace: {layout.get('namespace')}")
    print(
        f"Chunks: {len(state.get('chunks', []))}  "
        f"Tiles: {len(layout.get('activeTiles', []))}  "
        f"Doors: {len(state.get('doors', []))}  "
        f"Partitions: {len(state.get('partitions', []))}"
    )
    print(
        f"Rooms: {len(graph.get('components', []))}  "
        f"Fully connected: {graph.get('isFullyConnected')}"
    )
    print(f"Can undo: {layout.get('canUndo')}  Can redo: {layout.get('canRedo')}")


def _request(method, url, headers, payload=None):
    try:
        resp = requests.request(method, url, json=payload, headers=headers)
    except RequestException as e:
        print(f"Request to {url} failed: {e}")
        return None
    if resp.status_code >= 400:
        try:
            detail = resp.json()
            message = f"{detail.get('code')}: {detail.get('message')}"
        except ValueError:
            message = resp.text
        print(f"Request to {url} rejected ({resp.status_code}) {message}")
        return None
    return resp.json()


def build_parser():
    parser = argparse.ArgumentParser(description="Edit room layouts via the API")
    parser.add_argument(
        "--api",
        default="http://localhost:8000",
        help="Base URL of the layout API",
    )
    parser.add_argument("--api-key", default="testkey", help="API key for authentication")
    parser.add_argument("--namespace", default="test", help="Layout namespace to edit")
    parser.add_argument("--json", action="store_true", help="Print the raw JSON response")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("show", help="Print the current layout")

    p = sub.add_parser("add-chunk", help="Add a 2x2 chunk at an even anchor")
    p.add_argument("cx", type=int)
    p.add_argument("cy", type=int)

    p = sub.add_parser("place-door", help="Place a door on a wall segment")
    p.add_argument("segment_id")
    p.add_argument("position", type=float)
    p.add_argument("--type", dest="door_type", default="door_basic", help="Door catalog id")

    sub.add_parser("undo", help="Undo the last edit")
    sub.add_parser("redo", help="Redo the last undone edit")
    sub.add_parser("reset", help="Clear the layout and its history")

    p = sub.add_parser("save-blueprint", help="Snapshot the layout as a blueprint")
    p.add_argument("name")
    p.add_argument("--description", default="")
    p.add_argument("--price", type=int, default=100)
    p.add_argument("--tag", dest="tags", action="append", default=[])
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    headers = {"X-API-Key": args.api_key}
    base = args.api.rstrip("/")
    layout_url = f"{base}/layouts/{args.namespace}"

    if args.command == "show":
        data = _request("GET", layout_url, headers)
    elif args.command == "add-chunk":
        data = _request("POST", f"{layout_url}/chunks", headers, {"cx": args.cx, "cy": args.cy})
    elif args.command == "place-door":
        payload = {
            "segmentId": args.segment_id,
            "position": args.position,
            "doorType": args.door_type,
        }
        data = _request("POST", f"{layout_url}/doors", headers, payload)
    elif args.command in ("undo", "redo", "reset"):
        data = _request("POST", f"{layout_url}/{args.command}", headers)
    else:
        payload = {
            "name": args.name,
            "description": args.description,
            "price": args.price,
            "tags": args.tags,
            "namespace": args.namespace,
        }
        data = _request("POST", f"{base}/blueprints", headers, payload)

    if data is None:
        return 1
    if args.json:
        print(json.dumps(data, indent=2))
    elif args.command == "save-blueprint":
        print(f"Saved blueprint {data['id']} ({data['name']})")
    else:
        if args.command in ("undo", "redo") and not data.get("ok"):
            print(f"Nothing to {args.command}")
        layout = data.get("layout", data)
        _print_summary(layout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
