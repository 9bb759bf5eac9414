from unittest.mock import MagicMock, patch

from requests.exceptions import ConnectionError as RequestsConnectionError

from interface import cli

VIEW = {
    "namespace": "test",
    "state": {"chunks": [{"cx": 0, "cy": 0}], "doors": [], "partitions": []},
    "activeTiles": [[0, 0], [0, 1], [1, 0], [1, 1]],
    "connectivity": {"components": [[[0, 0]]], "isFullyConnected": True},
    "canUndo": True,
    "canRedo": False,
}


def _response(status, payload):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    return resp


def test_add_chunk_posts_anchor(capsys):
    with patch("interface.cli.requests.request", return_value=_response(200, {"ok": True, "layout": VIEW})) as req:
        code = cli.main(["--api", "http://api/", "add-chunk", "0", "0"])
    assert code == 0
    req.assert_called_once_with(
        "POST",
        "http://api/layouts/test/chunks",
        json={"cx": 0, "cy": 0},
        headers={"X-API-Key": "testkey"},
    )
    assert "Tiles: 4" in capsys.readouterr().out


def test_place_door_default_type():
    with patch("interface.cli.requests.request", return_value=_response(200, {"ok": True, "layout": VIEW})) as req:
        cli.main(["--namespace", "blueprint", "place-door", "left-0-0", "0"])
    method, url = req.call_args.args
    assert url.endswith("/layouts/blueprint/doors")
    assert req.call_args.kwargs["json"] == {"segmentId": "left-0-0", "position": 0.0, "doorType": "door_basic"}


def test_rejected_edit_returns_error(capsys):
    body = {"code": "overlapping", "message": "Place door rejected: overlapping"}
    with patch("interface.cli.requests.request", return_value=_response(409, body)):
        code = cli.main(["place-door", "left-0-0", "1"])
    assert code == 1
    assert "overlapping" in capsys.readouterr().out


def test_connection_failure(capsys):
    with patch("interface.cli.requests.request", side_effect=RequestsConnectionError("down")):
        assert cli.main(["show"]) == 1
    assert "failed" in capsys.readouterr().out


def test_undo_with_nothing_to_undo(capsys):
    with patch("interface.cli.requests.request", return_value=_response(200, {"ok": False, "layout": VIEW})):
        assert cli.main(["undo"]) == 0
    assert "Nothing to undo" in capsys.readouterr().out


def test_save_blueprint_payload(capsys):
    created = {"id": "abc", "name": "Nook"}
    with patch("interface.cli.requests.request", return_value=_response(200, created)) as req:
        assert cli.main(["save-blueprint", "Nook", "--price", "40", "--tag", "small"]) == 0
    assert req.call_args.kwargs["json"] == {
        "name": "Nook",
        "description": "",
        "price": 40,
        "tags": ["small"],
        "namespace": "test",
    }
    assert "Saved blueprint abc" in capsys.readouterr().out
