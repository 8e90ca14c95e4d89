"""Tests covering the CLI entry point."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

import main as cli
from main import main


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    levels: list[str] = []
    monkeypatch.setattr(cli, "configure_logging", levels.append)
    return levels


def _write(tmp_path: Path, payload: Any, name: str = "input.json") -> Path:
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_validate_reports_valid_dungeons(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], dungeon_payload: dict[str, Any]
) -> None:
    path = _write(tmp_path, {"dungeons": [dungeon_payload]})

    main(["validate", str(path)])

    assert capsys.readouterr().out.strip() == "Forgotten Crypt: valid"


def test_validate_exits_with_one_for_invalid_dungeons(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], dungeon_payload: dict[str, Any]
) -> None:
    dungeon_payload["rooms"][0]["type"] = "empty"
    path = _write(tmp_path, dungeon_payload)

    with pytest.raises(SystemExit) as excinfo:
        main(["validate", str(path)])

    assert excinfo.value.code == 1
    output = capsys.readouterr().out
    assert "Forgotten Crypt: invalid" in output
    assert "rooms: Dungeon must have at least one entrance room" in output


def test_validate_first_only_limits_the_check(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], dungeon_payload: dict[str, Any]
) -> None:
    broken = json.loads(json.dumps(dungeon_payload))
    broken["id"] = "broken"
    broken["name"] = "Broken"
    broken["rooms"] = []
    path = _write(tmp_path, {"dungeons": [dungeon_payload, broken]})

    main(["validate", "--first-only", str(path)])

    assert "Broken" not in capsys.readouterr().out


def test_validate_accepts_legacy_files(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], legacy_payload: dict[str, Any]
) -> None:
    path = _write(tmp_path, legacy_payload)

    main(["validate", str(path)])

    assert capsys.readouterr().out.strip() == "Level 3 Dungeon: valid"


@pytest.mark.parametrize("content", ["{not json", json.dumps({"nothing": True})])
def test_unreadable_input_exits_with_two(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], content: str
) -> None:
    path = tmp_path / "input.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["validate", str(path)])

    assert excinfo.value.code == 2


def test_missing_file_exits_with_two(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["validate", str(tmp_path / "absent.json")])

    assert excinfo.value.code == 2


def test_convert_writes_current_format(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], legacy_payload: dict[str, Any]
) -> None:
    source = _write(tmp_path, legacy_payload)
    output = tmp_path / "out" / "dungeons.json"

    main(["convert", str(source), "--output", str(output)])

    document = json.loads(output.read_text(encoding="utf-8"))
    assert len(document["dungeons"]) == 1
    converted = document["dungeons"][0]
    assert converted["floors"][0]["name"] == "Ground Floor"
    assert all(isinstance(room["id"], str) for room in converted["rooms"])
    assert "Wrote 1 dungeon(s)" in capsys.readouterr().out


def test_convert_prints_when_no_output_given(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], legacy_payload: dict[str, Any]
) -> None:
    source = _write(tmp_path, legacy_payload)

    main(["convert", str(source)])

    document = json.loads(capsys.readouterr().out)
    assert document["dungeons"][0]["name"] == "Level 3 Dungeon"


def test_serve_runs_uvicorn_factory(monkeypatch: pytest.MonkeyPatch) -> None:
    import uvicorn

    calls: list[tuple[tuple[Any, ...], dict[str, Any]]] = []
    monkeypatch.setattr(uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))

    main(["--log-level", "debug", "serve", "--port", "9000"])

    (args, kwargs), = calls
    assert args == ("dungeoncrawler.api.app:create_app",)
    assert kwargs["factory"] is True
    assert kwargs["port"] == 9000
    assert kwargs["host"] == "127.0.0.1"
    assert kwargs["log_level"] == "debug"


def test_log_level_is_applied(
    tmp_path: Path, _quiet_logging: list[str], dungeon_payload: dict[str, Any]
) -> None:
    path = _write(tmp_path, dungeon_payload)

    main(["--log-level", "warning", "validate", str(path)])

    assert _quiet_logging == ["WARNING"]


def test_unknown_log_level_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--log-level", "chatty", "validate", str(tmp_path / "x.json")])

    assert excinfo.value.code == 2
