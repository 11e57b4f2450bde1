# tests/test_persistence.py
import json

import pytest

from notenest.core.errors import ImportFailed
from notenest.core.models import ROOT_ORDER_KEY, Note
from notenest.core.snapshot import Snapshot
from notenest.logic.persistence import JsonFileGateway, read_snapshot_file, write_snapshot_file


@pytest.fixture
def snapshot():
    return Snapshot(
        notes={"note-1": Note(title="A", content="body"), "note-2": Note(title="B", parent="note-1")},
        note_id_counter=3,
        note_order={ROOT_ORDER_KEY: ["note-1"], "note-1": ["note-2"]},
    )


def test_write_then_read(tmp_path, snapshot):
    path = tmp_path / "nested" / "main.json"

    result = write_snapshot_file(path, snapshot)

    assert result.success
    assert result.error is None
    assert read_snapshot_file(path) == snapshot
    assert not (tmp_path / "nested" / "main.json.tmp").exists()


def test_written_file_uses_wire_names(tmp_path, snapshot):
    path = tmp_path / "main.json"
    write_snapshot_file(path, snapshot)

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    assert set(data) == {"notesData", "noteIdCounter", "noteOrder"}
    assert data["notesData"]["note-2"]["parent"] == "note-1"


def test_write_failure_is_reported(tmp_path, snapshot, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    result = write_snapshot_file(blocker / "main.json", snapshot)

    assert not result.success
    assert result.error
    assert "Error saving notes" in capsys.readouterr().err


def test_read_missing_file(tmp_path):
    with pytest.raises(ImportFailed):
        read_snapshot_file(tmp_path / "missing.json")


def test_read_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")

    with pytest.raises(ImportFailed):
        read_snapshot_file(path)


def test_gateway_load_without_files(tmp_path):
    gateway = JsonFileGateway(str(tmp_path / "main.json"), legacy_file="")

    assert gateway.load() is None


def test_gateway_round_trip(tmp_path, snapshot):
    gateway = JsonFileGateway(str(tmp_path / "main.json"), legacy_file="")

    assert gateway.save(snapshot).success
    assert gateway.load() == snapshot


def test_gateway_falls_back_to_legacy_file(tmp_path):
    legacy = tmp_path / "notes-data.json"
    legacy.write_text(json.dumps({"note-3": {"title": "Old", "content": "", "parent": None}}))
    gateway = JsonFileGateway(str(tmp_path / "main.json"), legacy_file=str(legacy))

    loaded = gateway.load()

    assert list(loaded.notes) == ["note-3"]
    assert loaded.effective_counter() == 4


def test_gateway_prefers_main_file(tmp_path, snapshot):
    legacy = tmp_path / "notes-data.json"
    legacy.write_text(json.dumps({"note-3": {"title": "Old"}}))
    gateway = JsonFileGateway(str(tmp_path / "main.json"), legacy_file=str(legacy))
    gateway.save(snapshot)

    assert gateway.load() == snapshot


def test_gateway_backs_up_corrupt_file(tmp_path):
    main = tmp_path / "main.json"
    main.write_text("[1, 2")
    gateway = JsonFileGateway(str(main), legacy_file="")

    assert gateway.load() is None
    assert not main.exists()
    assert len(list(tmp_path.glob("main.json.backup.*"))) == 1


def test_gateway_backs_up_malformed_snapshot(tmp_path):
    main = tmp_path / "main.json"
    main.write_text(json.dumps({"notesData": {}, "noteOrder": {ROOT_ORDER_KEY: "note-1"}}))
    gateway = JsonFileGateway(str(main), legacy_file="")

    assert gateway.load() is None
    assert len(list(tmp_path.glob("main.json.backup.*"))) == 1


def test_read_non_utf8_file(tmp_path):
    path = tmp_path / "latin.json"
    path.write_bytes(b'{"notesData": {"note-1": {"title": "\xff\xfe"}}}')

    with pytest.raises(ImportFailed):
        read_snapshot_file(path)


def test_gateway_backs_up_non_utf8_file(tmp_path):
    main = tmp_path / "main.json"
    main.write_bytes(b"\xff\xfe{}")
    gateway = JsonFileGateway(str(main), legacy_file="")

    assert gateway.load() is None
    assert len(list(tmp_path.glob("main.json.backup.*"))) == 1


def test_non_finite_trash_time_loads(tmp_path):
    main = tmp_path / "main.json"
    main.write_text(
        '{"notesData": {"note-1": {"title": "Old", "parent": "trash-notebook",'
        ' "inTrash": true, "trashedAt": Infinity}}}'
    )
    gateway = JsonFileGateway(str(main), legacy_file="")

    loaded = gateway.load()

    assert loaded.notes["note-1"].in_trash
    assert loaded.notes["note-1"].trashed_at == 0
