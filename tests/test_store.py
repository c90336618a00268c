import json

import pytest

from tgmcp.errors import InvalidParametersError
from tgmcp.session.store import SessionRecordStore


def test_creates_directory_idempotently(tmp_path):
    target = tmp_path / "a" / "b"
    SessionRecordStore(target)
    SessionRecordStore(target)
    assert target.is_dir()


def test_save_then_load_round_trip(store):
    store.save("+1000", "T1")
    record = store.load("+1000")
    assert record is not None
    assert record.token == "T1"
    assert record.session_id == "+1000"
    assert record.timestamp > 0


def test_load_unknown_id_returns_none(store):
    assert store.load("+2000") is None


def test_file_layout(store):
    store.save("+1000", "T1")
    data = json.loads((store.directory / "+1000.json").read_text())
    assert data["session"] == "T1"
    assert isinstance(data["timestamp"], int)


def test_save_overwrites_prior_record(store):
    store.save("+1000", "T1")
    store.save("+1000", "T2")
    assert store.load("+1000").token == "T2"
    assert len(list(store.directory.glob("*.json"))) == 1


def test_save_leaves_no_temp_files(store):
    store.save("+1000", "T1")
    assert [p.name for p in store.directory.iterdir()] == ["+1000.json"]


def test_refuses_empty_token(store):
    with pytest.raises(InvalidParametersError):
        store.save("+1000", "")
    assert store.load("+1000") is None


def test_ids_are_normalized(store):
    store.save("+1 (000)", "T1")
    assert store.load("1000").token == "T1"
    assert (store.directory / "+1000.json").exists()


def test_empty_object_record_is_invalid(store):
    (store.directory / "+3000.json").write_text("{}")
    store.save("+1000", "T1")

    assert store.list_valid() == ["+1000"]
    assert store.load("+3000") is None


def test_malformed_records_do_not_abort_scan(store):
    (store.directory / "+3000.json").write_text("{not json")
    (store.directory / "+4000.json").write_text('["list"]')
    (store.directory / "+5000.json").write_text('{"session": ""}')
    store.save("+1000", "T1")

    statuses = {s.session_id: s for s in store.scan()}
    assert statuses["+1000"].valid
    assert not statuses["+3000"].valid and "unreadable" in statuses["+3000"].reason
    assert not statuses["+4000"].valid
    assert statuses["+5000"].reason == "missing token"
    assert store.list_valid() == ["+1000"]


def test_delete(store):
    store.save("+1000", "T1")
    assert store.delete("+1000") is True
    assert store.delete("+1000") is False
    assert store.load("+1000") is None


def _write_record(store, name, token="T1"):
    (store.directory / name).write_text(json.dumps({"session": token, "timestamp": 1700000000000}))


def test_non_canonical_file_names_are_listed_by_canonical_id(store):
    _write_record(store, "79001234567.json")

    assert store.list_valid() == ["+79001234567"]
    assert [store.load(sid).token for sid in store.list_valid()] == ["T1"]


def test_non_canonical_file_is_renamed_on_first_load(store):
    _write_record(store, "79001234567.json")

    assert store.load("79001234567").session_id == "+79001234567"
    assert [p.name for p in store.directory.iterdir()] == ["+79001234567.json"]


def test_canonical_file_wins_over_alias(store):
    _write_record(store, "79001234567.json", token="old")
    store.save("+79001234567", "new")

    assert [s.session_id for s in store.scan()] == ["+79001234567"]
    assert store.load("+79001234567").token == "new"
    assert not (store.directory / "79001234567.json").exists()


def test_delete_removes_non_canonical_file(store):
    _write_record(store, "79001234567.json")
    assert store.delete("79001234567") is True
    assert list(store.directory.glob("*.json")) == []


def test_unusable_file_names_are_damaged(store):
    _write_record(store, "..json")
    statuses = store.scan()
    assert [(s.session_id, s.valid, s.reason) for s in statuses] == [(".", False, "invalid session id")]
    assert store.list_valid() == []
