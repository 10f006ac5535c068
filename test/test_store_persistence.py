import json
from pathlib import Path

import pytest
from conftest import open_tab

from libas.clock import parse_iso
from libas.config import StoreSettings


def test_first_load_returns_default_dataset_with_seed_users(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")

    data = tab.store.load()

    assert data["items"] == [] and data["stockEntries"] == [] and data["bills"] == []
    users = {u["username"]: u["role"] for u in data["users"]}
    assert users == {"admin": "admin", "staff": "staff"}
    assert data["settings"]["lastSync"]
    assert tab.store.durable.get(tab.store.keys.current) is None


def test_default_dataset_is_fresh_on_every_call(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")

    first = tab.store.get_default_dataset()
    first["stockEntries"].append({"id": "x"})
    second = tab.store.get_default_dataset()

    assert second["stockEntries"] == []
    assert tab.store.durable.keys() == []


def test_save_writes_identical_bytes_to_both_surfaces(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    data = tab.store.load()
    data["bills"].append({"id": "b1", "date": "2024-01-01"})

    assert tab.store.save(data) is True

    key = tab.store.keys.current
    durable_raw = tab.store.durable.get(key)
    assert durable_raw is not None
    assert durable_raw == tab.store.session.get(key)
    assert tab.store.hint_is_fresh() is True


def test_save_stamps_last_updated_and_user(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")

    assert tab.store.save(tab.store.load())
    assert tab.store.load()["lastUpdatedBy"] == "unknown"

    tab.auth.login("456")
    assert tab.store.save(tab.store.load())
    assert tab.store.load()["lastUpdatedBy"] == "staff"


def test_last_updated_never_decreases(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    stamps = []
    for _ in range(5):
        assert tab.store.save(tab.store.load())
        stamps.append(parse_iso(tab.store.load()["lastUpdated"]))

    assert stamps == sorted(stamps)
    assert len(set(stamps)) == len(stamps)


def test_save_reports_quota_failure_without_raising(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db", settings=StoreSettings(max_value_bytes=64))

    assert tab.store.save(tab.store.load()) is False
    assert tab.store.durable.get(tab.store.keys.current) is None
    assert tab.store.session.get(tab.store.keys.current) is None


def test_save_reports_unserializable_dataset(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    data = tab.store.load()
    data["stockEntries"].append({"id": "bad", "quantity": object()})

    assert tab.store.save(data) is False


@pytest.mark.parametrize("bad", [None, 42, "not a dataset", [("items", [])]])
def test_save_rejects_non_mapping_without_raising(tmp_path: Path, bad):
    tab = open_tab(tmp_path / "inv.db")
    seen = []
    tab.store.subscribe(seen.append, scope="all")

    assert tab.store.save(bad) is False
    assert tab.store.durable.get(tab.store.keys.current) is None
    assert seen == []


def test_corrupt_payload_falls_back_to_default_and_is_left_in_place(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    key = tab.store.keys.current
    tab.store.durable.set(key, "{not json")

    data = tab.store.load()

    assert data["stockEntries"] == []
    assert len(data["users"]) == 2
    assert tab.store.durable.get(key) == "{not json"


def test_load_falls_back_to_session_copy_when_durable_is_empty(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    data = tab.store.load()
    data["items"].append({"id": "i1", "name": "Hanger"})
    assert tab.store.save(data)

    tab.store.durable.remove(tab.store.keys.current)

    assert [i["id"] for i in tab.store.load()["items"]] == ["i1"]


def test_clear_removes_dataset_everywhere_and_next_load_recreates_default(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    keys = tab.store.keys
    tab.store.durable.set(keys.legacy[0], json.dumps({"stockEntries": [], "settings": {}}))
    data = tab.store.load()
    data["stockEntries"].append({"id": "s1"})
    assert tab.store.save(data)

    assert tab.store.clear() is True

    assert tab.store.durable.get(keys.current) is None
    assert tab.store.session.get(keys.current) is None
    assert all(tab.store.durable.get(k) is None for k in keys.legacy)
    assert tab.store.load()["stockEntries"] == []
