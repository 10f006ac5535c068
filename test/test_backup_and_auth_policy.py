import json
from pathlib import Path

import pytest
from conftest import login_as, open_tab, shirt_entry

from libas.config import StoreSettings
from libas.domain.errors import InvalidBackupError, StorageError

STAMPS = ("lastUpdated", "lastUpdatedBy")


def _without(data: dict, keys=STAMPS) -> dict:
    return {k: v for k, v in data.items() if k not in keys}


def test_backup_adds_bookkeeping_fields(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    tab.records.add_stock_entry(shirt_entry())

    payload = tab.backup.backup()

    assert payload["version"] == "2.0"
    assert payload["backupCreated"]
    assert len(payload["stockEntries"]) == 1


def test_restore_round_trip_matches_backed_up_dataset(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    login_as(tab, "admin")
    tab.records.add_stock_entry(shirt_entry())
    tab.records.add_bill({"vendor": "Mill", "date": "2024-01-01"})
    original = tab.store.load()
    payload = tab.backup.backup(original)

    tab.records.add_stock_entry(shirt_entry(name="Later"))
    tab.backup.restore_backup(payload)

    restored = tab.store.load()
    assert "backupCreated" not in restored
    assert "version" not in restored
    assert _without(restored) == _without(original)


def test_create_backup_writes_file_and_restores_from_it(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db", backup_dir=tmp_path / "backups")
    tab.records.add_stock_entry(shirt_entry())

    path = tab.backup.create_backup()
    assert path.exists() and path.suffix == ".json"
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == "2.0"

    tab.records.add_stock_entry(shirt_entry(name="Later"))
    tab.backup.restore_latest_backup()

    assert [e.name for e in tab.records.get_all_stock_entries()] == ["Shirt"]


def test_backup_retention_keeps_newest_files(tmp_path: Path):
    settings = StoreSettings(max_backups=2)
    tab = open_tab(tmp_path / "inv.db", backup_dir=tmp_path / "backups", settings=settings)

    paths = [tab.backup.create_backup() for _ in range(4)]

    assert tab.backup.list_backups() == paths[-2:]


@pytest.mark.parametrize(
    "payload",
    [
        {"settings": {}},
        {"stockEntries": []},
        {"stockEntries": "nope", "settings": {}},
        {"stockEntries": [], "settings": []},
        {"stockEntries": [], "settings": {}, "bills": {}},
        ["stockEntries", "settings"],
    ],
)
def test_restore_rejects_invalid_backup_without_touching_data(tmp_path: Path, payload):
    tab = open_tab(tmp_path / "inv.db")
    tab.records.add_stock_entry(shirt_entry())
    before = tab.store.load()

    with pytest.raises(InvalidBackupError):
        tab.backup.restore_backup(payload) if isinstance(payload, dict) else tab.backup.restore_backup_text(json.dumps(payload))

    assert tab.store.load() == before


def test_restore_rejects_unparseable_file(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    bad = tmp_path / "bad.json"
    bad.write_text("{ this is not json", encoding="utf-8")

    with pytest.raises(InvalidBackupError, match="parsing"):
        tab.backup.restore_backup(bad)
    with pytest.raises(InvalidBackupError):
        tab.backup.restore_backup(tmp_path / "missing.json")


def test_restore_reports_storage_failure(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db", settings=StoreSettings(max_value_bytes=128))
    payload = {"stockEntries": [shirt_entry(description="x" * 500)], "settings": {}}

    with pytest.raises(StorageError):
        tab.backup.restore_backup(payload)


def test_restore_latest_without_backups(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db", backup_dir=tmp_path / "empty")

    with pytest.raises(FileNotFoundError):
        tab.backup.restore_latest_backup()
