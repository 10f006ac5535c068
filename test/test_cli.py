import json
from pathlib import Path

import pytest

from libas.main import main


def _run(argv, monkeypatch, tmp_path: Path) -> int:
    monkeypatch.setenv("LIBAS_HOME", str(tmp_path / "home"))
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


def test_stats_prints_json(monkeypatch, tmp_path: Path, capsys):
    assert _run(["stats"], monkeypatch, tmp_path) == 0

    stats = json.loads(capsys.readouterr().out)
    assert stats["totalProducts"] == 0
    assert stats["totalValue"] == 0


def test_export_csv_requires_login(monkeypatch, tmp_path: Path, capsys):
    out = tmp_path / "out"

    assert _run(["export-csv", "--out", str(out)], monkeypatch, tmp_path) == 2
    assert "Login required" in capsys.readouterr().err

    assert _run(["--password", "456", "export-csv", "--out", str(out)], monkeypatch, tmp_path) == 0
    assert len(list(out.glob("libas_export_*.csv"))) == 1


def test_clear_is_admin_only_and_needs_confirmation(monkeypatch, tmp_path: Path, capsys):
    assert _run(["--password", "456", "clear", "--yes"], monkeypatch, tmp_path) == 2

    monkeypatch.setattr("builtins.input", lambda _prompt: "n")
    assert _run(["--password", "libas123", "clear"], monkeypatch, tmp_path) == 1

    assert _run(["--password", "libas123", "clear", "--yes"], monkeypatch, tmp_path) == 0
    assert "All data cleared." in capsys.readouterr().out


def test_backup_then_restore(monkeypatch, tmp_path: Path, capsys):
    backups = tmp_path / "bk"
    assert _run(["--password", "456", "backup", "--out", str(backups)], monkeypatch, tmp_path) == 0
    created = sorted(backups.glob("libas_backup_*.json"))
    assert len(created) == 1

    assert _run(["--password", "456", "restore", str(created[0])], monkeypatch, tmp_path) == 2
    assert _run(["--password", "libas123", "restore", str(created[0])], monkeypatch, tmp_path) == 0
