from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import sys


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path
    backups_dir: Path


@dataclass(frozen=True)
class StorageKeys:
    current: str = "libas_inventory_data_v2"
    # Checked in order during migration, first match wins.
    legacy: tuple[str, ...] = ("libas_inventory_data", "libas_github_backup")
    session_user: str = "currentUser"
    autosave_prefix: str = "autoSave_form_"


@dataclass(frozen=True)
class StoreSettings:
    keys: StorageKeys = StorageKeys()
    max_value_bytes: int = 5 * 1024 * 1024
    backup_version: str = "2.0"
    max_backups: int = 30


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "LibasInventory") -> AppPaths:
    override = os.environ.get("LIBAS_HOME", "").strip()
    if override:
        base = Path(override).expanduser()
    elif sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    backups = base / "backups"
    db = base / "inventory.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)
    backups.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs, backups_dir=backups)
