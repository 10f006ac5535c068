from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

from libas.clock import MonotonicClock, default_clock
from libas.config import StoreSettings
from libas.domain.errors import InvalidBackupError, StorageError
from libas.domain.models import Dataset

log = logging.getLogger("libas.store")

BOOKKEEPING_FIELDS = ("backupCreated", "version")


def validate_backup(payload: Any) -> None:
    if not isinstance(payload, Mapping):
        raise InvalidBackupError("Invalid backup file: expected a JSON object.")
    missing = [k for k in ("stockEntries", "settings") if k not in payload]
    if missing:
        raise InvalidBackupError(f"Invalid backup file: missing {', '.join(missing)}.")
    if not isinstance(payload["stockEntries"], list):
        raise InvalidBackupError("Invalid backup file: stockEntries must be a list.")
    if not isinstance(payload["settings"], Mapping):
        raise InvalidBackupError("Invalid backup file: settings must be an object.")
    for name in ("items", "bills", "users"):
        if name in payload and not isinstance(payload[name], list):
            raise InvalidBackupError(f"Invalid backup file: {name} must be a list.")


class BackupService:
    def __init__(
        self,
        store,
        backup_dir: Path | str,
        settings: StoreSettings | None = None,
        clock: MonotonicClock | None = None,
    ):
        self.store = store
        self.backup_dir = Path(backup_dir)
        self.settings = settings or StoreSettings()
        self.clock = clock or default_clock

    def backup(self, dataset: Dataset | None = None) -> dict[str, Any]:
        data = dataset if dataset is not None else self.store.load()
        return {
            **data,
            "backupCreated": self.clock.now_iso(),
            "version": self.settings.backup_version,
        }

    def create_backup(self, dataset: Dataset | None = None) -> Path:
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        ts = self.clock.now().strftime("%Y-%m-%d_%H%M%S%f")
        target = self.backup_dir / f"libas_backup_{ts}.json"

        target.write_text(json.dumps(self.backup(dataset), ensure_ascii=False, indent=2), encoding="utf-8")
        self._enforce_retention(max_backups=self.settings.max_backups)
        log.info("backup_created path=%s", target)
        return target

    def list_backups(self) -> list[Path]:
        if not self.backup_dir.exists():
            return []
        return sorted(self.backup_dir.glob("libas_backup_*.json"))

    def restore_backup(self, source: Path | str | Mapping[str, Any]) -> Dataset:
        """Replace the stored dataset with a backup.

        ``source`` is a backup file path or an already-parsed backup object.
        Nothing is written unless the whole payload validates.
        """
        if isinstance(source, Mapping):
            payload: Any = source
        else:
            path = Path(source)
            try:
                text = path.read_text(encoding="utf-8")
            except OSError as exc:
                raise InvalidBackupError(f"Could not read backup file '{path.name}': {exc}") from exc
            payload = self._parse(text)
        return self._apply(payload)

    def restore_backup_text(self, text: str) -> Dataset:
        return self._apply(self._parse(text))

    def restore_latest_backup(self) -> Dataset:
        files = self.list_backups()
        if not files:
            raise FileNotFoundError("No backups available to restore")
        latest = files[-1]
        restored = self.restore_backup(latest)
        log.warning("backup_restored latest=%s", latest.name)
        return restored

    def _parse(self, text: str) -> Any:
        try:
            return json.loads(text)
        except ValueError as exc:
            raise InvalidBackupError(f"Error parsing backup file: {exc}") from exc

    def _apply(self, payload: Any) -> Dataset:
        validate_backup(payload)
        dataset = {k: v for k, v in payload.items() if k not in BOOKKEEPING_FIELDS}
        if not self.store.save(dataset):
            raise StorageError("Backup is valid but could not be saved to storage.")
        return dataset

    def _enforce_retention(self, max_backups: int) -> None:
        files = self.list_backups()
        if len(files) <= max_backups:
            return
        for old in files[: len(files) - max_backups]:
            old.unlink(missing_ok=True)
