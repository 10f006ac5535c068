from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class HealthReport:
    sqlite_integrity: str
    dataset_bytes: int
    record_counts: dict[str, int] = field(default_factory=dict)
    hint_fresh: bool = False
    logs_count: int = 0
    generated_at: str = ""


class OperationsService:
    def __init__(self, store, logs_dir: Path | str | None = None):
        self.store = store
        self.logs_dir = Path(logs_dir) if logs_dir else None

    def run_health_check(self) -> HealthReport:
        durable = self.store.durable
        data = self.store.load()
        logs_count = 0
        if self.logs_dir is not None and self.logs_dir.exists():
            logs_count = len(list(self.logs_dir.glob("*.log")))

        report = HealthReport(
            sqlite_integrity=durable.integrity_check(),
            dataset_bytes=durable.size_of(self.store.keys.current),
            record_counts={name: len(data[name]) for name in ("items", "stockEntries", "bills", "users")},
            hint_fresh=self.store.hint_is_fresh(),
            logs_count=logs_count,
            generated_at=datetime.now().isoformat(timespec="seconds"),
        )
        log.info("health_check integrity=%s bytes=%s", report.sqlite_integrity, report.dataset_bytes)
        return report
