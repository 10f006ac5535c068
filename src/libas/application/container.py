from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from libas.clock import MonotonicClock, default_clock
from libas.config import StoreSettings
from libas.repositories.dataset_store import DatasetStore
from libas.repositories.session_storage import SessionStorage
from libas.repositories.sqlite_store import SqliteKeyValueStore
from libas.services.auth_service import AuthService
from libas.services.autosave_service import AutosaveService
from libas.services.backup_service import BackupService
from libas.services.export_service import ExportService
from libas.services.operations_service import OperationsService
from libas.services.record_service import RecordService
from libas.services.reporting_service import ReportingService
from libas.services.search_service import SearchService
from libas.sync.change_bus import ChangeBus
from libas.sync.dataset_view import DatasetView


@dataclass(frozen=True)
class AppContainer:
    """Everything one tab needs, wired around a single DatasetStore."""

    store: DatasetStore
    bus: ChangeBus
    auth: AuthService
    records: RecordService
    search: SearchService
    exports: ExportService
    reporting: ReportingService
    backup: BackupService
    autosave: AutosaveService
    operations: OperationsService

    @property
    def tab_id(self) -> str:
        return self.store.tab_id

    def open_view(self, scope: str = "all") -> DatasetView:
        return DatasetView(self.store, scope=scope)

    def close(self) -> None:
        self.store.close()


def build_container(
    db_path: Path | str,
    *,
    bus: ChangeBus | None = None,
    backup_dir: Path | str | None = None,
    logs_dir: Path | str | None = None,
    settings: StoreSettings | None = None,
    clock: MonotonicClock | None = None,
) -> AppContainer:
    """Single construction point: call once per tab (process or window).

    Tabs of the same profile share ``db_path`` and ``bus``; each gets its own
    session storage.
    """
    settings = settings or StoreSettings()
    clock = clock or default_clock
    bus = bus or ChangeBus()

    durable = SqliteKeyValueStore(db_path, max_value_bytes=settings.max_value_bytes)
    durable.init_db()

    store = DatasetStore(durable, SessionStorage(), bus, settings=settings, clock=clock)
    autosave = AutosaveService(store, clock=clock)
    records = RecordService(store, clock=clock, autosave=autosave)

    base = Path(db_path).parent
    return AppContainer(
        store=store,
        bus=bus,
        auth=AuthService(store),
        records=records,
        search=SearchService(store),
        exports=ExportService(store, clock=clock),
        reporting=ReportingService(records),
        backup=BackupService(store, backup_dir or base / "backups", settings=settings, clock=clock),
        autosave=autosave,
        operations=OperationsService(store, logs_dir=logs_dir or base / "logs"),
    )
