from __future__ import annotations

import json
import logging
import uuid
from typing import Callable, Mapping, Optional

from libas.clock import MonotonicClock, default_clock, utc_now_iso
from libas.config import StoreSettings
from libas.domain.errors import StorageError
from libas.domain.models import Dataset, User
from libas.repositories.contracts import KeyValueSurface
from libas.repositories.session_storage import SessionStorage, read_session_user
from libas.sync.change_bus import CLEAR, SAVE, ChangeBus, ChangeEvent

log = logging.getLogger("libas.store")

COLLECTIONS = ("items", "stockEntries", "bills", "users")
SCOPES = ("local", "remote", "all")


def default_dataset(now_iso: str) -> Dataset:
    return {
        "items": [],
        "stockEntries": [],
        "bills": [],
        "users": [
            {"username": "admin", "password": "libas123", "role": "admin", "fullName": "Owner"},
            {"username": "staff", "password": "456", "role": "staff", "fullName": "Staff Member"},
        ],
        "settings": {
            "appName": "Libas Inventory",
            "companyName": "Your Business",
            "version": "2.0",
            "lastSync": now_iso,
        },
    }


class DatasetStore:
    """Single source of truth for the inventory dataset of one tab.

    The durable surface is authoritative. The session surface holds a hint
    copy written with the same bytes on every save and tagged with the
    durable revision it mirrors; ``load`` prefers the hint only while that
    tag still matches, i.e. while this session made the latest write.

    There is no lock between ``load`` and ``save``: concurrent writers are
    resolved last-write-wins on the whole dataset.
    """

    def __init__(
        self,
        durable: KeyValueSurface,
        session: SessionStorage,
        bus: ChangeBus | None = None,
        *,
        settings: StoreSettings | None = None,
        clock: MonotonicClock | None = None,
        tab_id: str | None = None,
    ):
        self.durable = durable
        self.session = session
        self.bus = bus
        self.settings = settings or StoreSettings()
        self.keys = self.settings.keys
        self.clock = clock or default_clock
        self.tab_id = tab_id or uuid.uuid4().hex
        self._listeners: dict[str, list[Callable[[ChangeEvent], None]]] = {s: [] for s in SCOPES}
        self._unsubscribe_bus = bus.subscribe(self._on_bus_event) if bus is not None else None

        self.migrate()

    # ---------- persistence ----------

    def get_default_dataset(self) -> Dataset:
        return default_dataset(utc_now_iso())

    def load(self) -> Dataset:
        key = self.keys.current
        try:
            raw = self._read_raw(key)
        except StorageError as exc:
            log.error("durable_read_failed key=%s error=%s", key, exc)
            raw = self.session.get(key)

        if raw is None:
            return self.get_default_dataset()

        try:
            data = json.loads(raw)
        except ValueError as exc:
            # Left in place; the next successful save overwrites it.
            log.error("dataset_corrupt key=%s bytes=%s error=%s", key, len(raw), exc)
            return self.get_default_dataset()

        if not isinstance(data, dict):
            log.error("dataset_corrupt key=%s reason=not_an_object", key)
            return self.get_default_dataset()
        return _ensure_shape(data)

    def _read_raw(self, key: str) -> Optional[str]:
        durable_revision = self.durable.revision(key)
        if durable_revision is None:
            return self.session.get(key)
        if self.session.revision(key) == durable_revision:
            hint = self.session.get(key)
            if hint is not None:
                return hint
        return self.durable.get(key)

    def save(self, dataset: Dataset) -> bool:
        key = self.keys.current
        if not isinstance(dataset, Mapping):
            log.error("dataset_save_failed key=%s error=not a mapping: %s", key, type(dataset).__name__)
            return False

        try:
            payload = dict(dataset)
            payload["lastUpdated"] = self.clock.now_iso()
            payload["lastUpdatedBy"] = self.session_username() or "unknown"
            raw = json.dumps(payload, ensure_ascii=False, allow_nan=False)
            revision = self.durable.set(key, raw)
            self.session.set(key, raw, revision=revision)
        except (TypeError, ValueError, StorageError) as exc:
            log.error("dataset_save_failed key=%s error=%s", key, exc)
            return False

        log.info("dataset_saved key=%s revision=%s by=%s bytes=%s", key, revision, payload["lastUpdatedBy"], len(raw))
        self._emit(ChangeEvent(key=key, origin=self.tab_id, kind=SAVE))
        return True

    def migrate(self) -> Optional[str]:
        """Copy the first legacy payload found into the current key.

        Does nothing once the current key holds data. Legacy keys are never
        removed, so running this on every start is safe.
        """
        current = self.keys.current
        try:
            if self.durable.get(current) is not None:
                return None
            for legacy in self.keys.legacy:
                raw = self.durable.get(legacy)
                if raw:
                    self.durable.set(current, raw)
                    log.info("legacy_dataset_migrated from=%s to=%s", legacy, current)
                    return legacy
        except StorageError as exc:
            log.error("migration_failed key=%s error=%s", current, exc)
        return None

    def clear(self) -> bool:
        key = self.keys.current
        try:
            self.durable.remove(key)
            for legacy in self.keys.legacy:
                self.durable.remove(legacy)
        except StorageError as exc:
            log.error("dataset_clear_failed key=%s error=%s", key, exc)
            return False
        self.session.remove(key)

        log.warning("dataset_cleared key=%s by=%s", key, self.session_username() or "unknown")
        self._emit(ChangeEvent(key=key, origin=self.tab_id, kind=CLEAR))
        return True

    def hint_is_fresh(self) -> bool:
        key = self.keys.current
        try:
            durable_revision = self.durable.revision(key)
        except StorageError:
            return False
        return durable_revision is not None and self.session.revision(key) == durable_revision

    # ---------- session ----------

    def session_user(self) -> Optional[User]:
        return read_session_user(self.session, self.keys.session_user)

    def session_username(self) -> Optional[str]:
        user = self.session_user()
        return user.username if user else None

    # ---------- change signaling ----------

    def subscribe(self, listener: Callable[[ChangeEvent], None], scope: str = "remote") -> Callable[[], None]:
        """Register for dataset changes.

        ``remote`` fires for writes made by other tabs (storage event),
        ``local`` for this tab's own writes (same-document event), ``all``
        for both.
        """
        if scope not in SCOPES:
            raise ValueError(f"Unknown scope '{scope}'. Expected one of {SCOPES}.")
        self._listeners[scope].append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners[scope]:
                self._listeners[scope].remove(listener)

        return _unsubscribe

    def close(self) -> None:
        if self._unsubscribe_bus is not None:
            self._unsubscribe_bus()
            self._unsubscribe_bus = None

    def _emit(self, event: ChangeEvent) -> None:
        if self.bus is not None:
            self.bus.publish(event)
        else:
            self._on_bus_event(event)

    def _on_bus_event(self, event: ChangeEvent) -> None:
        if event.key != self.keys.current:
            return
        local = event.origin == self.tab_id
        if not local and event.kind == CLEAR:
            # A remote clear invalidates the hint copy.
            self.session.remove(event.key)

        scope = "local" if local else "remote"
        for listener in list(self._listeners[scope]) + list(self._listeners["all"]):
            try:
                listener(event)
            except Exception:
                log.exception("dataset_listener_failed scope=%s key=%s", scope, event.key)


def _ensure_shape(data: Dataset) -> Dataset:
    defaults = default_dataset(utc_now_iso())
    for name in COLLECTIONS:
        if not isinstance(data.get(name), list):
            data[name] = defaults[name]
    if not isinstance(data.get("settings"), dict):
        data["settings"] = defaults["settings"]
    return data
