from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from libas.domain.models import Dataset
from libas.sync.change_bus import ChangeEvent

log = logging.getLogger(__name__)

RECORD_COLLECTIONS = ("items", "stockEntries", "bills")


@dataclass(frozen=True)
class CollectionDiff:
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    changed: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.added or self.removed or self.changed)


@dataclass(frozen=True)
class ChangeSet:
    collections: Mapping[str, CollectionDiff] = field(default_factory=dict)
    users_changed: bool = False
    settings_changed: bool = False

    def affected(self) -> list[str]:
        names = [name for name, diff in self.collections.items() if diff]
        if self.users_changed:
            names.append("users")
        if self.settings_changed:
            names.append("settings")
        return names

    def __bool__(self) -> bool:
        return bool(self.affected())


Refresher = Callable[[str, Dataset, ChangeSet], None]


def _index(records: list[Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for pos, rec in enumerate(records):
        rid = rec.get("id") if isinstance(rec, dict) else None
        out[str(rid) if rid is not None else f"#{pos}"] = rec
    return out


def diff_collection(before: list[Any], after: list[Any]) -> CollectionDiff:
    old = _index(before)
    new = _index(after)
    return CollectionDiff(
        added=tuple(k for k in new if k not in old),
        removed=tuple(k for k in old if k not in new),
        changed=tuple(k for k in new if k in old and new[k] != old[k]),
    )


def _settings_changed(before: Dataset, after: Dataset) -> bool:
    old, new = before.get("settings"), after.get("settings")
    if "lastUpdated" not in before and "lastUpdated" not in after:
        # Neither side was ever saved; lastSync is just the load time.
        old = {k: v for k, v in (old or {}).items() if k != "lastSync"}
        new = {k: v for k, v in (new or {}).items() if k != "lastSync"}
    return old != new


def diff_datasets(before: Dataset, after: Dataset) -> ChangeSet:
    return ChangeSet(
        collections={
            name: diff_collection(before.get(name) or [], after.get(name) or [])
            for name in RECORD_COLLECTIONS
        },
        users_changed=before.get("users") != after.get("users"),
        settings_changed=_settings_changed(before, after),
    )


class DatasetView:
    """In-memory snapshot of the dataset that follows changes from any tab.

    On a change signal the view reloads, diffs against its snapshot and calls
    only the refreshers registered for collections that actually changed.
    Unrelated UI state held by the caller is untouched.
    """

    def __init__(self, store, scope: str = "all"):
        self.store = store
        self.snapshot: Dataset = store.load()
        self._refreshers: dict[str, list[Refresher]] = {}
        self._unsubscribe = store.subscribe(self._on_change, scope=scope)

    def on(self, collection: str, refresher: Refresher) -> None:
        self._refreshers.setdefault(collection, []).append(refresher)

    def reconcile(self) -> ChangeSet:
        fresh = self.store.load()
        changes = diff_datasets(self.snapshot, fresh)
        self.snapshot = fresh
        for name in changes.affected():
            for refresher in self._refreshers.get(name, []):
                refresher(name, fresh, changes)
        if changes:
            log.info("view_reconciled affected=%s", ",".join(changes.affected()))
        return changes

    def close(self) -> None:
        self._unsubscribe()

    def _on_change(self, event: ChangeEvent) -> None:
        self.reconcile()
