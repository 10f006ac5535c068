from __future__ import annotations

import logging
import math
import re
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional

from libas.clock import MonotonicClock, default_clock, format_iso, parse_iso
from libas.domain.errors import ValidationError
from libas.domain.models import (
    Bill,
    Dataset,
    Item,
    Stats,
    StockEntry,
    StockEntryPatch,
    User,
)
from libas.services.auth_service import require_action

log = logging.getLogger("libas.records")

_ID_ALPHABET = string.digits + string.ascii_lowercase
_OLDEST = datetime.min.replace(tzinfo=timezone.utc)

CLEAR_PROMPT = "ARE YOU SURE? This will delete ALL data permanently!"


def new_record_id(now_ms: int, taken: Iterable[str] = ()) -> str:
    """Millisecond time plus a 9-char base-36 suffix, unique against ``taken``."""
    used = set(taken)
    while True:
        suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
        candidate = f"{now_ms}{suffix}"
        if candidate not in used:
            return candidate


_INT_PREFIX = re.compile(r"[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def as_number(value: Any, *, integral: bool = False) -> float:
    """Numeric value of a record field; anything non-numeric counts as 0.

    Strings are read by their leading numeric prefix, so ``"12 pcs"`` is 12.
    With ``integral`` only leading digits count (``"1e3"`` is 1, ``"3.9"`` is 3).
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        pattern = _INT_PREFIX if integral else _FLOAT_PREFIX
        match = pattern.match(value.lstrip())
        if match is None:
            return 0.0
        number = float(match.group(0))
    else:
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return float(math.trunc(number)) if integral else number


def _sort_key(entry: StockEntry) -> tuple[int, datetime]:
    parsed = parse_iso(entry.timestamp)
    return (1, parsed) if parsed is not None else (0, _OLDEST)


class RecordService:
    """CRUD and aggregation over the dataset.

    Every mutation is load -> change one record -> refresh settings.lastSync
    -> save. Methods return the store's save result; ``False`` covers both
    "not found" and "could not persist".
    """

    def __init__(self, store, clock: MonotonicClock | None = None, autosave=None):
        self.store = store
        self.clock = clock or default_clock
        self.autosave = autosave

    # ---------- helpers ----------

    def _actor(self, provided: Any = None, default: str = "staff") -> str:
        username = self.store.session_username()
        if username:
            return username
        if isinstance(provided, str) and provided.strip():
            return provided.strip()
        return default

    def _commit(self, data: Dataset) -> bool:
        data.setdefault("settings", {})["lastSync"] = self.clock.now_iso()
        return self.store.save(data)

    @staticmethod
    def _require_mapping(record: Any, kind: str) -> dict[str, Any]:
        if not isinstance(record, Mapping):
            raise ValidationError(f"{kind} must be a mapping of fields.")
        return dict(record)

    @staticmethod
    def _all_ids(data: Dataset) -> list[str]:
        return [
            str(r.get("id"))
            for name in ("items", "stockEntries", "bills")
            for r in data[name]
            if isinstance(r, dict) and "id" in r
        ]

    # ---------- mutations ----------

    def add_stock_entry(self, entry: Mapping[str, Any]) -> Optional[str]:
        record = self._require_mapping(entry, "Stock entry")
        data = self.store.load()
        now = self.clock.now()

        record["id"] = new_record_id(int(now.timestamp() * 1000), self._all_ids(data))
        record["timestamp"] = format_iso(now)
        record["addedBy"] = self._actor(record.get("addedBy"))
        for stale in ("lastModified", "modifiedBy", "originalDate"):
            record.pop(stale, None)

        data["stockEntries"].append(record)
        if not self._commit(data):
            return None
        log.info("stock_entry_added id=%s name=%s by=%s", record["id"], record.get("name"), record["addedBy"])
        return record["id"]

    def add_item(self, item: Mapping[str, Any]) -> Optional[str]:
        record = self._require_mapping(item, "Item")
        data = self.store.load()
        now = self.clock.now()

        record["id"] = new_record_id(int(now.timestamp() * 1000), self._all_ids(data))
        record["createdDate"] = format_iso(now)
        record["addedBy"] = self._actor(record.get("addedBy"))

        data["items"].append(record)
        if not self._commit(data):
            return None
        log.info("item_added id=%s by=%s", record["id"], record["addedBy"])
        return record["id"]

    def add_bill(self, bill: Mapping[str, Any]) -> Optional[str]:
        record = self._require_mapping(bill, "Bill")
        data = self.store.load()
        now = self.clock.now()

        record["id"] = new_record_id(int(now.timestamp() * 1000), self._all_ids(data))
        record["uploadDate"] = format_iso(now)
        record["uploadedBy"] = self._actor(record.get("uploadedBy"))
        if not record.get("date"):
            record["date"] = now.date().isoformat()

        data["bills"].append(record)
        if not self._commit(data):
            return None
        log.info("bill_added id=%s date=%s by=%s", record["id"], record["date"], record["uploadedBy"])
        return record["id"]

    def update_stock_entry(self, entry_id: str, patch: StockEntryPatch | Mapping[str, Any]) -> bool:
        if not isinstance(patch, StockEntryPatch):
            ignored = StockEntryPatch.rejected_keys(patch)
            if ignored:
                log.warning("patch_provenance_ignored id=%s fields=%s", entry_id, ",".join(ignored))
            patch = StockEntryPatch.from_mapping(patch)

        data = self.store.load()
        entries = data["stockEntries"]
        index = next(
            (i for i, e in enumerate(entries) if isinstance(e, dict) and str(e.get("id")) == str(entry_id)),
            None,
        )
        if index is None:
            return False

        current = entries[index]
        merged = {**current, **patch.changes()}
        for preserved in ("id", "timestamp", "addedBy"):
            if preserved in current:
                merged[preserved] = current[preserved]
            else:
                merged.pop(preserved, None)
        merged["originalDate"] = current.get("date")
        merged["lastModified"] = self.clock.now_iso()
        merged["modifiedBy"] = self.store.session_username() or "unknown"
        entries[index] = merged

        ok = self._commit(data)
        if ok:
            log.info("stock_entry_updated id=%s by=%s", entry_id, merged["modifiedBy"])
        return ok

    def delete_stock_entry(self, entry_id: str) -> bool:
        data = self.store.load()
        before = len(data["stockEntries"])
        data["stockEntries"] = [
            e for e in data["stockEntries"] if not (isinstance(e, dict) and str(e.get("id")) == str(entry_id))
        ]
        if len(data["stockEntries"]) == before:
            return False

        ok = self._commit(data)
        if ok:
            log.info("stock_entry_deleted id=%s by=%s", entry_id, self.store.session_username() or "unknown")
        return ok

    def clear_all_data(self, confirm: Callable[[str], bool], actor: User | None = None) -> bool:
        actor = actor or self.store.session_user()
        require_action(actor, "clear_data")
        if not confirm(CLEAR_PROMPT):
            log.info("clear_all_cancelled by=%s", actor.username)
            return False

        ok = self.store.clear()
        if ok and self.autosave is not None:
            self.autosave.clear_all()
        return ok

    # ---------- queries ----------

    def _entries(self, data: Dataset | None = None) -> list[StockEntry]:
        data = data if data is not None else self.store.load()
        return [StockEntry.from_dict(e) for e in data["stockEntries"] if isinstance(e, dict)]

    def get_items(self) -> list[Item]:
        return [Item.from_dict(i) for i in self.store.load()["items"] if isinstance(i, dict)]

    def get_bills(self) -> list[Bill]:
        return [Bill.from_dict(b) for b in self.store.load()["bills"] if isinstance(b, dict)]

    def get_entries_by_date(self, day: str) -> list[StockEntry]:
        return [e for e in self._entries() if e.date == day]

    def get_bills_by_date(self, day: str) -> list[Bill]:
        return [b for b in self.get_bills() if b.date == day]

    def get_all_stock_entries(self) -> list[StockEntry]:
        return sorted(self._entries(), key=_sort_key, reverse=True)

    def get_staff_entries(self) -> list[StockEntry]:
        # Literal match: entries by any other username belong to neither role list.
        return [e for e in self._entries() if e.added_by == "staff"]

    def get_admin_entries(self) -> list[StockEntry]:
        return [e for e in self._entries() if e.added_by == "admin"]

    def get_stats(self) -> Stats:
        data = self.store.load()
        entries = self._entries(data)
        total_value = sum(
            as_number(e.purchase_price) * as_number(e.quantity, integral=True) for e in entries
        )
        return Stats(
            total_products=len(entries),
            staff_entries=sum(1 for e in entries if e.added_by == "staff"),
            admin_entries=sum(1 for e in entries if e.added_by == "admin"),
            total_value=total_value,
            total_bills=len(data["bills"]),
            last_updated=data.get("lastUpdated") or data["settings"].get("lastSync"),
        )
