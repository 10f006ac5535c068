from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import Path
from typing import Any, Optional

from libas.clock import MonotonicClock, default_clock, in_date_range
from libas.domain.models import StockEntry

log = logging.getLogger(__name__)

CSV_HEADER = [
    "Item Name",
    "Quantity",
    "Group",
    "Purchase Price",
    "Selling Price",
    "Date",
    "Added By",
    "Description",
    "Timestamp",
]

DateRange = Optional[tuple[Any, Any]]


def _or_zero(value: Any) -> Any:
    return "0" if value in (None, "", 0) else value


def _cell(value: Any) -> Any:
    return "" if value is None else value


class ExportService:
    def __init__(self, store, clock: MonotonicClock | None = None):
        self.store = store
        self.clock = clock or default_clock

    def _entries(self, date_range: DateRange = None) -> list[StockEntry]:
        return [StockEntry.from_dict(e) for e in self._records(date_range)]

    def _records(self, date_range: DateRange = None) -> list[dict[str, Any]]:
        records = [e for e in self.store.load()["stockEntries"] if isinstance(e, dict)]
        if date_range is None:
            return records
        start, end = date_range
        return [e for e in records if in_date_range(e.get("date"), start, end)]

    def stock_entries_csv(self, date_range: DateRange = None) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for e in self._entries(date_range):
            writer.writerow([
                _cell(e.name),
                _cell(e.quantity),
                _cell(e.group),
                _or_zero(e.purchase_price),
                _or_zero(e.selling_price),
                _cell(e.date),
                _cell(e.added_by),
                e.description or "",
                _cell(e.timestamp),
            ])
        return buf.getvalue()

    def stock_entries_json(self, date_range: DateRange = None) -> str:
        records = self._records(date_range)
        return json.dumps(
            {
                "exportDate": self.clock.now_iso(),
                "totalEntries": len(records),
                "data": records,
            },
            ensure_ascii=False,
            indent=2,
        )

    def write_csv(self, target_dir: Path | str, date_range: DateRange = None) -> Path:
        return self._write(target_dir, "csv", self.stock_entries_csv(date_range))

    def write_json(self, target_dir: Path | str, date_range: DateRange = None) -> Path:
        return self._write(target_dir, "json", self.stock_entries_json(date_range))

    def _write(self, target_dir: Path | str, ext: str, content: str) -> Path:
        out_dir = Path(target_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        target = out_dir / f"libas_export_{self.clock.now_ms()}.{ext}"
        target.write_text(content, encoding="utf-8", newline="")
        log.info("export_written path=%s", target)
        return target
