from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from libas.clock import in_date_range
from libas.domain.models import StockEntry


@dataclass(frozen=True)
class SearchFilters:
    group: Optional[str] = None
    added_by: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None

    def has_date_range(self) -> bool:
        return self.start is not None or self.end is not None


class SearchService:
    def __init__(self, store):
        self.store = store

    def _entries(self) -> list[StockEntry]:
        return [StockEntry.from_dict(e) for e in self.store.load()["stockEntries"] if isinstance(e, dict)]

    def search(self, term: str = "", filters: SearchFilters | None = None) -> list[StockEntry]:
        results = self._entries()

        needle = (term or "").strip().lower()
        if needle:
            results = [
                e
                for e in results
                if needle in str(e.name).lower()
                or needle in str(e.group).lower()
                or (e.description and needle in str(e.description).lower())
            ]

        if filters is None:
            return results
        if filters.group:
            results = [e for e in results if e.group == filters.group]
        if filters.has_date_range():
            results = [e for e in results if in_date_range(e.date, filters.start, filters.end)]
        if filters.added_by:
            results = [e for e in results if e.added_by == filters.added_by]
        return results

    def unique_groups(self) -> list[str]:
        return sorted({e.group for e in self._entries() if e.group})
