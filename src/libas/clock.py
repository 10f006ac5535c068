from __future__ import annotations

import threading
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(ISO_FORMAT)


def utc_now_iso() -> str:
    return format_iso(utc_now())


def parse_iso(value: object) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into an aware UTC datetime."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_day(value: object) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        pass
    dt = parse_iso(value)
    return dt.date() if dt else None


def in_date_range(value: object, start: object = None, end: object = None) -> bool:
    """Inclusive day comparison. An unparseable value is never in range."""
    day = parse_day(value)
    if day is None:
        return False
    lo = parse_day(start) if start is not None else None
    hi = parse_day(end) if end is not None else None
    if lo is not None and day < lo:
        return False
    if hi is not None and day > hi:
        return False
    return True


class MonotonicClock:
    """Wall clock whose successive readings strictly increase.

    Two stamps taken within the same microsecond are separated by one
    microsecond, so ordering by timestamp is total within a process.
    """

    def __init__(self, source: Callable[[], datetime] = utc_now):
        self._source = source
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            current = self._source()
            if current.tzinfo is None:
                current = current.replace(tzinfo=timezone.utc)
            if self._last is not None and current <= self._last:
                current = self._last + timedelta(microseconds=1)
            self._last = current
            return current

    def now_iso(self) -> str:
        return format_iso(self.now())

    def now_ms(self) -> int:
        return int(self.now().timestamp() * 1000)


default_clock = MonotonicClock()
