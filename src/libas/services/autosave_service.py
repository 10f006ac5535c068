from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

from libas.clock import MonotonicClock, default_clock
from libas.domain.errors import StorageError

log = logging.getLogger(__name__)


class AutosaveService:
    """Unsaved form state, kept per form index and user in durable storage."""

    def __init__(self, store, clock: MonotonicClock | None = None):
        self.store = store
        self.durable = store.durable
        self.prefix = store.keys.autosave_prefix
        self.clock = clock or default_clock

    def key_for(self, index: int) -> str:
        return f"{self.prefix}{int(index)}_{self.store.session_username() or 'anonymous'}"

    def save_form(self, index: int, fields: Mapping[str, Any]) -> bool:
        key = self.key_for(index)
        payload = {"data": dict(fields), "timestamp": self.clock.now_iso()}
        try:
            self.durable.set(key, json.dumps(payload, ensure_ascii=False))
        except (TypeError, ValueError, StorageError) as exc:
            log.error("autosave_failed key=%s error=%s", key, exc)
            return False
        return True

    def save_forms(self, forms: list[Mapping[str, Any]]) -> int:
        return sum(1 for index, fields in enumerate(forms) if self.save_form(index, fields))

    def restore_form(self, index: int) -> Optional[dict[str, Any]]:
        """Return the saved fields once; the saved copy is removed on success."""
        key = self.key_for(index)
        raw = self.durable.get(key)
        if raw is None:
            return None
        try:
            payload = json.loads(raw)
            data = dict(payload["data"])
        except (ValueError, KeyError, TypeError) as exc:
            log.error("autosave_restore_failed key=%s error=%s", key, exc)
            return None
        self.durable.remove(key)
        return {k: v for k, v in data.items() if v}

    def clear_all(self) -> int:
        removed = 0
        for key in self.durable.keys(self.prefix):
            if self.durable.remove(key):
                removed += 1
        if removed:
            log.info("autosave_cleared count=%s", removed)
        return removed
