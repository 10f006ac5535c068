from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

log = logging.getLogger(__name__)

SAVE = "save"
CLEAR = "clear"


@dataclass(frozen=True)
class ChangeEvent:
    """'The shared dataset changed.' Carries only the key and who wrote it."""

    key: str
    origin: str
    kind: str = SAVE


Listener = Callable[[ChangeEvent], None]


class ChangeBus:
    """Storage-change channel shared by every tab of one profile."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def publish(self, event: ChangeEvent) -> int:
        with self._lock:
            listeners = list(self._listeners)

        delivered = 0
        for listener in listeners:
            try:
                listener(event)
                delivered += 1
            except Exception:
                # Delivery continues past a failing listener.
                log.exception("change_listener_failed key=%s origin=%s", event.key, event.origin)
        return delivered
