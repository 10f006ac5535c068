from __future__ import annotations

from typing import Optional, Protocol


class KeyValueSurface(Protocol):
    """String key/value storage surface (durable or session scoped).

    ``revision`` identifies the write that produced the current value so a
    reader can tell whether two surfaces hold the same generation.
    """

    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str, revision: Optional[int] = None) -> int: ...
    def remove(self, key: str) -> bool: ...
    def keys(self, prefix: str = "") -> list[str]: ...
    def revision(self, key: str) -> Optional[int]: ...
