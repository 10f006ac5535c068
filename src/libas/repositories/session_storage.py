from __future__ import annotations

import json
import logging
from typing import Optional

from libas.domain.models import User

log = logging.getLogger(__name__)


class SessionStorage:
    """Session-scoped surface: lives exactly as long as one tab's container."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self._revisions: dict[str, int] = {}
        self._counter = 0

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str, revision: Optional[int] = None) -> int:
        if revision is None:
            self._counter += 1
            revision = -self._counter
        self._values[key] = value
        self._revisions[key] = revision
        return revision

    def remove(self, key: str) -> bool:
        self._revisions.pop(key, None)
        return self._values.pop(key, None) is not None

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._values if k.startswith(prefix))

    def revision(self, key: str) -> Optional[int]:
        return self._revisions.get(key)

    def clear(self) -> None:
        self._values.clear()
        self._revisions.clear()


def read_session_user(session: SessionStorage, key: str) -> Optional[User]:
    raw = session.get(key)
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        log.warning("session_user_corrupt key=%s", key)
        return None
    if not isinstance(data, dict) or not data.get("username"):
        return None
    return User.from_dict(data)


def write_session_user(session: SessionStorage, key: str, user: User) -> None:
    session.set(key, json.dumps(user.session_dict(), ensure_ascii=False))
