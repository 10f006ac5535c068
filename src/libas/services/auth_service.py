from __future__ import annotations

import logging
from typing import Optional

from libas.domain.errors import AuthorizationError
from libas.domain.models import User
from libas.repositories.session_storage import write_session_user

log = logging.getLogger(__name__)


PERMISSIONS: dict[str, set[str]] = {
    "export_report": {"admin", "staff"},
    "backup_data": {"admin", "staff"},
    "restore_backup": {"admin"},
    "clear_data": {"admin"},
}


def can(user: User | None, action: str) -> bool:
    if user is None:
        return False
    allowed_roles = PERMISSIONS.get(action)
    if not allowed_roles:
        return False
    return user.role in allowed_roles


def require_action(user: User | None, action: str) -> None:
    if user is None:
        raise AuthorizationError(f"Login required to perform '{action}'.")
    if not can(user, action):
        raise AuthorizationError(f"Role '{user.role}' is not allowed to perform '{action}'.")


class AuthService:
    """Login against the dataset's user list; the session user lives in session storage."""

    def __init__(self, store):
        self.store = store

    def list_users(self) -> list[User]:
        return [User.from_dict(u) for u in self.store.load()["users"] if isinstance(u, dict)]

    def login(self, password: str, username: str | None = None) -> User:
        secret = (password or "").strip()
        if not secret:
            raise AuthorizationError("Password is required.")
        wanted = (username or "").strip()

        for user in self.list_users():
            if wanted and user.username != wanted:
                continue
            if user.password == secret:
                write_session_user(self.store.session, self.store.keys.session_user, user)
                log.info("login_ok user=%s role=%s", user.username, user.role)
                return user

        log.warning("login_failed user=%s", wanted or "-")
        raise AuthorizationError("Wrong password.")

    def logout(self) -> None:
        user = self.current_user()
        self.store.session.remove(self.store.keys.session_user)
        if user:
            log.info("logout user=%s", user.username)

    def current_user(self) -> Optional[User]:
        return self.store.session_user()

    def can(self, user: User | None, action: str) -> bool:
        return can(user, action)

    def require_action(self, user: User | None, action: str) -> None:
        require_action(user, action)
