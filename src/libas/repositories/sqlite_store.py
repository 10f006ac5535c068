from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

from libas.domain.errors import StorageError, StorageQuotaError


class SqliteKeyValueStore:
    """Durable surface: one row per storage key, survives restarts.

    Every write takes the next value of a store-wide sequence as its revision,
    so a revision is never reused for a key even after remove/re-set.
    """

    def __init__(self, db_path: Path | str, max_value_bytes: int | None = None):
        self.db_path = str(db_path)
        self.max_value_bytes = max_value_bytes

    def _conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path, timeout=5)
        except sqlite3.Error as exc:
            raise StorageError(f"Storage unavailable: {exc}") from exc
        return conn

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            migrations = [
                (1, self._migration_v1_base),
                (2, self._migration_v2_revisions),
            ]

            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except Exception as exc:
            conn.rollback()
            raise RuntimeError("Storage migration failed. No schema changes were applied.") from exc
        finally:
            conn.close()

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS kv (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        )
        """
        )

    def _migration_v2_revisions(self, cur: sqlite3.Cursor) -> None:
        self._add_column_if_missing(cur, "kv", "revision", "INTEGER NOT NULL DEFAULT 0")
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_sequence (
                id INTEGER PRIMARY KEY CHECK(id = 1),
                last_revision INTEGER NOT NULL
            )
            """
        )
        cur.execute("INSERT OR IGNORE INTO kv_sequence (id, last_revision) VALUES (1, 0)")

    def _add_column_if_missing(self, cur: sqlite3.Cursor, table: str, column: str, definition: str) -> None:
        cur.execute(f"PRAGMA table_info({table})")
        cols = {str(r[1]) for r in cur.fetchall()}
        if column in cols:
            return
        cur.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")

    def get(self, key: str) -> Optional[str]:
        row = self._fetch_one("SELECT value FROM kv WHERE key=?", (key,))
        return None if row is None else str(row[0])

    def revision(self, key: str) -> Optional[int]:
        row = self._fetch_one("SELECT revision FROM kv WHERE key=?", (key,))
        return None if row is None else int(row[0])

    def set(self, key: str, value: str, revision: Optional[int] = None) -> int:
        """Store ``value`` and return the revision assigned to it.

        The durable surface always assigns its own revision; the argument is
        accepted only to satisfy the shared surface contract.
        """
        size = len(value.encode("utf-8"))
        if self.max_value_bytes is not None and size > self.max_value_bytes:
            raise StorageQuotaError(
                f"Value for '{key}' is {size} bytes; quota is {self.max_value_bytes} bytes."
            )

        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN IMMEDIATE")
            cur.execute("UPDATE kv_sequence SET last_revision = last_revision + 1 WHERE id = 1")
            cur.execute("SELECT last_revision FROM kv_sequence WHERE id = 1")
            new_revision = int(cur.fetchone()[0])
            cur.execute(
                """
                INSERT INTO kv (key, value, revision, updated_at) VALUES (?, ?, ?, datetime('now'))
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    revision = excluded.revision,
                    updated_at = excluded.updated_at
                """,
                (key, value, new_revision),
            )
            conn.commit()
            return new_revision
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(f"Could not write '{key}': {exc}") from exc
        finally:
            conn.close()

    def remove(self, key: str) -> bool:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM kv WHERE key=?", (key,))
            conn.commit()
            return cur.rowcount > 0
        except sqlite3.Error as exc:
            raise StorageError(f"Could not remove '{key}': {exc}") from exc
        finally:
            conn.close()

    def keys(self, prefix: str = "") -> list[str]:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT key FROM kv ORDER BY key")
            return [str(r[0]) for r in cur.fetchall() if str(r[0]).startswith(prefix)]
        except sqlite3.Error as exc:
            raise StorageError(f"Could not list keys: {exc}") from exc
        finally:
            conn.close()

    def size_of(self, key: str) -> int:
        value = self.get(key)
        return 0 if value is None else len(value.encode("utf-8"))

    def integrity_check(self) -> str:
        row = self._fetch_one("PRAGMA integrity_check", ())
        return "unknown" if row is None else str(row[0])

    def _fetch_one(self, sql: str, params: tuple) -> Optional[tuple]:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute(sql, params)
            return cur.fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Storage read failed: {exc}") from exc
        finally:
            conn.close()
