from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from buddy_match.errors import StoreError


@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...
    def set(self, key: str, value: Any) -> None: ...
    def delete(self, key: str) -> None: ...
    def get_by_prefix(self, prefix: str) -> list[Any]: ...
    def update(self, key: str, mutate: Callable[[Any | None], Any | None]) -> Any | None: ...
    def delete_if(self, key: str, predicate: Callable[[Any], bool]) -> bool: ...


def _utc_now() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds")


def _escape_like(prefix: str) -> str:
    return prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqliteKVStore:
    """Durable string-keyed store of JSON values.

    One sqlite connection serves the whole process and the driver does not
    allow concurrent use of it, so every statement runs under a single
    process-wide mutex. That mutex serializes connection access only; it is
    not a matchmaking lock. Coordination is per key: ``update`` and
    ``delete_if`` each read and write exactly one key inside one
    ``BEGIN IMMEDIATE`` transaction, and no caller holds the mutex or a
    transaction across two keys. Other processes sharing the database file
    are serialized by sqlite's own write lock.
    """

    def __init__(self, db_path: str):
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False, isolation_level=None)
            self._conn.row_factory = sqlite3.Row
            self._initialize_schema()
        except sqlite3.Error as ex:
            raise StoreError(f"Cannot open store at {db_path}: {ex}") from ex
        self._mutex = threading.RLock()

    def close(self) -> None:
        self._conn.close()

    def get(self, key: str) -> Any | None:
        with self._mutex:
            try:
                row = self._conn.execute(
                    "SELECT value_json FROM kv WHERE key = ? LIMIT 1",
                    (key,),
                ).fetchone()
            except sqlite3.Error as ex:
                raise StoreError(f"get {key!r} failed: {ex}") from ex
        if row is None:
            return None
        return json.loads(row["value_json"])

    def set(self, key: str, value: Any) -> None:
        with self._mutex:
            try:
                self._write(key, value)
            except sqlite3.Error as ex:
                raise StoreError(f"set {key!r} failed: {ex}") from ex

    def delete(self, key: str) -> None:
        with self._mutex:
            try:
                self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            except sqlite3.Error as ex:
                raise StoreError(f"delete {key!r} failed: {ex}") from ex

    def get_by_prefix(self, prefix: str) -> list[Any]:
        with self._mutex:
            try:
                rows = self._conn.execute(
                    "SELECT value_json FROM kv WHERE key LIKE ? ESCAPE '\\'",
                    (_escape_like(prefix) + "%",),
                ).fetchall()
            except sqlite3.Error as ex:
                raise StoreError(f"prefix scan {prefix!r} failed: {ex}") from ex
        return [json.loads(row["value_json"]) for row in rows]

    def update(self, key: str, mutate: Callable[[Any | None], Any | None]) -> Any | None:
        """Atomically replace the value at ``key`` with ``mutate(current)``.

        ``mutate`` returning None leaves the key untouched. Returns the value
        stored under ``key`` once the call completes.
        """
        with self._mutex:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
                try:
                    row = self._conn.execute(
                        "SELECT value_json FROM kv WHERE key = ? LIMIT 1",
                        (key,),
                    ).fetchone()
                    current = json.loads(row["value_json"]) if row is not None else None
                    updated = mutate(current)
                    if updated is not None:
                        self._write(key, updated)
                    self._conn.execute("COMMIT")
                except BaseException:
                    self._conn.execute("ROLLBACK")
                    raise
            except sqlite3.Error as ex:
                raise StoreError(f"update {key!r} failed: {ex}") from ex
        return updated if updated is not None else current

    def delete_if(self, key: str, predicate: Callable[[Any], bool]) -> bool:
        """Atomically delete ``key`` if it exists and ``predicate(value)`` holds."""
        with self._mutex:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
                try:
                    row = self._conn.execute(
                        "SELECT value_json FROM kv WHERE key = ? LIMIT 1",
                        (key,),
                    ).fetchone()
                    deleted = row is not None and predicate(json.loads(row["value_json"]))
                    if deleted:
                        self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
                    self._conn.execute("COMMIT")
                except BaseException:
                    self._conn.execute("ROLLBACK")
                    raise
            except sqlite3.Error as ex:
                raise StoreError(f"conditional delete {key!r} failed: {ex}") from ex
        return deleted

    def _write(self, key: str, value: Any) -> None:
        self._conn.execute(
            """
            INSERT INTO kv (key, value_json, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value_json = excluded.value_json, updated_at = excluded.updated_at
            """,
            (key, json.dumps(value, ensure_ascii=True), _utc_now()),
        )

    def _initialize_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value_json TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )
