from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Protocol

import redis

from wellness_insights.config import secure_path


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class SqliteStorage:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path.expanduser().resolve(strict=False)
        if self.db_path.exists() and self.db_path.is_symlink():
            raise ValueError(f"refusing symlinked database file: {self.db_path}")
        if self.db_path.parent.exists() and self.db_path.parent.is_symlink():
            raise ValueError(f"refusing symlinked database directory: {self.db_path.parent}")
        self.db_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._lock = threading.RLock()
        self._init_schema()
        secure_path(self.db_path, 0o600)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _init_schema(self) -> None:
        with self._lock, self._conn:
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS app_state(
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                )
                """
            )

    def get_item(self, key: str) -> str | None:
        with self._lock:
            row = self._conn.execute("SELECT value FROM app_state WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return str(row[0])

    def set_item(self, key: str, value: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT INTO app_state(key, value) VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )

    def remove_item(self, key: str) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM app_state WHERE key = ?", (key,))


class RedisStorage:
    def __init__(self, redis_url: str | None = None, client: redis.Redis | None = None) -> None:
        if client is None and redis_url is None:
            raise ValueError("RedisStorage needs a redis_url or a client")
        self.client = client if client is not None else redis.Redis.from_url(redis_url, decode_responses=True)

    def ping(self) -> None:
        self.client.ping()

    def get_item(self, key: str) -> str | None:
        value = self.client.get(key)
        if value is None:
            return None
        return value if isinstance(value, str) else value.decode("utf-8")

    def set_item(self, key: str, value: str) -> None:
        self.client.set(name=key, value=value)

    def remove_item(self, key: str) -> None:
        self.client.delete(key)
