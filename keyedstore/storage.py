"""Transactional storage of ordered byte tables."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from keyedstore.errors import StorageError

_TABLE_PREFIX = "kv:"


def _quote(name: str) -> str:
    return '"' + (_TABLE_PREFIX + name).replace('"', '""') + '"'


class Storage:
    """Named tables mapping byte keys to byte values, kept in key order.

    Every change joins a pending transaction that :meth:`commit` makes
    durable and :meth:`rollback` discards.
    """

    def __init__(self, connection: sqlite3.Connection, path: Optional[Path] = None) -> None:
        self._conn = connection
        self._lock = threading.RLock()
        self.path = path

    @classmethod
    def open(cls, path: Union[str, Path], create: bool = False) -> "Storage":
        """Open the storage file at ``path``.

        With ``create`` a missing or empty file is initialised; without it
        the file must already exist.
        """
        location = Path(path)
        if not create and not location.exists():
            raise StorageError(f"Database file not found: {location}")
        try:
            connection = sqlite3.connect(
                str(location), isolation_level=None, check_same_thread=False
            )
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        storage = cls(connection, location)
        storage._validate()
        return storage

    @classmethod
    def in_memory(cls) -> "Storage":
        """Create an empty storage that lives in memory only."""
        connection = sqlite3.connect(
            ":memory:", isolation_level=None, check_same_thread=False
        )
        return cls(connection)

    def __enter__(self) -> "Storage":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _guard(self) -> Iterator[None]:
        with self._lock:
            try:
                yield
            except sqlite3.Error as exc:
                raise StorageError(str(exc)) from exc

    def _validate(self) -> None:
        try:
            with self._guard():
                self._conn.execute("SELECT count(*) FROM sqlite_master").fetchone()
        except StorageError:
            self._conn.close()
            raise

    def _begin(self) -> None:
        if not self._conn.in_transaction:
            self._conn.execute("BEGIN")

    def _require(self, name: str) -> None:
        if not self.has_table(name):
            raise StorageError(f"Table {name} does not exist")

    def _set_cache_size(self, size_bytes: int) -> None:
        kib = max(1, int(size_bytes) // 1024)
        with self._guard():
            self._conn.execute(f"PRAGMA cache_size = -{kib}")

    def open_table(self, name: str) -> None:
        """Create the table ``name`` if it does not exist yet."""
        with self._guard():
            self._begin()
            self._conn.execute(
                f"CREATE TABLE IF NOT EXISTS {_quote(name)} "
                "(key BLOB PRIMARY KEY NOT NULL, value BLOB NOT NULL)"
            )

    def has_table(self, name: str) -> bool:
        """Tell whether the table ``name`` exists."""
        with self._guard():
            row = self._conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
                (_TABLE_PREFIX + name,),
            ).fetchone()
        return row is not None

    def insert(self, table: str, key: bytes, value: bytes) -> Optional[bytes]:
        """Store ``value`` under ``key``; return the value it replaced, if any."""
        with self._guard():
            previous = self.get(table, key)
            self._begin()
            self._conn.execute(
                f"INSERT OR REPLACE INTO {_quote(table)} (key, value) VALUES (?, ?)",
                (bytes(key), bytes(value)),
            )
        return previous

    def get(self, table: str, key: bytes) -> Optional[bytes]:
        """Return the value stored under ``key``, or ``None``."""
        with self._guard():
            self._require(table)
            row = self._conn.execute(
                f"SELECT value FROM {_quote(table)} WHERE key = ?", (bytes(key),)
            ).fetchone()
        return None if row is None else bytes(row[0])

    def remove(self, table: str, key: bytes) -> Optional[bytes]:
        """Delete ``key``; return the value it held, or ``None``."""
        with self._guard():
            previous = self.get(table, key)
            if previous is not None:
                self._begin()
                self._conn.execute(
                    f"DELETE FROM {_quote(table)} WHERE key = ?", (bytes(key),)
                )
        return previous

    def items(self, table: str) -> list[tuple[bytes, bytes]]:
        """Return every ``(key, value)`` pair of the table, ordered by key bytes."""
        with self._guard():
            self._require(table)
            rows = self._conn.execute(
                f"SELECT key, value FROM {_quote(table)} ORDER BY key"
            ).fetchall()
        return [(bytes(key), bytes(value)) for key, value in rows]

    def length(self, table: str) -> int:
        """Return the number of entries in the table."""
        with self._guard():
            self._require(table)
            (count,) = self._conn.execute(
                f"SELECT count(*) FROM {_quote(table)}"
            ).fetchone()
        return int(count)

    def commit(self) -> None:
        """Make every pending change durable."""
        with self._guard():
            if self._conn.in_transaction:
                self._conn.execute("COMMIT")

    def rollback(self) -> None:
        """Discard every pending change."""
        with self._guard():
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")

    def close(self) -> None:
        """Close the storage; pending changes are discarded."""
        with self._guard():
            self._conn.close()