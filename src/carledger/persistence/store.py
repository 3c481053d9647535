"""Ledger Store - ordered key-value world state on SQLite.

Holds every primary record and every composite index entry in one table
keyed by the UTF-8 encoding of the key. SQLite compares BLOBs with memcmp,
so range and prefix scans come back in byte-wise key order.

Each invocation runs inside :meth:`SQLiteLedgerStore.transaction`, a single
``BEGIN IMMEDIATE`` transaction serialized behind a re-entrant lock. Writes
become visible together on commit and are all discarded on failure.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..errors import StorageError
from .keys import (
    NAMESPACE,
    PREFIX_UPPER_BOUND,
    create_composite_key,
    validate_simple_key,
)

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"

# SQL schema for world state
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS world_state (
    key BLOB PRIMARY KEY,
    value BLOB NOT NULL
) WITHOUT ROWID;
"""


@runtime_checkable
class LedgerStore(Protocol):
    """Contract the transaction handlers rely on."""

    def get(self, key: str) -> bytes | None: ...

    def put(self, key: str, value: bytes) -> None: ...

    def delete(self, key: str) -> None: ...

    def scan_range(self, start_key: str, end_key: str) -> Iterator[tuple[str, bytes]]: ...

    def scan_prefix(
        self, index_name: str, parts: Sequence[str]
    ) -> Iterator[tuple[str, bytes]]: ...

    def put_composite(self, index_name: str, parts: Sequence[str], value: bytes) -> None: ...

    def delete_composite(self, index_name: str, parts: Sequence[str]) -> None: ...

    def transaction(self): ...


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    """Translate sqlite3 failures into StorageError."""
    try:
        yield
    except sqlite3.Error as e:
        logger.error(f"World state {operation} failed: {e}")
        raise StorageError(f"Failed to {operation} world state: {e}") from e


class SQLiteLedgerStore:
    """SQLite-backed ordered key-value store.

    Example:
        with SQLiteLedgerStore("data/carledger.db") as store:
            with store.transaction():
                store.put("car1", b'{"Id": "car1"}')
                store.put_composite("Colour~OwnerId~Id", ["blue", "person1", "car1"], b"\\x00")

            for key, value in store.scan_prefix("Colour~OwnerId~Id", ["blue"]):
                ...
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Open (or create) the world state database.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
                Defaults to data/carledger.db
        """
        if db_path is None:
            db_path = Path.cwd() / "data" / "carledger.db"

        if str(db_path) != MEMORY_DB:
            db_path = Path(db_path)
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._depth = 0
        self._ensure_connection()
        self._ensure_schema()

    def _ensure_connection(self) -> None:
        """Ensure database connection is established."""
        if self._conn is None:
            with _storage_errors("open"):
                # Autocommit mode; transactions are issued explicitly
                self._conn = sqlite3.connect(
                    self.db_path,
                    isolation_level=None,
                    check_same_thread=False,
                )
                if self.db_path != MEMORY_DB:
                    self._conn.execute("PRAGMA journal_mode = WAL")
                    self._conn.execute("PRAGMA synchronous = NORMAL")
                self._conn.execute("PRAGMA busy_timeout = 5000")

    def _ensure_schema(self) -> None:
        """Ensure database schema exists."""
        with _storage_errors("initialise"):
            self._get_conn().executescript(SCHEMA_SQL)

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection, ensuring it's established."""
        self._ensure_connection()
        assert self._conn is not None
        return self._conn

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator[SQLiteLedgerStore]:
        """Run the enclosed block as one atomic, serializable unit.

        Nested calls join the outermost transaction; only the outermost
        block commits or rolls back.
        """
        with self._lock:
            if self._depth > 0:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            conn = self._get_conn()
            with _storage_errors("begin transaction on"):
                conn.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield self
            except BaseException:
                self._depth = 0
                try:
                    conn.execute("ROLLBACK")
                except sqlite3.Error as rollback_error:
                    # The block's own exception is the one callers classify
                    logger.error(f"World state rollback failed: {rollback_error}")
                raise
            self._depth = 0
            try:
                with _storage_errors("commit"):
                    conn.execute("COMMIT")
            except StorageError:
                if conn.in_transaction:
                    with _storage_errors("roll back"):
                        conn.execute("ROLLBACK")
                raise

    # -----------------------------------------------------------------------
    # Primary keys
    # -----------------------------------------------------------------------

    def get(self, key: str) -> bytes | None:
        """Return the value stored under ``key`` or None when absent."""
        validate_simple_key(key)
        return self._get_raw(key)

    def put(self, key: str, value: bytes) -> None:
        """Store ``value`` under ``key``, overwriting any prior value."""
        validate_simple_key(key)
        self._put_raw(key, value)

    def delete(self, key: str) -> None:
        """Remove ``key``. Deleting an absent key is not an error."""
        validate_simple_key(key)
        self._delete_raw(key)

    def scan_range(self, start_key: str = "", end_key: str = "") -> Iterator[tuple[str, bytes]]:
        """Iterate primary keys in ``[start_key, end_key)``.

        Empty bounds leave that side open. Composite keys are never returned.
        """
        lower = start_key.encode("utf-8") if start_key else b"\x01"
        if lower.startswith(NAMESPACE.encode("utf-8")):
            lower = b"\x01"

        with self._lock, _storage_errors("scan"):
            if end_key:
                cursor = self._get_conn().execute(
                    "SELECT key, value FROM world_state WHERE key >= ? AND key < ? ORDER BY key",
                    (lower, end_key.encode("utf-8")),
                )
            else:
                cursor = self._get_conn().execute(
                    "SELECT key, value FROM world_state WHERE key >= ? ORDER BY key",
                    (lower,),
                )
            rows = cursor.fetchall()

        for key, value in rows:
            yield bytes(key).decode("utf-8"), bytes(value)

    # -----------------------------------------------------------------------
    # Composite keys
    # -----------------------------------------------------------------------

    def put_composite(self, index_name: str, parts: Sequence[str], value: bytes) -> None:
        self._put_raw(create_composite_key(index_name, parts), value)

    def delete_composite(self, index_name: str, parts: Sequence[str]) -> None:
        self._delete_raw(create_composite_key(index_name, parts))

    def get_composite(self, index_name: str, parts: Sequence[str]) -> bytes | None:
        return self._get_raw(create_composite_key(index_name, parts))

    def scan_prefix(
        self, index_name: str, parts: Sequence[str] = ()
    ) -> Iterator[tuple[str, bytes]]:
        """Iterate composite keys whose leading parts equal ``parts``."""
        prefix = create_composite_key(index_name, parts).encode("utf-8")

        with self._lock, _storage_errors("scan"):
            rows = (
                self._get_conn()
                .execute(
                    "SELECT key, value FROM world_state WHERE key >= ? AND key < ? ORDER BY key",
                    (prefix, prefix + PREFIX_UPPER_BOUND),
                )
                .fetchall()
            )

        for key, value in rows:
            yield bytes(key).decode("utf-8"), bytes(value)

    # -----------------------------------------------------------------------
    # Raw access
    # -----------------------------------------------------------------------

    def _get_raw(self, key: str) -> bytes | None:
        with self._lock, _storage_errors("read from"):
            row = (
                self._get_conn()
                .execute("SELECT value FROM world_state WHERE key = ?", (key.encode("utf-8"),))
                .fetchone()
            )
        return bytes(row[0]) if row is not None else None

    def _put_raw(self, key: str, value: bytes) -> None:
        with self._lock, _storage_errors("write to"):
            self._get_conn().execute(
                """
                INSERT INTO world_state (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key.encode("utf-8"), bytes(value)),
            )

    def _delete_raw(self, key: str) -> None:
        with self._lock, _storage_errors("delete from"):
            self._get_conn().execute(
                "DELETE FROM world_state WHERE key = ?", (key.encode("utf-8"),)
            )

    def count(self) -> int:
        """Count every stored key, index entries included."""
        with self._lock, _storage_errors("count"):
            row = self._get_conn().execute("SELECT COUNT(*) FROM world_state").fetchone()
        return row[0] if row else 0

    def ping(self) -> None:
        """Raise StorageError when the database is unreachable."""
        with self._lock, _storage_errors("query"):
            self._get_conn().execute("SELECT 1")

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> SQLiteLedgerStore:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes connection."""
        self.close()


__all__ = ["LedgerStore", "SQLiteLedgerStore", "MEMORY_DB"]
