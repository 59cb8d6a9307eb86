"""
Key/value persistence media shared by the draft and status stores.

A medium holds string values under string keys and tells its subscribers
which key changed after every mutation. Stores serialize their whole
state as one JSON value under a single key.

Media:
    MemoryMedium: In-process dictionary. Used by tests and by the CLI when
                  nothing must survive the process.
    SqliteMedium: One `kv` table in an SQLite file. Several processes may
                  open the same file; commits made by another process are
                  detected by poll() and broadcast like local writes.

Usage:
    medium = SqliteMedium(config.storage.path)
    unsubscribe = medium.subscribe(lambda key: print(f"{key} changed"))
    medium.set("playlistDrafts", "{}")
    unsubscribe()
    medium.close()
"""

import sqlite3
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from anisong_playlist.core.exceptions import StorageError
from anisong_playlist.core.logger import get_logger


logger = get_logger(__name__)


# Called with the key whose value changed
ChangeListener = Callable[[str], None]

STORAGE_SCHEMA_VERSION = 1

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class StorageMedium(ABC):
    """
    Abstract string key/value medium with change notification.

    Subclasses implement _read, _write and _delete. Notification and
    subscriber bookkeeping are shared.

    Contract:
        - get/set/remove are synchronous.
        - Every successful set/remove notifies every current subscriber
          with the key, after the value is stored.
        - Subscribers added later only see later changes.
    """

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []
        self._listeners_lock = threading.Lock()

    @abstractmethod
    def _read(self, key: str) -> str | None:
        """Return the stored value or None."""

    @abstractmethod
    def _write(self, key: str, value: str) -> None:
        """Store value under key."""

    @abstractmethod
    def _delete(self, key: str) -> None:
        """Remove key. Removing a missing key is not an error."""

    def get(self, key: str) -> str | None:
        return self._read(key)

    def set(self, key: str, value: str) -> None:
        self._write(key, value)
        self.notify(key)

    def remove(self, key: str) -> None:
        self._delete(key)
        self.notify(key)

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Register a change listener.

        Args:
            listener: Called with the changed key after each mutation.

        Returns:
            A function that removes the listener. Calling it more than
            once has no further effect.
        """
        with self._listeners_lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def notify(self, key: str) -> None:
        """
        Call every current listener with key.

        A listener that raises is logged and does not prevent the others
        from being called.
        """
        with self._listeners_lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(key)
            except Exception:
                logger.exception(f"Storage listener failed for key '{key}'")


class MemoryMedium(StorageMedium):
    """
    In-process medium backed by a dictionary.

    Example:
        medium = MemoryMedium({"animeStatuses": '{"a1": "watched"}'})
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        super().__init__()
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def _read(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def _write(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def _delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SqliteMedium(StorageMedium):
    """
    Medium stored in an SQLite database file.

    Uses a single persistent connection with a lock around every query.
    The database runs in WAL mode so other processes can read while this
    one writes.

    Cross-process notification:
        SQLite increments `PRAGMA data_version` on a connection whenever
        another connection commits. poll() compares it with the last seen
        value and, on change, notifies listeners for every key whose value
        differs from the last snapshot this medium observed.

    Attributes:
        db_path: Path of the database file.

    Raises:
        StorageError: If the database cannot be created or opened, or was
                      written by an incompatible schema version.
    """

    def __init__(self, db_path: Path) -> None:
        super().__init__()
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None
        self._data_version: int | None = None
        self._snapshot: dict[str, str] = {}

        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            self._init_database()
        except (OSError, sqlite3.Error) as e:
            raise StorageError(
                f"Failed to open storage database: {e}",
                details={"path": str(db_path), "original_error": str(e)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # Guarded by self._lock
            )
            self._conn.execute("PRAGMA journal_mode = WAL")
        yield self._conn

    def _init_database(self) -> None:
        with self._lock, self._get_connection() as conn:
            conn.executescript(_SCHEMA_SQL)

            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (STORAGE_SCHEMA_VERSION,))
            elif row[0] != STORAGE_SCHEMA_VERSION:
                raise StorageError(
                    f"Storage version mismatch: expected {STORAGE_SCHEMA_VERSION}, got {row[0]}",
                    details={"expected": STORAGE_SCHEMA_VERSION, "actual": row[0]}
                )
            conn.commit()

            self._data_version = conn.execute("PRAGMA data_version").fetchone()[0]
            self._snapshot = dict(conn.execute("SELECT key, value FROM kv").fetchall())

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _execute_write(self, sql: str, params: tuple, key: str) -> None:
        try:
            with self._lock, self._get_connection() as conn:
                conn.execute(sql, params)
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to write storage key '{key}': {e}",
                details={"path": str(self.db_path), "key": key, "original_error": str(e)}
            ) from e

    def _read(self, key: str) -> str | None:
        try:
            with self._lock, self._get_connection() as conn:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to read storage key '{key}': {e}",
                details={"path": str(self.db_path), "key": key, "original_error": str(e)}
            ) from e
        return row[0] if row else None

    def _write(self, key: str, value: str) -> None:
        self._execute_write(
            "INSERT INTO kv (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
            key,
        )
        self._snapshot[key] = value

    def _delete(self, key: str) -> None:
        self._execute_write("DELETE FROM kv WHERE key = ?", (key,), key)
        self._snapshot.pop(key, None)

    def poll(self) -> list[str]:
        """
        Detect commits made by other connections and notify listeners.

        Nothing polls in the background; the owner calls this when it wants
        outside changes delivered (`anisong match` does before saving).

        Returns:
            Keys whose value changed since the last observation, in sorted
            order. Empty when nothing changed.
        """
        try:
            with self._lock, self._get_connection() as conn:
                version = conn.execute("PRAGMA data_version").fetchone()[0]
                if version == self._data_version:
                    return []
                self._data_version = version
                current = dict(conn.execute("SELECT key, value FROM kv").fetchall())
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to poll storage database: {e}",
                details={"path": str(self.db_path), "original_error": str(e)}
            ) from e

        changed = sorted(
            key for key in set(current) | set(self._snapshot)
            if current.get(key) != self._snapshot.get(key)
        )
        self._snapshot = current

        for key in changed:
            logger.debug(f"Storage key '{key}' changed in another process")
            self.notify(key)
        return changed
