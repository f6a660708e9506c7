"""Shared SQLite engine for in-memory project stores.

Project files are loaded fully into memory (``Connection.deserialize``)
and exported back to bytes (``Connection.serialize``). Both calls and
the UPSERT syntax depend on the SQLite runtime Python was built with,
so the runtime is probed once per process. The probe result is cached
for the process lifetime and shared by every store. A failed probe is
not cached: the next call probes again.

"""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass

from openfolio.errors import EngineUnavailableError

logger = logging.getLogger(__name__)

# ON CONFLICT ... DO UPDATE (UPSERT) needs SQLite 3.24
_MIN_SQLITE_VERSION = (3, 24, 0)


@dataclass(frozen=True)
class SqliteEngine:
    """Factory for in-memory SQLite connections.

    Attributes:
        sqlite_version: Version string of the linked SQLite library.

    """

    sqlite_version: str

    def connect(self, data: bytes | None = None) -> sqlite3.Connection:
        """Open an in-memory database, optionally loaded from file bytes.

        The connection runs in autocommit mode; callers manage
        transactions explicitly with BEGIN/COMMIT/ROLLBACK.

        Args:
            data: Raw SQLite file contents. None or empty bytes yield a
                blank database.

        Returns:
            Open connection owned by the caller.

        Raises:
            sqlite3.DatabaseError: If the bytes cannot be loaded.

        """
        conn = sqlite3.connect(":memory:", isolation_level=None)
        if data:
            try:
                conn.deserialize(bytes(data))
            except sqlite3.Error:
                conn.close()
                raise
        return conn

    def export(self, conn: sqlite3.Connection) -> bytes:
        """Serialize the main database of ``conn`` to file bytes."""
        return conn.serialize()


def _probe() -> SqliteEngine:
    """Check that the SQLite runtime supports everything stores need."""
    if sqlite3.sqlite_version_info < _MIN_SQLITE_VERSION:
        msg = (
            f"SQLite {'.'.join(map(str, _MIN_SQLITE_VERSION))} or newer is "
            f"required, found {sqlite3.sqlite_version}"
        )
        raise EngineUnavailableError(msg)
    if not hasattr(sqlite3.Connection, "serialize"):
        msg = "This Python build lacks sqlite3 serialize/deserialize support"
        raise EngineUnavailableError(msg)

    source = sqlite3.connect(":memory:")
    target = sqlite3.connect(":memory:")
    try:
        source.execute("CREATE TABLE probe (value INTEGER)")
        source.execute("INSERT INTO probe VALUES (1)")
        target.deserialize(source.serialize())
        row = target.execute("SELECT value FROM probe").fetchone()
    finally:
        source.close()
        target.close()

    if row != (1,):
        msg = "SQLite serialize/deserialize round trip failed"
        raise EngineUnavailableError(msg)
    return SqliteEngine(sqlite_version=sqlite3.sqlite_version)


class _EngineCache:
    """Process-wide, lazily initialized engine handle."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._engine: SqliteEngine | None = None

    def get(self) -> SqliteEngine:
        # Concurrent first callers block on the lock and reuse the result
        with self._lock:
            if self._engine is None:
                try:
                    engine = _probe()
                except sqlite3.Error as exc:
                    msg = f"SQLite engine initialization failed: {exc}"
                    raise EngineUnavailableError(msg) from exc
                logger.info("SQLite engine ready (SQLite %s)", engine.sqlite_version)
                self._engine = engine
            return self._engine

    def reset(self) -> None:
        with self._lock:
            self._engine = None


_cache = _EngineCache()


def get_engine() -> SqliteEngine:
    """Return the shared engine, initializing it on first use.

    Raises:
        EngineUnavailableError: If the runtime probe fails. Nothing is
            cached in that case, so a later call retries.

    """
    return _cache.get()


def reset_engine() -> None:
    """Drop the cached engine so the next call probes again."""
    _cache.reset()
