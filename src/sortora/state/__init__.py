"""Durable operation log backed by SQLite."""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol

from .errors import MissingOperationError, StateError
from .models import OperationDraft, OperationRecord, OperationType

LOGGER = logging.getLogger(__name__)

MEMORY_DATABASE = ":memory:"

_MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS operations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            type TEXT NOT NULL,
            source TEXT NOT NULL,
            destination TEXT,
            rule_name TEXT,
            confidence REAL,
            created_at REAL NOT NULL,
            undone_at REAL
        );
        CREATE TABLE IF NOT EXISTS files (
            path TEXT PRIMARY KEY,
            category TEXT,
            registered_at REAL NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_operations_created ON operations(created_at);
        """,
    ),
    (
        2,
        "CREATE INDEX IF NOT EXISTS idx_operations_undone ON operations(undone_at);",
    ),
    (
        3,
        """
        ALTER TABLE operations ADD COLUMN compressed INTEGER NOT NULL DEFAULT 0;
        UPDATE operations SET compressed = 1
        WHERE type = 'archive' AND destination LIKE '%.gz' AND source NOT LIKE '%.gz';
        """,
    ),
]


class OperationLogStore(Protocol):
    """Persistence contract required by the executor and undo engine."""

    def insert(self, draft: OperationDraft) -> int: ...

    def get(self, operation_id: int) -> Optional[OperationRecord]: ...

    def list(self, limit: int = 50) -> list[OperationRecord]: ...

    def mark_undone(self, operation_id: int) -> bool: ...

    def update_path_references(self, old: str | Path, new: str | Path) -> int: ...

    def remove_path_reference(self, path: str | Path) -> None: ...

    def list_undoable(self, limit: int = 50) -> list[OperationRecord]: ...

    def last_undoable(self) -> Optional[OperationRecord]: ...


def _to_timestamp(value: datetime) -> float:
    return value.timestamp()


def _from_timestamp(value: Optional[float]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


class OperationLog:
    """SQLite implementation of :class:`OperationLogStore`.

    Records are appended and only ever updated through :meth:`mark_undone`,
    which refuses to overwrite an existing ``undone_at`` value.
    """

    def __init__(self, db_path: str | Path = MEMORY_DATABASE) -> None:
        """Open (and migrate) the log database.

        Args:
            db_path: Database file, or ``":memory:"`` for a transient log.

        Raises:
            StateError: If the database cannot be opened or migrated.
        """
        self._db_path = str(db_path)
        self._lock = threading.Lock()
        try:
            if self._db_path != MEMORY_DATABASE:
                path = Path(self._db_path).expanduser()
                path.parent.mkdir(parents=True, exist_ok=True)
                self._db_path = str(path)
            self._conn = sqlite3.connect(
                self._db_path, check_same_thread=False, isolation_level=None
            )
            self._conn.row_factory = sqlite3.Row
            if self._db_path != MEMORY_DATABASE:
                self._conn.execute("PRAGMA journal_mode=WAL")
                self._conn.execute("PRAGMA synchronous=NORMAL")
            self._migrate()
        except (OSError, sqlite3.Error) as exc:
            raise StateError(f"Unable to open operation log at {self._db_path}: {exc}") from exc

    @property
    def db_path(self) -> str:
        """Return the database location."""
        return self._db_path

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "OperationLog":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # Operations ---------------------------------------------------------

    def insert(self, draft: OperationDraft) -> int:
        """Append a record and return its id."""
        now = _to_timestamp(datetime.now(timezone.utc))
        cursor = self._execute(
            """
            INSERT INTO operations (
                type, source, destination, rule_name, confidence, compressed, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                draft.type.value,
                draft.source,
                draft.destination,
                draft.rule_name,
                draft.confidence,
                int(draft.compressed),
                now,
            ),
        )
        operation_id = int(cursor.lastrowid)
        LOGGER.debug("Logged %s operation #%d for %s", draft.type.value, operation_id, draft.source)
        return operation_id

    def get(self, operation_id: int) -> Optional[OperationRecord]:
        """Return the record with ``operation_id`` or None."""
        row = self._execute("SELECT * FROM operations WHERE id = ?", (operation_id,)).fetchone()
        return self._row_to_record(row) if row else None

    def require(self, operation_id: int) -> OperationRecord:
        """Return the record with ``operation_id``.

        Raises:
            MissingOperationError: If no such record exists.
        """
        record = self.get(operation_id)
        if record is None:
            raise MissingOperationError(f"Operation #{operation_id} not found")
        return record

    def list(self, limit: int = 50) -> list[OperationRecord]:
        """Return up to ``limit`` records, newest first."""
        rows = self._execute(
            "SELECT * FROM operations ORDER BY id DESC LIMIT ?", (max(0, limit),)
        ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def list_undoable(self, limit: int = 50) -> list[OperationRecord]:
        """Return up to ``limit`` records that have not been undone, newest first."""
        rows = self._execute(
            "SELECT * FROM operations WHERE undone_at IS NULL ORDER BY id DESC LIMIT ?",
            (max(0, limit),),
        ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def last_undoable(self) -> Optional[OperationRecord]:
        """Return the most recent record that has not been undone."""
        records = self.list_undoable(1)
        return records[0] if records else None

    def mark_undone(self, operation_id: int) -> bool:
        """Stamp ``undone_at`` once; return False if missing or already undone."""
        now = _to_timestamp(datetime.now(timezone.utc))
        cursor = self._execute(
            "UPDATE operations SET undone_at = ? WHERE id = ? AND undone_at IS NULL",
            (now, operation_id),
        )
        return cursor.rowcount == 1

    # Path references ----------------------------------------------------

    def register_path(self, path: str | Path, category: Optional[str] = None) -> None:
        """Remember a tracked file path (as reported by the scanner)."""
        self._execute(
            "INSERT OR REPLACE INTO files (path, category, registered_at) VALUES (?, ?, ?)",
            (str(path), category, _to_timestamp(datetime.now(timezone.utc))),
        )

    def path_reference(self, path: str | Path) -> Optional[dict[str, Any]]:
        """Return the stored reference for ``path`` if any."""
        row = self._execute("SELECT * FROM files WHERE path = ?", (str(path),)).fetchone()
        return dict(row) if row else None

    def update_path_references(self, old: str | Path, new: str | Path) -> int:
        """Repoint stored references from ``old`` to ``new``; return rows changed."""
        with self._lock:
            try:
                self._conn.execute("BEGIN")
                self._conn.execute("DELETE FROM files WHERE path = ?", (str(new),))
                cursor = self._conn.execute(
                    "UPDATE files SET path = ? WHERE path = ?", (str(new), str(old))
                )
                self._conn.execute("COMMIT")
            except sqlite3.Error as exc:
                self._conn.execute("ROLLBACK")
                raise StateError(f"Failed to update path references: {exc}") from exc
        return cursor.rowcount

    def remove_path_reference(self, path: str | Path) -> None:
        """Forget a tracked path (after a delete)."""
        self._execute("DELETE FROM files WHERE path = ?", (str(path),))

    # Internal helpers ---------------------------------------------------

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                return self._conn.execute(sql, params)
            except sqlite3.Error as exc:
                raise StateError(f"Operation log query failed: {exc}") from exc

    def _migrate(self) -> None:
        self._conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY)")
        row = self._conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        current = row[0] or 0
        for version, script in _MIGRATIONS:
            if version <= current:
                continue
            self._conn.executescript(
                f"BEGIN;\n{script}\nINSERT INTO schema_version (version) VALUES ({version});\nCOMMIT;"
            )
            LOGGER.debug("Applied operation log migration %d", version)

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> OperationRecord:
        return OperationRecord(
            id=row["id"],
            type=OperationType(row["type"]),
            source=row["source"],
            destination=row["destination"],
            rule_name=row["rule_name"],
            confidence=row["confidence"],
            compressed=bool(row["compressed"]),
            created_at=_from_timestamp(row["created_at"]),
            undone_at=_from_timestamp(row["undone_at"]),
        )


__all__ = [
    "OperationLog",
    "OperationLogStore",
    "OperationDraft",
    "OperationRecord",
    "OperationType",
    "StateError",
    "MissingOperationError",
    "MEMORY_DATABASE",
]
