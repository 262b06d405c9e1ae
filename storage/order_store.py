"""
Order store — durable offline copy of the order records.

Two implementations of the same contract:
  - SqliteOrderStore: single versioned SQLite table keyed by forma8Salmi,
    the whole record kept as JSON, secondary indexes on executing unit and
    status.
  - InMemoryOrderStore: dict-backed, used by tests and when no database path
    is configured.

Both hand out copies: mutating a returned record never changes stored data
until it is put() back.  Every storage error surfaces as PersistenceFailure.

Public API:
    OrderStore (protocol)
    SqliteOrderStore(path)
    InMemoryOrderStore()
    open_store(path) → OrderStore
"""

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Protocol

from config.schema import ID_FIELD
from exceptions import PersistenceFailure

logger = logging.getLogger(__name__)

# Increment SCHEMA_VERSION when the CREATE statements below change.
SCHEMA_VERSION = 1

_SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS orders (
        forma8Salmi      TEXT PRIMARY KEY,
        unidadEjecutora  TEXT,
        estado           TEXT,
        data             TEXT NOT NULL       -- full record as JSON
    );
    CREATE INDEX IF NOT EXISTS idx_orders_unidad ON orders(unidadEjecutora);
    CREATE INDEX IF NOT EXISTS idx_orders_estado ON orders(estado);
"""

_UPSERT_SQL = """
    INSERT INTO orders (forma8Salmi, unidadEjecutora, estado, data)
    VALUES (?, ?, ?, ?)
    ON CONFLICT(forma8Salmi) DO UPDATE SET
        unidadEjecutora = excluded.unidadEjecutora,
        estado = excluded.estado,
        data = excluded.data
"""


class OrderStore(Protocol):
    """Key-indexed record store the sync and edit paths depend on."""

    def get(self, record_id: str) -> dict[str, Any] | None: ...

    def get_all(self) -> list[dict[str, Any]]: ...

    def put(self, record: dict[str, Any]) -> None: ...

    def clear(self) -> None: ...

    def bulk_replace(self, records: list[dict[str, Any]]) -> None: ...


# ═══════════════════════════════════════════════════════════════════════════
# SQLite
# ═══════════════════════════════════════════════════════════════════════════

class SqliteOrderStore:
    """SQLite-backed order store.  One connection, serialized by a lock."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path)
        self._lock = threading.Lock()
        try:
            if self._db_path.parent and not self._db_path.parent.exists():
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
            # The auto-refresh thread shares this connection.
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False, timeout=10)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA busy_timeout=5000")
            self._ensure_schema()
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceFailure(
                f"Cannot open order store '{self._db_path}': {exc}", operation="open"
            ) from exc

    @property
    def path(self) -> Path:
        return self._db_path

    def _ensure_schema(self) -> None:
        """Create the table and indexes, then record the schema version."""
        current_version = self._conn.execute("PRAGMA user_version").fetchone()[0]
        self._conn.executescript(_SCHEMA_SQL)
        if current_version < SCHEMA_VERSION:
            # PRAGMA does not accept bound parameters
            self._conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION:d}")
            logger.info(
                f"Order store schema upgraded from v{current_version} to v{SCHEMA_VERSION} "
                f"({self._db_path})"
            )
        self._conn.commit()

    def get(self, record_id: str) -> dict[str, Any] | None:
        records = self._fetch_records(
            "get", "SELECT data FROM orders WHERE forma8Salmi = ?", (record_id,)
        )
        return records[0] if records else None

    def get_all(self) -> list[dict[str, Any]]:
        return self._fetch_records("get_all", "SELECT data FROM orders ORDER BY rowid", ())

    def find_by_unit(self, unit: str) -> list[dict[str, Any]]:
        return self._fetch_records(
            "find_by_unit",
            "SELECT data FROM orders WHERE unidadEjecutora = ? ORDER BY rowid",
            (unit,),
        )

    def find_by_status(self, status: str) -> list[dict[str, Any]]:
        return self._fetch_records(
            "find_by_status",
            "SELECT data FROM orders WHERE estado = ? ORDER BY rowid",
            (status,),
        )

    def put(self, record: dict[str, Any]) -> None:
        params = _row_params(record)
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(_UPSERT_SQL, params)
            except sqlite3.Error as exc:
                logger.error(f"Failed to save order '{params[0]}': {exc}")
                raise PersistenceFailure(f"Cannot save order '{params[0]}': {exc}", operation="put") from exc

    def clear(self) -> None:
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute("DELETE FROM orders")
            except sqlite3.Error as exc:
                logger.error(f"Failed to clear order store: {exc}")
                raise PersistenceFailure(f"Cannot clear order store: {exc}", operation="clear") from exc

    def bulk_replace(self, records: list[dict[str, Any]]) -> None:
        """Replace the whole table in one transaction.  All or nothing."""
        params = [_row_params(record) for record in records]
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute("DELETE FROM orders")
                    self._conn.executemany(_UPSERT_SQL, params)
            except sqlite3.Error as exc:
                logger.error(f"Failed to replace order store contents: {exc}")
                raise PersistenceFailure(
                    f"Cannot replace order store contents: {exc}", operation="bulk_replace"
                ) from exc
        logger.info(f"Saved {len(params)} orders to {self._db_path}")

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _fetch_records(self, operation: str, sql: str, params: tuple) -> list[dict[str, Any]]:
        """Run a SELECT on the data column and decode every row."""
        with self._lock:
            try:
                rows = self._conn.execute(sql, params).fetchall()
                return [json.loads(row["data"]) for row in rows]
            except sqlite3.Error as exc:
                raise PersistenceFailure(f"Order store {operation} failed: {exc}", operation=operation) from exc
            except (json.JSONDecodeError, TypeError) as exc:
                logger.error(f"Corrupt order row in {self._db_path}: {exc}")
                raise PersistenceFailure(
                    f"Order store {operation} found an unreadable record: {exc}", operation=operation
                ) from exc


# ═══════════════════════════════════════════════════════════════════════════
# In memory
# ═══════════════════════════════════════════════════════════════════════════

class InMemoryOrderStore:
    """Dict-backed order store with the same copy-on-read semantics."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}

    def get(self, record_id: str) -> dict[str, Any] | None:
        record = self._records.get(record_id)
        return None if record is None else dict(record)

    def get_all(self) -> list[dict[str, Any]]:
        return [dict(record) for record in self._records.values()]

    def find_by_unit(self, unit: str) -> list[dict[str, Any]]:
        return [dict(r) for r in self._records.values() if r.get("unidadEjecutora") == unit]

    def find_by_status(self, status: str) -> list[dict[str, Any]]:
        return [dict(r) for r in self._records.values() if r.get("estado") == status]

    def put(self, record: dict[str, Any]) -> None:
        record_id = _require_id(record, "put")
        self._records[record_id] = dict(record)

    def clear(self) -> None:
        self._records.clear()

    def bulk_replace(self, records: list[dict[str, Any]]) -> None:
        # Validate everything before swapping so a bad record leaves the store intact.
        replacement: dict[str, dict[str, Any]] = {}
        for record in records:
            replacement[_require_id(record, "bulk_replace")] = dict(record)
        self._records = replacement

    def close(self) -> None:
        pass


def open_store(db_path: Path | str | None) -> "SqliteOrderStore | InMemoryOrderStore":
    """Open the SQLite store at *db_path*, or an in-memory store when empty."""
    if not db_path:
        logger.info("No order database configured — using an in-memory store")
        return InMemoryOrderStore()
    return SqliteOrderStore(db_path)


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _require_id(record: dict[str, Any], operation: str) -> str:
    record_id = str(record.get(ID_FIELD) or "").strip()
    if not record_id:
        raise PersistenceFailure(f"Order without {ID_FIELD} cannot be stored", operation=operation)
    return record_id


def _row_params(record: dict[str, Any]) -> tuple[str, str, str, str]:
    record_id = _require_id(record, "put")
    return (
        record_id,
        str(record.get("unidadEjecutora") or ""),
        str(record.get("estado") or ""),
        json.dumps(record, ensure_ascii=False),
    )
