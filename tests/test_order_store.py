"""
Tests for storage/order_store.py

Covers the shared store contract (both implementations), SQLite-specific
behaviour (schema version, indexes, reopening, atomic replace), and the
open_store() factory.
"""

import sqlite3

import pytest

from exceptions import PersistenceFailure
from storage.order_store import (
    SCHEMA_VERSION,
    InMemoryOrderStore,
    SqliteOrderStore,
    open_store,
)


# ---------------------------------------------------------------------------
# Helpers / fixtures
# ---------------------------------------------------------------------------

def _make_order(forma8: str, **overrides) -> dict:
    base = {
        "forma8Salmi": forma8,
        "unidadEjecutora": "UE1",
        "estado": "F8 RECIBIDA",
        "comentarios": "",
        "porcentajeAvance": 11,
    }
    base.update(overrides)
    return base


@pytest.fixture(params=["sqlite", "memory"])
def store(request, tmp_path):
    if request.param == "sqlite":
        instance = SqliteOrderStore(tmp_path / "orders.sqlite")
    else:
        instance = InMemoryOrderStore()
    yield instance
    instance.close()


# ═══════════════════════════════════════════════════════════════════════════
# Contract
# ═══════════════════════════════════════════════════════════════════════════

class TestStoreContract:
    def test_put_then_get(self, store):
        store.put(_make_order("A1", comentarios="ñandú, sí"))
        assert store.get("A1") == _make_order("A1", comentarios="ñandú, sí")

    def test_get_missing(self, store):
        assert store.get("nope") is None

    def test_put_is_upsert(self, store):
        store.put(_make_order("A1"))
        store.put(_make_order("A1", estado="ENTREGADA"))
        assert store.get("A1")["estado"] == "ENTREGADA"
        assert len(store.get_all()) == 1

    def test_get_all_keeps_insertion_order_after_update(self, store):
        for forma8 in ["A3", "A1", "A2"]:
            store.put(_make_order(forma8))
        store.put(_make_order("A3", comentarios="editado"))
        assert [r["forma8Salmi"] for r in store.get_all()] == ["A3", "A1", "A2"]

    def test_bulk_replace(self, store):
        store.put(_make_order("OLD"))
        store.bulk_replace([_make_order("A1"), _make_order("A2")])
        assert [r["forma8Salmi"] for r in store.get_all()] == ["A1", "A2"]
        assert store.get("OLD") is None

    def test_bulk_replace_with_invalid_record_keeps_contents(self, store):
        store.put(_make_order("A1"))
        with pytest.raises(PersistenceFailure):
            store.bulk_replace([_make_order("A2"), _make_order("")])
        assert [r["forma8Salmi"] for r in store.get_all()] == ["A1"]

    def test_clear(self, store):
        store.put(_make_order("A1"))
        store.clear()
        assert store.get_all() == []

    def test_put_without_id(self, store):
        with pytest.raises(PersistenceFailure):
            store.put(_make_order("  "))

    def test_returned_records_are_copies(self, store):
        store.put(_make_order("A1"))
        record = store.get("A1")
        record["comentarios"] = "cambiado"
        assert store.get("A1")["comentarios"] == ""

    def test_find_by_unit(self, store):
        store.put(_make_order("A1", unidadEjecutora="UE1"))
        store.put(_make_order("A2", unidadEjecutora="UE2"))
        assert [r["forma8Salmi"] for r in store.find_by_unit("UE2")] == ["A2"]

    def test_find_by_status(self, store):
        store.put(_make_order("A1", estado="FACTURADO"))
        store.put(_make_order("A2", estado="ENTREGADA"))
        store.put(_make_order("A3", estado="FACTURADO"))
        assert [r["forma8Salmi"] for r in store.find_by_status("FACTURADO")] == ["A1", "A3"]


# ═══════════════════════════════════════════════════════════════════════════
# SQLite specifics
# ═══════════════════════════════════════════════════════════════════════════

class TestSqliteStore:
    def test_schema_version_recorded(self, tmp_path):
        path = tmp_path / "orders.sqlite"
        SqliteOrderStore(path).close()

        conn = sqlite3.connect(path)
        try:
            assert conn.execute("PRAGMA user_version").fetchone()[0] == SCHEMA_VERSION
        finally:
            conn.close()

    def test_secondary_indexes_exist(self, tmp_path):
        path = tmp_path / "orders.sqlite"
        SqliteOrderStore(path).close()

        conn = sqlite3.connect(path)
        try:
            names = {
                row[0] for row in conn.execute(
                    "SELECT name FROM sqlite_master WHERE type = 'index' AND tbl_name = 'orders'"
                )
            }
        finally:
            conn.close()
        assert {"idx_orders_unidad", "idx_orders_estado"} <= names

    def test_upgrade_from_unversioned_database(self, tmp_path):
        path = tmp_path / "orders.sqlite"
        sqlite3.connect(path).close()

        store = SqliteOrderStore(path)
        store.put(_make_order("A1"))
        store.close()

        conn = sqlite3.connect(path)
        try:
            assert conn.execute("PRAGMA user_version").fetchone()[0] == SCHEMA_VERSION
        finally:
            conn.close()

    def test_data_survives_reopen(self, tmp_path):
        path = tmp_path / "orders.sqlite"
        store = SqliteOrderStore(path)
        store.bulk_replace([_make_order("A1", comentarios="persistente")])
        store.close()

        reopened = SqliteOrderStore(path)
        try:
            assert reopened.get("A1")["comentarios"] == "persistente"
        finally:
            reopened.close()

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "orders.sqlite"
        SqliteOrderStore(path).close()
        assert path.exists()

    def test_unopenable_path(self, tmp_path):
        with pytest.raises(PersistenceFailure):
            SqliteOrderStore(tmp_path)  # a directory, not a file


# ═══════════════════════════════════════════════════════════════════════════
# open_store
# ═══════════════════════════════════════════════════════════════════════════

class TestOpenStore:
    def test_empty_path_gives_memory_store(self):
        assert isinstance(open_store(""), InMemoryOrderStore)

    def test_path_gives_sqlite_store(self, tmp_path):
        store = open_store(tmp_path / "orders.sqlite")
        try:
            assert isinstance(store, SqliteOrderStore)
        finally:
            store.close()


# ═══════════════════════════════════════════════════════════════════════════
# Corrupt rows
# ═══════════════════════════════════════════════════════════════════════════

def _store_with_corrupt_row(path) -> SqliteOrderStore:
    store = SqliteOrderStore(path)
    store.put(_make_order("A1"))
    conn = sqlite3.connect(path)
    try:
        conn.execute(
            "INSERT INTO orders (forma8Salmi, unidadEjecutora, estado, data) "
            "VALUES ('A2', 'UE1', 'FACTURADO', 'not json')"
        )
        conn.commit()
    finally:
        conn.close()
    return store


class TestCorruptRows:
    @pytest.mark.parametrize("read", [
        lambda s: s.get("A2"),
        lambda s: s.get_all(),
        lambda s: s.find_by_unit("UE1"),
        lambda s: s.find_by_status("FACTURADO"),
    ])
    def test_unreadable_data_raises_persistence_failure(self, tmp_path, read):
        store = _store_with_corrupt_row(tmp_path / "orders.sqlite")
        try:
            with pytest.raises(PersistenceFailure):
                read(store)
        finally:
            store.close()

    def test_healthy_row_still_readable(self, tmp_path):
        store = _store_with_corrupt_row(tmp_path / "orders.sqlite")
        try:
            assert store.get("A1")["forma8Salmi"] == "A1"
        finally:
            store.close()
