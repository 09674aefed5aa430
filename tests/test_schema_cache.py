"""Tests for schema introspection through ODBC catalog calls."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from conftest import fake_pool
from sql_agent.core.db import ConnectionPool
from sql_agent.core.exceptions import DatabaseError
from sql_agent.schema.cache import SchemaCache, format_schema_for_prompt


class FakeError(Exception):
    pass


def _rows(*rows):
    return SimpleNamespace(fetchall=lambda: list(rows))


def _col(name, type_name, nullable, position, size=None):
    return SimpleNamespace(
        column_name=name, type_name=type_name, nullable=nullable, ordinal_position=position, column_size=size
    )


class CatalogCursor:
    """Mimics the catalog functions of a pyodbc cursor."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.closed = False

    def tables(self, schema=None, tableType=None):
        if self.fail:
            raise FakeError("permission denied")
        return _rows(SimpleNamespace(table_name="User"), SimpleNamespace(table_name="Post"))

    def columns(self, table=None, schema=None):
        if table == "User":
            # Deliberately out of ordinal order
            return _rows(
                _col("email", "VARCHAR", 0, 2, 255),
                _col("id", "INT", 0, 1),
                _col("nickname", "varchar", 1, 3, 50),
            )
        return _rows(
            _col("id", "INT", 0, 1),
            _col("userId", "INT", 0, 2),
            _col("body", "TEXT", 1, 3),
        )

    def primaryKeys(self, table, schema=None):
        return _rows(SimpleNamespace(column_name="id", key_seq=1))

    def foreignKeys(self, foreignTable=None, foreignSchema=None):
        if foreignTable == "Post":
            return _rows(SimpleNamespace(fkcolumn_name="userId"))
        return _rows()

    def statistics(self, table, schema=None, unique=False):
        if table == "User":
            return _rows(
                SimpleNamespace(column_name=None, non_unique=None),
                SimpleNamespace(column_name="id", non_unique=0),
                SimpleNamespace(column_name="email", non_unique=0),
            )
        return _rows()

    def close(self):
        self.closed = True


class CatalogConnection:
    def __init__(self, fail: bool = False):
        self.cursor_obj = CatalogCursor(fail)
        self.rollbacks = 0

    def cursor(self):
        return self.cursor_obj

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        pass


def _pool(fail: bool = False) -> ConnectionPool:
    # No reset on return, so only rollbacks issued by the cache are counted
    return fake_pool(lambda: CatalogConnection(fail), FakeError, reset_on_return=None)


class TestSchemaCache:
    def test_descriptor_shape(self):
        cache = SchemaCache(_pool())
        cache.load()

        descriptor = cache.descriptor()

        assert list(descriptor) == ["User", "Post"]
        assert descriptor["User"] == [
            {"name": "id", "type": "int", "nullable": False, "key": "PRI"},
            {"name": "email", "type": "varchar(255)", "nullable": False, "key": "UNI"},
            {"name": "nickname", "type": "varchar(50)", "nullable": True, "key": ""},
        ]
        assert descriptor["Post"][1] == {"name": "userId", "type": "int", "nullable": False, "key": "MUL"}
        assert cache.loaded_at is not None

    def test_ensure_loaded_loads_once(self, monkeypatch):
        cache = SchemaCache(_pool())
        calls = []
        original = cache.load

        def counting_load():
            calls.append(1)
            original()

        monkeypatch.setattr(cache, "load", counting_load)

        cache.ensure_loaded()
        cache.ensure_loaded()

        assert len(calls) == 1
        assert cache.table_names() == ["User", "Post"]

    def test_driver_error_becomes_database_error(self):
        cache = SchemaCache(_pool(fail=True))
        with pytest.raises(DatabaseError, match="permission denied"):
            cache.load()
        assert cache.loaded_at is None

    def test_cursor_closed_after_load(self):
        pool = _pool()
        cache = SchemaCache(pool)
        cache.load()
        with pool.connection() as conn:
            assert conn.cursor_obj.closed

    def test_catalog_read_transaction_is_ended(self):
        pool = _pool()
        SchemaCache(pool).load()
        with pool.connection() as conn:
            assert conn.rollbacks == 1


class TestFormatSchemaForPrompt:
    def test_one_line_per_table(self):
        descriptor = {
            "User": [
                {"name": "id", "type": "int", "nullable": False, "key": "PRI"},
                {"name": "email", "type": "varchar(255)", "nullable": True, "key": ""},
            ],
            "Post": [{"name": "id", "type": "int", "nullable": False, "key": "PRI"}],
        }
        assert format_schema_for_prompt(descriptor) == (
            'Table "User": id (int), email (varchar(255), nullable)\n'
            'Table "Post": id (int)'
        )

    def test_empty_schema(self):
        assert format_schema_for_prompt({}) == ""
