from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
import threading
from typing import Any

from ..core.db import ConnectionPool
from ..core.exceptions import DatabaseError

logger = logging.getLogger(__name__)

_SIZED_TYPES = {"char", "varchar", "nchar", "nvarchar", "binary", "varbinary"}


@dataclass
class ColumnInfo:
    name: str
    data_type: str
    nullable: bool
    key: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.data_type, "nullable": self.nullable, "key": self.key}


@dataclass
class TableInfo:
    name: str
    columns: list[ColumnInfo] = field(default_factory=list)


def _column_type(row: Any) -> str:
    type_name = str(row.type_name).lower()
    size = getattr(row, "column_size", None)
    if type_name in _SIZED_TYPES and size:
        return f"{type_name}({size})"
    return type_name


class SchemaCache:
    """Table and column descriptors of the connected database.

    Introspection goes through the ODBC catalog functions of the cursor
    (``tables``, ``columns``, ``primaryKeys``, ``foreignKeys``,
    ``statistics``), so it does not depend on the server's system views.
    """

    def __init__(self, pool: ConnectionPool, schema: str = "") -> None:
        self._pool = pool
        self._schema = schema or None
        self._lock = threading.RLock()
        self.tables: dict[str, TableInfo] = {}
        self.loaded_at: datetime | None = None

    def load(self) -> None:
        tables: dict[str, TableInfo] = {}
        try:
            with self._pool.connection() as conn:
                cursor = conn.cursor()
                try:
                    table_names = [
                        row.table_name
                        for row in cursor.tables(schema=self._schema, tableType="TABLE").fetchall()
                    ]
                    for name in table_names:
                        tables[name] = self._load_table(cursor, name)
                finally:
                    cursor.close()
                # End the catalog read transaction before the connection is reused
                conn.rollback()
        except self._pool.driver_error as e:
            logger.error(f"Schema introspection failed: {e}")
            raise DatabaseError(f"Schema introspection failed: {e}") from e

        with self._lock:
            self.tables = tables
            self.loaded_at = datetime.now(timezone.utc)
        logger.info(f"Schema loaded: {len(tables)} tables")

    def _load_table(self, cursor: Any, name: str) -> TableInfo:
        columns = sorted(
            cursor.columns(table=name, schema=self._schema).fetchall(),
            key=lambda row: row.ordinal_position,
        )
        primary = {row.column_name for row in cursor.primaryKeys(name, schema=self._schema).fetchall()}
        foreign = {
            row.fkcolumn_name
            for row in cursor.foreignKeys(foreignTable=name, foreignSchema=self._schema).fetchall()
        }
        unique = {
            row.column_name
            for row in cursor.statistics(name, schema=self._schema, unique=True).fetchall()
            if row.column_name and not row.non_unique
        }

        table = TableInfo(name=name)
        for row in columns:
            if row.column_name in primary:
                key = "PRI"
            elif row.column_name in unique:
                key = "UNI"
            elif row.column_name in foreign:
                key = "MUL"
            else:
                key = ""
            table.columns.append(
                ColumnInfo(
                    name=row.column_name,
                    data_type=_column_type(row),
                    nullable=bool(row.nullable),
                    key=key,
                )
            )
        return table

    def ensure_loaded(self) -> None:
        with self._lock:
            if self.loaded_at is None:
                logger.info("Schema not loaded, loading now...")
                self.load()

    def table_names(self) -> list[str]:
        with self._lock:
            return list(self.tables)

    def descriptor(self) -> dict[str, list[dict[str, Any]]]:
        """Mapping of table name to its ordered column descriptors."""
        with self._lock:
            return {
                name: [column.to_dict() for column in table.columns]
                for name, table in self.tables.items()
            }


def format_schema_for_prompt(descriptor: dict[str, list[dict[str, Any]]]) -> str:
    """One line per table, e.g. ``Table "User": id (int), email (varchar(255), nullable)``."""
    lines: list[str] = []
    for table, columns in descriptor.items():
        described = ", ".join(
            f"{col['name']} ({col['type']}{', nullable' if col['nullable'] else ''})" for col in columns
        )
        lines.append(f'Table "{table}": {described}')
    return "\n".join(lines)
