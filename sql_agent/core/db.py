"""Database connection pool and statement execution."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
import logging
from typing import Any, Generator, Iterable, Optional

from sqlalchemy import create_engine, exc as sa_exc
from sqlalchemy.engine import Engine
from sqlalchemy.pool import Pool

from .config import IdentityLookup, Settings
from .exceptions import DatabaseError

logger = logging.getLogger(__name__)


@dataclass
class RawResult:
    """What the driver returned for one statement."""
    rows: Optional[list[dict[str, Any]]] = None
    rowcount: int = -1
    lastrowid: Optional[int] = None


class ConnectionPool:
    """Scoped checkout of DB-API connections from a SQLAlchemy pool.

    The SQLAlchemy pool bounds the number of connections, queues callers
    waiting for a free one and, when built from an engine with
    ``pool_pre_ping``, replaces connections the server has dropped. This class
    hands out the plain DB-API connection through the ``connection()`` and
    ``transaction()`` context managers, which always give it back.

    Args:
        pool: SQLAlchemy ``QueuePool``
        driver_error: Base exception class of the DB-API driver
        identity_lookup: How to read generated ids on drivers without
            ``cursor.lastrowid``
    """

    def __init__(
        self,
        pool: Pool,
        driver_error: type[Exception],
        identity_lookup: Optional[IdentityLookup] = None,
    ) -> None:
        self._pool = pool
        self._driver_error = driver_error
        self.identity_lookup = identity_lookup
        self._closed = False

    @classmethod
    def from_engine(cls, engine: Engine, identity_lookup: Optional[IdentityLookup] = None) -> "ConnectionPool":
        return cls(engine.pool, engine.dialect.loaded_dbapi.Error, identity_lookup)

    @property
    def driver_error(self) -> type[Exception]:
        """Base exception class of the underlying driver."""
        return self._driver_error

    @property
    def size(self) -> int:
        return self._pool.size()

    @property
    def checked_out(self) -> int:
        """Connections currently handed out."""
        return self._pool.checkedout()

    def acquire(self) -> Any:
        """Check out a pooled connection proxy.

        Raises:
            DatabaseError: If the pool is closed, the connection fails, or no
                connection becomes free within the pool timeout
        """
        if self._closed:
            raise DatabaseError("Connection pool is closed")

        try:
            return self._pool.connect()
        except sa_exc.TimeoutError as e:
            logger.error(f"No database connection free after {self._pool.timeout()}s (size={self.size})")
            raise DatabaseError(
                f"Timed out after {self._pool.timeout()}s waiting for a database connection"
            ) from e
        except (self._driver_error, sa_exc.DBAPIError) as e:
            logger.error(f"Failed to connect to database: {e}")
            raise DatabaseError(f"Failed to connect to database: {e}") from e

    def release(self, conn: Any, discard: bool = False) -> None:
        """Return a connection proxy; a discarded one is closed and replaced on next checkout."""
        if discard:
            conn.invalidate()
        else:
            conn.close()

    @contextmanager
    def connection(self) -> Generator[Any, None, None]:
        """Context manager for a pooled connection.

        Any exception raised inside the block rolls back the connection before
        it is returned. A connection that cannot be rolled back is discarded.

        Example:
            with pool.connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT 1")
        """
        proxy = self.acquire()
        broken = False
        try:
            yield proxy.dbapi_connection
        except Exception:
            broken = not self._rollback(proxy.dbapi_connection)
            raise
        finally:
            self.release(proxy, discard=broken)

    @contextmanager
    def transaction(self) -> Generator[Any, None, None]:
        """Context manager holding one connection for a whole transaction.

        Commits when the block exits normally, rolls back otherwise.
        """
        with self.connection() as conn:
            logger.debug("Transaction started")
            yield conn
            conn.commit()
            logger.debug("Transaction committed")

    def _rollback(self, conn: Any) -> bool:
        try:
            conn.rollback()
            logger.debug("Transaction rolled back")
            return True
        except self._driver_error as e:
            logger.warning(f"Rollback failed, discarding connection: {e}")
            return False

    def close(self) -> None:
        """Close every idle connection and refuse new checkouts."""
        self._closed = True
        self._pool.dispose()
        logger.info("Connection pool closed")


def create_pool(settings: Settings) -> ConnectionPool:
    """Build the application pool: pyodbc connections in a pre-pinged SQLAlchemy pool."""
    import pyodbc

    # SQLAlchemy owns pooling
    pyodbc.pooling = False

    connection_string = settings.connection.connection_string

    def getconn():
        return pyodbc.connect(connection_string, autocommit=False, timeout=settings.connection.timeout)

    engine = create_engine(
        settings.engine_url,
        creator=getconn,
        pool_size=settings.pool_size,
        max_overflow=0,
        pool_timeout=settings.pool_timeout,
        pool_pre_ping=True,
    )
    return ConnectionPool.from_engine(engine, identity_lookup=settings.identity_lookup)


def _normalize_value(value: Any) -> Any:
    """Normalize database values for JSON serialization."""
    if value is None:
        return None
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, bytes):
        # Try to decode as UTF-8, otherwise return hex representation
        try:
            return value.decode('utf-8')
        except UnicodeDecodeError:
            return value.hex()
    if isinstance(value, memoryview):
        return bytes(value).hex()
    return value


def _read_identity(cursor: Any) -> Optional[int]:
    row = cursor.fetchone()
    # 0 and NULL both mean no id was generated
    if row and row[0]:
        return int(row[0])
    return None


def run_statement(
    conn: Any,
    sql: str,
    params: Iterable[Any] | None = None,
    *,
    max_rows: int = 0,
    want_insert_id: bool = False,
    identity_lookup: Optional[IdentityLookup] = None,
) -> RawResult:
    """Execute one statement on an open connection.

    Does not commit; the caller owns the transaction. Driver errors propagate
    unchanged.

    Args:
        conn: Open DB-API connection
        sql: Statement with ``?`` placeholders
        params: Positional parameter values
        max_rows: Maximum rows to fetch for statements returning rows (0 = all)
        want_insert_id: Capture the generated id after an INSERT
        identity_lookup: Dialect lookup for the generated id; without one,
            ``cursor.lastrowid`` is used

    Returns:
        RawResult with rows (as column->value dicts) or rowcount and lastrowid
    """
    logger.debug(f"Executing SQL: {sql[:200]}")

    lookup = identity_lookup if want_insert_id else None
    values = list(params or [])

    cursor = conn.cursor()
    try:
        if lookup is not None and lookup.reset:
            cursor.execute(lookup.reset)
            cursor.fetchall()

        if lookup is not None and lookup.same_batch:
            cursor.execute(f"{sql.rstrip().rstrip(';')}; {lookup.query}", values)
        else:
            cursor.execute(sql, values)

        if cursor.description is not None:
            columns = [col[0] for col in cursor.description]
            fetched = cursor.fetchmany(max_rows) if max_rows else cursor.fetchall()
            rows = [
                {column: _normalize_value(value) for column, value in zip(columns, row)}
                for row in fetched
            ]
            logger.debug(f"Statement returned {len(rows)} rows")
            return RawResult(rows=rows, rowcount=len(rows))

        rowcount = cursor.rowcount
        lastrowid = None
        if lookup is not None:
            if lookup.same_batch:
                lastrowid = _read_identity(cursor) if cursor.nextset() else None
            else:
                cursor.execute(lookup.query)
                lastrowid = _read_identity(cursor)
        elif want_insert_id:
            lastrowid = getattr(cursor, "lastrowid", None)

        logger.debug(f"Statement affected {rowcount} rows")
        return RawResult(rows=None, rowcount=rowcount, lastrowid=lastrowid)
    finally:
        cursor.close()
