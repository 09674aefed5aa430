"""Shared fixtures.

Executor and pool tests run against a real sqlite3 database through a
SQLAlchemy QueuePool: sqlite3 is a DB-API driver with ``?`` placeholders, so the
same ConnectionPool and run_statement code paths are exercised as with pyodbc.
"""

from __future__ import annotations

import sqlite3

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import QueuePool

from sql_agent.core.db import ConnectionPool
from sql_agent.core.models import QueryPlan, StatementRequest


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "agent.db"
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE User (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            password TEXT NOT NULL
        );
        """
    )
    conn.commit()
    conn.close()
    return path


def sqlite_pool(db_path, size: int = 2, timeout: float = 0.5) -> ConnectionPool:
    engine = create_engine(
        f"sqlite:///{db_path}",
        poolclass=QueuePool,
        pool_size=size,
        max_overflow=0,
        pool_timeout=timeout,
        connect_args={"check_same_thread": False},
    )
    return ConnectionPool.from_engine(engine)


def fake_pool(creator, driver_error, size: int = 1, timeout: float = 0.05, **kwargs) -> ConnectionPool:
    """Pool over stand-in connections; no SQLAlchemy dialect is involved."""
    return ConnectionPool(
        QueuePool(creator, pool_size=size, max_overflow=0, timeout=timeout, **kwargs), driver_error
    )


@pytest.fixture
def pool(db_path):
    pool = sqlite_pool(db_path)
    yield pool
    pool.close()


@pytest.fixture
def user_count(db_path):
    """Count User rows through an independent connection."""

    def count() -> int:
        conn = sqlite3.connect(db_path)
        try:
            return conn.execute("SELECT COUNT(*) FROM User").fetchone()[0]
        finally:
            conn.close()

    return count


def make_plan(*statements: tuple, is_bulk: bool = False) -> QueryPlan:
    """Build a plan from (sql, parameters, operation) tuples."""
    return QueryPlan(
        queries=[
            StatementRequest(text=sql, parameters=list(params), operation=operation)
            for sql, params, operation in statements
        ],
        is_bulk=is_bulk,
    )


INSERT_USER = "INSERT INTO User (email, password) VALUES (?, ?)"
