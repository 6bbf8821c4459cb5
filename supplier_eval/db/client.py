"""MySQL client for the evaluation store.

Thread-local connection reuse over PyMySQL. Each thread gets a persistent
connection that reconnects on failure. Every statement autocommits, so a
failed write never leaves a partial record behind.
"""

import os
import threading
from contextlib import contextmanager
from functools import lru_cache
from typing import Any, Generator

import pymysql
from pymysql.cursors import DictCursor

_thread_local = threading.local()


@lru_cache(maxsize=1)
def _get_config() -> dict:
    """Get connection configuration.

    Environment variables:
        SUPPLIER_EVAL_DB_HOST: Database host (default: 127.0.0.1)
        SUPPLIER_EVAL_DB_PORT: Database port (default: 3306)
        SUPPLIER_EVAL_DB_USER: Database user (default: root)
        SUPPLIER_EVAL_DB_PASSWORD: Database password (default: empty)
        SUPPLIER_EVAL_DB_NAME: Database name (default: suppliers)

    Returns:
        Connection config dict
    """
    return {
        "host": os.environ.get("SUPPLIER_EVAL_DB_HOST", "127.0.0.1"),
        "port": int(os.environ.get("SUPPLIER_EVAL_DB_PORT", "3306")),
        "user": os.environ.get("SUPPLIER_EVAL_DB_USER", "root"),
        "password": os.environ.get("SUPPLIER_EVAL_DB_PASSWORD", ""),
        "database": os.environ.get("SUPPLIER_EVAL_DB_NAME", "suppliers"),
        "autocommit": True,
        "charset": "utf8mb4",
        "cursorclass": DictCursor,
    }


def get_connection() -> pymysql.Connection:
    """Get a thread-local database connection, reusing if alive."""
    conn = getattr(_thread_local, "conn", None)
    if conn is not None:
        try:
            conn.ping(reconnect=False)
            return conn
        except pymysql.MySQLError:
            # Connection is dead, close and reconnect
            try:
                conn.close()
            except pymysql.MySQLError:
                pass
    conn = pymysql.connect(**_get_config())
    _thread_local.conn = conn
    return conn


@contextmanager
def get_cursor() -> Generator[Any, None, None]:
    """Context manager for a dict cursor on the thread-local connection.

    Example:
        with get_cursor() as cursor:
            cursor.execute("SELECT * FROM supplier_evaluations WHERE id = %s", (record_id,))
            row = cursor.fetchone()
    """
    conn = get_connection()
    with conn.cursor() as cursor:
        yield cursor


def execute_query(sql: str, params: tuple | None = None, fetch: str = "all") -> list[dict] | dict | None:
    """Execute a query and return results.

    Args:
        sql: SQL query with %s placeholders
        params: Query parameters
        fetch: 'all' for fetchall(), 'one' for fetchone(), 'none' for no fetch

    Returns:
        Query results as list of dicts, single dict, or None
    """
    with get_cursor() as cursor:
        cursor.execute(sql, params or ())

        if fetch == "all":
            return cursor.fetchall()
        elif fetch == "one":
            return cursor.fetchone()
        return None


def execute_insert(sql: str, params: tuple | None = None) -> int:
    """Execute an INSERT and return the generated row id."""
    with get_cursor() as cursor:
        cursor.execute(sql, params or ())
        return cursor.lastrowid


def execute_write(sql: str, params: tuple | None = None) -> int:
    """Execute an UPDATE/DELETE and return the number of affected rows."""
    with get_cursor() as cursor:
        return cursor.execute(sql, params or ())


def check_connection() -> bool:
    """Test database connectivity.

    Returns:
        True if connection succeeds, False otherwise
    """
    try:
        with get_cursor() as cursor:
            cursor.execute("SELECT 1")
            return True
    except pymysql.MySQLError:
        return False
