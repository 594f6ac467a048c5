"""
PostgreSQL connection handle.

The Database object owns a psycopg2 connection pool. It is built once by the
application factory, stored on the app, and closed at shutdown. Route
handlers borrow connections through get_db().
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterator, Optional

from flask import current_app
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

EXTENSION_KEY = "clubhouse_db"


class Database:
    """
    Connection pool with an explicit open/close lifecycle.

    Usage:
        db = Database(dsn)
        db.open()
        with db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(...)
        db.close()
    """

    def __init__(self, dsn: str, minconn: int = 1, maxconn: int = 10):
        self.dsn = dsn
        self.minconn = minconn
        self.maxconn = maxconn
        self._pool: Optional[ThreadedConnectionPool] = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None and not self._pool.closed

    def open(self) -> None:
        """
        Create the pool and run a connectivity check.

        Raises:
            psycopg2.Error: If the database cannot be reached.
        """
        if self.is_open:
            return
        # Rows come back as dicts (e.g. {"user_id": 1, "email": "..."})
        self._pool = ThreadedConnectionPool(
            self.minconn, self.maxconn, self.dsn, cursor_factory=RealDictCursor
        )
        self.ping()

    def close(self) -> None:
        if self.is_open:
            self._pool.closeall()
            logging.info("[DB] Connection pool closed.")
        self._pool = None

    def ping(self) -> None:
        with self.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT NOW() AS now;")
                row = cur.fetchone()
        logging.info(f"[DB] PostgreSQL database connected successfully (server time {row['now']}).")

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """
        Borrow a pooled connection for one unit of work.

        Uncommitted work is rolled back if the block raises; the connection is
        always returned to the pool.

        Raises:
            RuntimeError: If the pool has not been opened.
        """
        if not self.is_open:
            raise RuntimeError("Database pool is not open. Call Database.open() first.")

        conn = self._pool.getconn()
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)


def get_db():
    """
    Borrow a connection from the current application's Database.

    Usage:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(...)
    """
    return current_app.extensions[EXTENSION_KEY].connection()


def serialize_row(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Convert a database row into JSON-friendly values.

    Datetimes become ISO-8601 strings and NUMERIC columns (fees, prices)
    become floats.
    """
    if row is None:
        return None

    result = dict(row)
    for key, value in result.items():
        if isinstance(value, (datetime, date)):
            result[key] = value.isoformat()
        elif isinstance(value, Decimal):
            result[key] = float(value)
    return result
