"""
Query Executors.

The catalog tables never talk to a database driver directly: they go
through a QueryExecutor that runs parameterized queries and returns
positionally-addressable rows. SQLiteQueryExecutor is the bundled
implementation; other stores plug in by subclassing QueryExecutor.
"""

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import closing
from pathlib import Path
from typing import Any, List, Optional, Sequence

from coverage_catalog.sql.queries import SCHEMA

logger = logging.getLogger(__name__)

Row = Sequence[Any]


class QueryExecutor(ABC):
    """Abstract base for query executors."""

    @abstractmethod
    def execute(self, query: str, params: Sequence[Any] = ()) -> List[Row]:
        """
        Run a query and return all of its rows.

        Args:
            query: Parameterized query text ('?' placeholders)
            params: Positional parameters

        Returns:
            Rows in result order; absent values are None
        """
        pass

    @abstractmethod
    def insert(self, query: str, params: Sequence[Any] = ()) -> int:
        """
        Run an insert statement.

        Returns:
            Number of affected rows
        """
        pass

    def close(self) -> None:
        """Release the connection (no-op by default)."""

    def __enter__(self) -> "QueryExecutor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class SQLiteQueryExecutor(QueryExecutor):
    """
    Executor backed by a SQLite database.

    A single connection is kept for the life of the executor and shared
    between threads under a lock.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize executor.

        Args:
            db_path: Path to SQLite database (uses memory if None)
        """
        self._db_path = db_path
        self._lock = threading.RLock()
        target = ":memory:" if db_path is None else str(db_path)
        self._conn: Optional[sqlite3.Connection] = sqlite3.connect(
            target, timeout=30.0, check_same_thread=False
        )

        logger.info(f"SQLiteQueryExecutor opened at {db_path or ':memory:'}")

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Executor is closed")
        return self._conn

    def create_schema(self) -> None:
        """Create the catalog tables if they do not exist."""
        with self._lock:
            conn = self._connection()
            conn.executescript(SCHEMA)
            conn.commit()

    def execute(self, query: str, params: Sequence[Any] = ()) -> List[Row]:
        with self._lock:
            with closing(self._connection().cursor()) as cursor:
                cursor.execute(query, tuple(params))
                return cursor.fetchall()

    def insert(self, query: str, params: Sequence[Any] = ()) -> int:
        with self._lock:
            conn = self._connection()
            with closing(conn.cursor()) as cursor:
                try:
                    cursor.execute(query, tuple(params))
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
                return cursor.rowcount

    def insert_many(self, query: str, rows: Sequence[Sequence[Any]]) -> int:
        """Run an insert statement for each parameter row in one transaction."""
        with self._lock:
            conn = self._connection()
            with closing(conn.cursor()) as cursor:
                try:
                    cursor.executemany(query, [tuple(r) for r in rows])
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
                return cursor.rowcount

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info(f"SQLiteQueryExecutor closed at {self._db_path or ':memory:'}")
