"""
Base class of all catalog tables.
"""

import logging
import threading
from typing import Any, List, Optional, Sequence

from coverage_catalog.sql.config import CatalogConfig
from coverage_catalog.sql.executor import QueryExecutor, Row
from coverage_catalog.sql.pool import CanonicalPool

logger = logging.getLogger(__name__)


class Table:
    """
    A view over one or more catalog tables.

    Every public operation holds the instance lock for its whole duration,
    row iteration included, so concurrent calls on one table serialize.
    Sub-tables are created lazily and closed with their owner.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        config: Optional[CatalogConfig] = None,
        pool: Optional[CanonicalPool] = None,
    ):
        """
        Initialize table.

        Args:
            executor: Executor running the queries
            config: Catalog configuration (defaults if None)
            pool: Canonical pool shared between tables (private pool if None)
        """
        self._executor = executor
        self._config = config or CatalogConfig()
        self._pool = pool if pool is not None else CanonicalPool()
        self._lock = threading.RLock()
        self._closed = False

    @property
    def pool(self) -> CanonicalPool:
        return self._pool

    def _execute(self, query_name: str, params: Sequence[Any] = ()) -> List[Row]:
        self._ensure_open()
        return self._executor.execute(self._config.query(query_name), params)

    def _insert(self, query_name: str, params: Sequence[Any] = ()) -> int:
        self._ensure_open()
        return self._executor.insert(self._config.query(query_name), params)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"{type(self).__name__} is closed")

    def _close_sub_tables(self) -> None:
        """Close lazily created sub-tables. Overridden by owners."""

    def close(self) -> None:
        """Release sub-tables. The executor is owned by the caller."""
        with self._lock:
            if not self._closed:
                self._close_sub_tables()
                self._closed = True
                logger.debug(f"Closed {type(self).__name__}")

    def __enter__(self) -> "Table":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
