"""
Coverage Database.

Entry point of the catalog: owns the query executor, the canonical
pool and the temporal codec, and hands them to the tables it creates.
"""

import logging
import math
import threading
from datetime import datetime
from typing import List, Optional, TypeVar

from coverage_catalog.sql import queries as q
from coverage_catalog.sql.config import CatalogConfig
from coverage_catalog.sql.entries import (
    CatalogExtent,
    FormatEntry,
    GeographicArea,
    GridCoverageEntry,
    GridSize,
    SeriesEntry,
    TimeRange,
)
from coverage_catalog.sql.exceptions import IllegalRecordError
from coverage_catalog.sql.executor import QueryExecutor, SQLiteQueryExecutor
from coverage_catalog.sql.formats import FormatTable
from coverage_catalog.sql.geometry import GridGeometryTable
from coverage_catalog.sql.pool import CanonicalPool
from coverage_catalog.sql.series import LeafType, SeriesTable
from coverage_catalog.sql.temporal import TemporalCodec
from coverage_catalog.sql.tree import TreeNode

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CoverageDatabase:
    """
    Catalog of remote-sensing image series.

    The pool is an injected, explicitly constructed component: pass the
    same CanonicalPool to several databases to share instances between
    them. The executor is closed with the database only when the
    database created it.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        config: Optional[CatalogConfig] = None,
        pool: Optional[CanonicalPool] = None,
        owns_executor: bool = False,
    ):
        """
        Initialize database.

        Args:
            executor: Executor running the catalog queries
            config: Catalog configuration (defaults if None)
            pool: Canonical pool (a new one if None)
            owns_executor: Close the executor in close()
        """
        self._executor = executor
        self._config = config or CatalogConfig()
        self._pool = pool if pool is not None else CanonicalPool()
        self._codec = TemporalCodec(self._config.timezone)
        self._owns_executor = owns_executor
        self._tables_lock = threading.Lock()
        self._series: Optional[SeriesTable] = None
        self._geometry: Optional[GridGeometryTable] = None

    @classmethod
    def from_config(
        cls,
        config: Optional[CatalogConfig] = None,
        pool: Optional[CanonicalPool] = None,
    ) -> "CoverageDatabase":
        """
        Open the SQLite catalog described by config.

        Args:
            config: Catalog configuration (defaults if None)
            pool: Canonical pool (a new one if None)

        Returns:
            CoverageDatabase owning its executor
        """
        config = config or CatalogConfig()
        executor = SQLiteQueryExecutor(config.get_database_path())
        if config.create_schema:
            executor.create_schema()
        logger.info(
            f"Opened coverage catalog {config.database_path or ':memory:'} "
            f"(timezone {config.timezone})"
        )
        return cls(executor, config=config, pool=pool, owns_executor=True)

    @property
    def executor(self) -> QueryExecutor:
        return self._executor

    @property
    def pool(self) -> CanonicalPool:
        return self._pool

    @property
    def codec(self) -> TemporalCodec:
        return self._codec

    def get_series_table(self) -> SeriesTable:
        """Create a new series table. The caller closes it."""
        return SeriesTable(self._executor, self._config, self._pool)

    def get_format_table(self) -> FormatTable:
        """Create a new format table. The caller closes it."""
        return FormatTable(self._executor, self._config, self._pool)

    def get_geometry_table(self) -> GridGeometryTable:
        """Create a new grid geometry table. The caller closes it."""
        return GridGeometryTable(self._executor, self._config, self._pool, codec=self._codec)

    def _shared_series(self) -> SeriesTable:
        with self._tables_lock:
            if self._series is None:
                self._series = self.get_series_table()
            return self._series

    def _shared_geometry(self) -> GridGeometryTable:
        with self._tables_lock:
            if self._geometry is None:
                self._geometry = self.get_geometry_table()
            return self._geometry

    def resolve_hierarchy(self, leaf_type: LeafType = LeafType.SERIES) -> TreeNode:
        """Build the series tree down to leaf_type."""
        return self._shared_series().get_tree(leaf_type)

    def get_format(self, series) -> FormatEntry:
        """Get the format of a series (entry or name)."""
        return self._shared_series().get_format(series)

    def canonicalize(self, value: T) -> T:
        """Return the shared instance equal to value."""
        return self._pool.canonicalize(value)

    def aggregate_extent(self) -> Optional[CatalogExtent]:
        """Overall coverage of the catalog, None if there is no data."""
        return self._shared_geometry().get_extent()

    def get_geographic_area(self) -> Optional[GeographicArea]:
        return self._shared_geometry().get_geographic_area()

    def get_time_range(self) -> Optional[TimeRange]:
        return self._shared_geometry().get_time_range()

    def find_or_insert_bounding_box(self, area: GeographicArea, size: GridSize) -> int:
        """Identifier of the stored bounding box, inserted if absent."""
        return self._shared_geometry().find_or_insert_bounding_box(area, size)

    def add_coverage(
        self,
        subseries: str,
        filename: str,
        time_range: TimeRange,
        area: GeographicArea,
        size: GridSize,
    ) -> int:
        """Register a new image; returns its bounding box identifier."""
        return self._shared_geometry().add_coverage(subseries, filename, time_range, area, size)

    def get_coverages(
        self,
        series,
        time_range: Optional[TimeRange] = None,
        area: Optional[GeographicArea] = None,
    ) -> List[GridCoverageEntry]:
        """Visible images of a series (entry or name) intersecting time_range and area."""
        return self._shared_geometry().get_entries(series, time_range, area)

    def get_coverage(self, filename: str) -> Optional[GridCoverageEntry]:
        """Image registered under filename, None if absent."""
        return self._shared_geometry().get_entry(filename)

    def day_number(self, instant: datetime) -> float:
        return self._codec.day_number(instant)

    def instant(self, day_number: float) -> datetime:
        return self._codec.instant(day_number)

    def default_series(self) -> SeriesEntry:
        """
        Get the series with the shortest period.

        Series with an unknown period are chosen only when no series
        has a known one.

        Raises:
            IllegalRecordError: If the catalog has no series
        """
        entries = self._shared_series().get_entries()
        if not entries:
            raise IllegalRecordError(q.SERIES, "The catalog contains no series")
        return min(
            entries,
            key=lambda e: math.inf if math.isnan(e.period) else e.period,
        )

    def close(self) -> None:
        """Close the tables created by this database, and the executor if owned."""
        with self._tables_lock:
            series, self._series = self._series, None
            geometry, self._geometry = self._geometry, None
        if series is not None:
            series.close()
        if geometry is not None:
            geometry.close()
        if self._owns_executor:
            self._executor.close()

    def __enter__(self) -> "CoverageDatabase":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
