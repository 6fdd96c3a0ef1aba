"""
Catalog of Remote-Sensing Image Series.

Reads a relational catalog of image series and exposes it as a
navigable hierarchy, with georeferenced and time-referenced coverage.

Components:
- Series table building the phenomenon/procedure/series/sub-series tree
- Format tables rebuilding bands and categories of image formats
- Canonical pool sharing structurally equal value objects
- Grid geometry table aggregating coverage, selecting images and
  registering bounding boxes
- Temporal codec converting instants to and from day numbers

Example usage:
    from coverage_catalog.sql import (
        CatalogConfig,
        CoverageDatabase,
        LeafType,
    )

    config = CatalogConfig(database_path="~/catalog.db", timezone="UTC")

    with CoverageDatabase.from_config(config) as database:
        # Series tree with format categories under each sub-series
        root = database.resolve_hierarchy(LeafType.CATEGORY)

        # Overall coverage (None when the catalog holds no image)
        extent = database.aggregate_extent()
"""

from coverage_catalog.sql.config import CatalogConfig, load_config

from coverage_catalog.sql.database import CoverageDatabase

from coverage_catalog.sql.entries import (
    BoundingBox,
    CatalogExtent,
    Category,
    Entry,
    FormatEntry,
    GeographicArea,
    GridCoverageEntry,
    GridSize,
    SampleDimension,
    SeriesEntry,
    TimeRange,
)

from coverage_catalog.sql.exceptions import (
    BackendStateError,
    CatalogError,
    IllegalRecordError,
)

from coverage_catalog.sql.executor import QueryExecutor, SQLiteQueryExecutor

from coverage_catalog.sql.formats import (
    CategoryTable,
    FormatTable,
    SampleDimensionTable,
    check_band_sequence,
    decode_colors,
)

from coverage_catalog.sql.geometry import GridGeometryTable

from coverage_catalog.sql.pool import CanonicalPool, PoolStatistics

from coverage_catalog.sql.series import HierarchyLevel, LeafType, SeriesTable

from coverage_catalog.sql.temporal import (
    EPOCH,
    MAX_INSTANT,
    MIN_INSTANT,
    TemporalCodec,
    to_day_number,
    to_instant,
)

from coverage_catalog.sql.tree import TreeNode

__all__ = [
    # Configuration
    "CatalogConfig",
    "load_config",
    # Database
    "CoverageDatabase",
    # Entries
    "BoundingBox",
    "CatalogExtent",
    "Category",
    "Entry",
    "FormatEntry",
    "GeographicArea",
    "GridCoverageEntry",
    "GridSize",
    "SampleDimension",
    "SeriesEntry",
    "TimeRange",
    # Exceptions
    "BackendStateError",
    "CatalogError",
    "IllegalRecordError",
    # Executors
    "QueryExecutor",
    "SQLiteQueryExecutor",
    # Tables
    "CategoryTable",
    "FormatTable",
    "GridGeometryTable",
    "SampleDimensionTable",
    "SeriesTable",
    "check_band_sequence",
    "decode_colors",
    # Hierarchy
    "HierarchyLevel",
    "LeafType",
    "TreeNode",
    # Pool
    "CanonicalPool",
    "PoolStatistics",
    # Temporal
    "EPOCH",
    "MAX_INSTANT",
    "MIN_INSTANT",
    "TemporalCodec",
    "to_day_number",
    "to_instant",
]
