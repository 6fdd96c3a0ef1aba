"""
Grid Geometry Table.

Aggregates the spatial and temporal coverage of the visible catalog,
selects and registers images:
- All-or-nothing extent: a single absent aggregate means "no data"
- Selection of the images of a series by time range and area
- Find-or-insert of bounding boxes keyed by their exact geometry
- Insertion of coverage records with dates written in the store timezone
"""

import logging
import math
from typing import List, Optional, Sequence, Union

from coverage_catalog.sql import queries as q
from coverage_catalog.sql.entries import (
    BoundingBox,
    CatalogExtent,
    GeographicArea,
    GridCoverageEntry,
    GridSize,
    SeriesEntry,
    TimeRange,
)
from coverage_catalog.sql.exceptions import BackendStateError, IllegalRecordError
from coverage_catalog.sql.table import Table
from coverage_catalog.sql.temporal import MAX_INSTANT, MIN_INSTANT, TemporalCodec

logger = logging.getLogger(__name__)


def _open_count(row: Sequence, column: int) -> int:
    """Number of unbounded times reported in column, 0 if the query has no such column."""
    if len(row) <= column or row[column] is None:
        return 0
    return int(row[column])


class GridGeometryTable(Table):
    """Connection to the grid geometries and grid coverages tables."""

    def __init__(self, *args, codec: Optional[TemporalCodec] = None, **kwargs):
        """
        Initialize table.

        Args:
            codec: Temporal codec bound to the store timezone
                (built from the configuration if None)
        """
        super().__init__(*args, **kwargs)
        self._codec = codec or TemporalCodec(self._config.timezone)

    @property
    def codec(self) -> TemporalCodec:
        return self._codec

    def get_extent(self) -> Optional[CatalogExtent]:
        """
        Get the overall coverage of the visible catalog.

        An image with an unbounded start (or end) time makes the
        catalog start (or end) unbounded as well.

        Returns:
            CatalogExtent, or None when any of the six aggregates
            (start, end, xmin, xmax, ymin, ymax) is absent
        """
        with self._lock:
            rows = self._execute(q.EXTENT)
            if not rows:
                logger.debug("Extent query returned no row")
                return None
            row = rows[0]
            start = row[q.EXTENT_START_TIME]
            if _open_count(row, q.EXTENT_OPEN_STARTS):
                start = MIN_INSTANT
            end = row[q.EXTENT_END_TIME]
            if _open_count(row, q.EXTENT_OPEN_ENDS):
                end = MAX_INSTANT
            columns = (q.EXTENT_XMIN, q.EXTENT_XMAX, q.EXTENT_YMIN, q.EXTENT_YMAX)
            if start is None or end is None or any(row[column] is None for column in columns):
                logger.debug("Catalog extent has absent aggregates, no data")
                return None
            area = GeographicArea(
                xmin=float(row[q.EXTENT_XMIN]),
                xmax=float(row[q.EXTENT_XMAX]),
                ymin=float(row[q.EXTENT_YMIN]),
                ymax=float(row[q.EXTENT_YMAX]),
            )
            time_range = TimeRange(
                start=start if start is MIN_INSTANT else self._codec.from_store(start),
                end=end if end is MAX_INSTANT else self._codec.from_store(end),
            )
            return CatalogExtent(area=area, time_range=time_range)

    def get_geographic_area(self) -> Optional[GeographicArea]:
        extent = self.get_extent()
        return extent.area if extent is not None else None

    def get_time_range(self) -> Optional[TimeRange]:
        extent = self.get_extent()
        return extent.time_range if extent is not None else None

    def _select_bounding_box(self, box: BoundingBox) -> Optional[int]:
        """
        Get the identifier of a bounding box, or None.

        Duplicate identifiers for the same geometry are logged and the
        first one is used.
        """
        identifier = None
        for row in self._execute(q.SELECT_BBOX, box.key):
            next_identifier = row[0]
            if identifier is None:
                identifier = next_identifier
            elif next_identifier != identifier:
                logger.warning(
                    f"Duplicated geometry {box.key}: identifier {next_identifier} "
                    f"ignored in favor of {identifier}"
                )
        return identifier

    def find_or_insert_bounding_box(self, area: GeographicArea, size: GridSize) -> int:
        """
        Get the identifier of a bounding box, inserting it if absent.

        Args:
            area: Spatial rectangle
            size: Pixel grid size

        Returns:
            Identifier of the stored bounding box

        Raises:
            BackendStateError: If the insert does not report one row, or
                if the inserted row cannot be found again
        """
        box = BoundingBox(area=area, size=size)
        with self._lock:
            identifier = self._select_bounding_box(box)
            if identifier is not None:
                return identifier
            count = self._insert(q.INSERT_BBOX, box.key)
            if count != 1:
                raise BackendStateError(
                    "Unexpected update result", {"inserted": count, "geometry": box.key}
                )
            identifier = self._select_bounding_box(box)
            if identifier is None:
                raise BackendStateError(
                    "Inserted bounding box not found", {"geometry": box.key}
                )
            logger.info(
                f"{q.format_statement(self._config.query(q.INSERT_BBOX), box.key)} "
                f"-> ID {identifier}"
            )
            return identifier

    def add_coverage(
        self,
        subseries: str,
        filename: str,
        time_range: TimeRange,
        area: GeographicArea,
        size: GridSize,
    ) -> int:
        """
        Register a new image.

        Args:
            subseries: Name of the sub-series the image belongs to
            filename: Image file name
            time_range: Time covered by the image (sentinels are stored as NULL)
            area: Spatial rectangle of the image
            size: Image size in pixels

        Returns:
            Identifier of the image bounding box

        Raises:
            BackendStateError: If an insert does not report one row
        """
        with self._lock:
            geometry = self.find_or_insert_bounding_box(area, size)
            values: List = [
                subseries,
                filename,
                self._codec.to_store(time_range.start),
                self._codec.to_store(time_range.end),
                geometry,
            ]
            count = self._insert(q.INSERT_COVERAGE, values)
            if count != 1:
                raise BackendStateError(
                    "Unexpected update result", {"inserted": count, "filename": filename}
                )
            logger.info(q.format_statement(self._config.query(q.INSERT_COVERAGE), values))
            return geometry

    def _coverage_entry(self, row: Sequence) -> GridCoverageEntry:
        """Build a pooled image entry from a select_coverages row."""
        filename = row[q.COVERAGE_FILENAME]
        try:
            entry = GridCoverageEntry(
                series=row[q.COVERAGE_SERIES],
                subseries=row[q.COVERAGE_SUBSERIES],
                filename=filename,
                start_time=self._codec.from_store(row[q.COVERAGE_START_TIME]) or MIN_INSTANT,
                end_time=self._codec.from_store(row[q.COVERAGE_END_TIME]) or MAX_INSTANT,
                area=GeographicArea(
                    xmin=float(row[q.COVERAGE_XMIN]),
                    xmax=float(row[q.COVERAGE_XMAX]),
                    ymin=float(row[q.COVERAGE_YMIN]),
                    ymax=float(row[q.COVERAGE_YMAX]),
                ),
                size=GridSize(int(row[q.COVERAGE_WIDTH]), int(row[q.COVERAGE_HEIGHT])),
            )
        except (TypeError, ValueError) as e:
            raise IllegalRecordError(q.GRID_COVERAGES, str(e), {"filename": filename}) from e
        return self._pool.canonicalize(entry)

    def get_entries(
        self,
        series: Union[SeriesEntry, str],
        time_range: Optional[TimeRange] = None,
        area: Optional[GeographicArea] = None,
    ) -> List[GridCoverageEntry]:
        """
        Get the visible images of a series.

        Images with an unbounded time are kept by any time range. The
        area test is strict: an image touching the area only on its
        border is left out.

        Args:
            series: Series entry or series name
            time_range: Time range the images must intersect (all if None)
            area: Area the images must intersect (all if None)

        Returns:
            Pooled entries sorted by end time, then sub-series
        """
        name = series.name if isinstance(series, SeriesEntry) else str(series)
        if area is None:
            bounds = (-math.inf, math.inf, -math.inf, math.inf)
        else:
            bounds = (area.xmin, area.xmax, area.ymin, area.ymax)
        start = end = None
        if time_range is not None:
            start = self._codec.to_store(time_range.start)
            end = self._codec.to_store(time_range.end)
        params = (name, bounds[0], bounds[1], bounds[2], bounds[3], start, start, end, end)
        with self._lock:
            rows = self._execute(q.SELECT_COVERAGES, params)
            entries = [self._coverage_entry(row) for row in rows]
        logger.debug(f"Selected {len(entries)} images of series {name}")
        return entries

    def get_entry(self, filename: str) -> Optional[GridCoverageEntry]:
        """
        Get an image by file name.

        Returns:
            Pooled entry, or None if no image has this name

        Raises:
            IllegalRecordError: If several records with different
                values share the file name
        """
        with self._lock:
            rows = self._execute(q.COVERAGE_BY_NAME, (filename,))
            entries = [self._coverage_entry(row) for row in rows]
        if not entries:
            return None
        first = entries[0]
        for entry in entries[1:]:
            if entry != first:
                raise IllegalRecordError(
                    q.GRID_COVERAGES,
                    f"Duplicated coverage '{filename}' with different values",
                    {"filename": filename},
                )
        return first
