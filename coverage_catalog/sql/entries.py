"""
Catalog Value Objects.

Immutable, structurally-comparable records built while draining query
results. Equality and hashing compare all significant fields so that
equal records can be shared through the canonical pool and matched as
tree siblings.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

from coverage_catalog.sql.temporal import (
    MAX_INSTANT,
    MIN_INSTANT,
    TemporalCodec,
    days_to_timedelta,
    to_day_number,
)
from coverage_catalog.sql.tree import TreeNode

Identifier = Union[int, str]


def _float_key(value: Optional[float]) -> Optional[float]:
    """Hashable form of a float where all NaN compare equal."""
    if value is None or math.isnan(value):
        return None
    return value


@dataclass(frozen=True, eq=False)
class Entry:
    """
    Reference to one catalog record.

    Attributes:
        table: Name of the originating table
        identifier: Natural key of the record (name or numeric key)
        remarks: Optional free-text description
    """

    table: str
    identifier: Identifier
    remarks: Optional[str] = None

    def __post_init__(self):
        if self.table is None:
            raise ValueError("Entry table must not be None")
        if self.identifier is None:
            raise ValueError(f"Entry identifier must not be None (table {self.table})")

    @property
    def name(self) -> str:
        return str(self.identifier)

    def _key(self) -> Tuple[Any, ...]:
        return (self.table, self.identifier, self.remarks)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, eq=False)
class SeriesEntry(Entry):
    """
    Reference to a series record.

    Attributes:
        format: Key of the series format
        period: Nominal time between images, in days (NaN if unknown)
        quicklook: Identifier of the preview series (this series if None)
    """

    format: Optional[Identifier] = None
    period: float = math.nan
    quicklook: Optional[Identifier] = None

    @property
    def quicklook_id(self) -> Identifier:
        return self.quicklook if self.quicklook is not None else self.identifier

    @property
    def period_delta(self) -> Optional[timedelta]:
        """Period as a timedelta, None when unknown."""
        return days_to_timedelta(self.period)

    def _key(self) -> Tuple[Any, ...]:
        return super()._key() + (self.format, _float_key(self.period))


@dataclass(frozen=True)
class Category:
    """
    A range of packed sample values with a meaning.

    Quantitative categories convert samples to geophysical values with
    ``c0 + c1 * sample`` (then ``10 ** value`` when ``log`` is set).
    Qualitative categories (no coefficients) have no geophysical value.

    Attributes:
        name: Category name (e.g. "Cloud", "Temperature")
        lower: Lowest sample value, inclusive
        upper: Highest sample value, inclusive
        c0: Offset of the transfer function
        c1: Scale of the transfer function
        log: Whether the transfer function is base-10 exponential
        colors: Uniform "#RRGGBB" color or palette references
    """

    name: str
    lower: int
    upper: int
    c0: Optional[float] = None
    c1: Optional[float] = None
    log: bool = False
    colors: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.lower > self.upper:
            raise ValueError(
                f"Category '{self.name}': lower ({self.lower}) must be <= upper ({self.upper})"
            )
        object.__setattr__(self, "colors", tuple(self.colors))

    @property
    def is_quantitative(self) -> bool:
        return self.c0 is not None and self.c1 is not None

    def contains(self, sample: float) -> bool:
        return self.lower <= sample <= self.upper

    def geophysics(self, samples: Any) -> np.ndarray:
        """
        Convert packed samples into geophysical values.

        Args:
            samples: Scalar or array of packed sample values

        Returns:
            Float64 array (all NaN for qualitative categories)
        """
        values = np.asarray(samples, dtype=np.float64)
        if not self.is_quantitative:
            return np.full(values.shape, np.nan)
        result = self.c0 + self.c1 * values
        if self.log:
            result = np.power(10.0, result)
        return result

    def __str__(self) -> str:
        return f"[{self.lower:03d}..{self.upper:03d}] {self.name}"


@dataclass(frozen=True)
class SampleDimension:
    """
    One image band: its categories and physical unit.

    Attributes:
        categories: Categories sorted by sample range
        unit: Physical unit symbol of geophysical values
    """

    categories: Tuple[Category, ...]
    unit: Optional[str] = None

    def __post_init__(self):
        categories = tuple(sorted(self.categories, key=lambda c: (c.lower, c.upper)))
        for previous, current in zip(categories, categories[1:]):
            if current.lower <= previous.upper:
                raise ValueError(
                    f"Categories '{previous.name}' and '{current.name}' have overlapping ranges"
                )
        object.__setattr__(self, "categories", categories)

    @property
    def description(self) -> str:
        """Name of the first quantitative category, else of the first category."""
        for category in self.categories:
            if category.is_quantitative:
                return category.name
        if self.categories:
            return self.categories[0].name
        return "(empty)"

    def category_of(self, sample: float) -> Optional[Category]:
        for category in self.categories:
            if category.contains(sample):
                return category
        return None

    def geophysics(self, samples: Any) -> np.ndarray:
        """
        Convert packed samples into geophysical values.

        Samples outside every category, or falling in a qualitative
        category, become NaN.
        """
        values = np.asarray(samples, dtype=np.float64)
        result = np.full(values.shape, np.nan)
        for category in self.categories:
            if not category.is_quantitative:
                continue
            mask = (values >= category.lower) & (values <= category.upper)
            result[mask] = category.geophysics(values[mask])
        return result

    def __str__(self) -> str:
        if self.unit:
            return f"{self.description} ({self.unit})"
        return self.description


@dataclass(frozen=True)
class FormatEntry:
    """
    Image format with its bands, numbered from 1 in tuple order.

    Attributes:
        identifier: Format key
        name: Format name
        mime_type: MIME type (e.g. "image/png")
        extension: File extension
        geophysics: Whether pixel values are already geophysical values
        bands: Sample dimensions, one per band
    """

    identifier: Identifier
    name: str
    mime_type: Optional[str]
    extension: Optional[str]
    geophysics: bool
    bands: Tuple[SampleDimension, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "bands", tuple(self.bands))

    def tree(self) -> TreeNode:
        """
        Build the category tree of this format.

        The root is the format, branches are bands and leaves are
        categories. A new tree is built on every call.
        """
        root = TreeNode(self)
        for band in self.bands:
            node = root.add(TreeNode(band))
            for category in band.categories:
                node.add(TreeNode(category, allows_children=False))
        return root

    def __str__(self) -> str:
        return f"{self.name} ({self.mime_type})"


@dataclass(frozen=True)
class GeographicArea:
    """
    Spatial rectangle.

    Attributes:
        xmin: Minimal x (longitude)
        xmax: Maximal x (longitude)
        ymin: Minimal y (latitude)
        ymax: Maximal y (latitude)
    """

    xmin: float
    xmax: float
    ymin: float
    ymax: float

    def __post_init__(self):
        for name in ("xmin", "xmax", "ymin", "ymax"):
            if math.isnan(getattr(self, name)):
                raise ValueError(f"{name} must not be NaN")
        if self.xmin > self.xmax:
            raise ValueError(f"xmin ({self.xmin}) must be <= xmax ({self.xmax})")
        if self.ymin > self.ymax:
            raise ValueError(f"ymin ({self.ymin}) must be <= ymax ({self.ymax})")

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.xmin + self.xmax) / 2, (self.ymin + self.ymax) / 2)

    def intersects(self, other: "GeographicArea") -> bool:
        return not (
            self.xmax < other.xmin
            or self.xmin > other.xmax
            or self.ymax < other.ymin
            or self.ymin > other.ymax
        )

    def contains(self, other: "GeographicArea") -> bool:
        return (
            other.xmin >= self.xmin
            and other.xmax <= self.xmax
            and other.ymin >= self.ymin
            and other.ymax <= self.ymax
        )


@dataclass(frozen=True)
class GridSize:
    """Image size in pixels."""

    width: int
    height: int

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Grid size must be positive, got {self.width}x{self.height}")


@dataclass(frozen=True)
class BoundingBox:
    """
    Spatial extent of an image together with its pixel grid size.

    Attributes:
        area: Spatial rectangle
        size: Pixel grid size
    """

    area: GeographicArea
    size: GridSize

    @property
    def key(self) -> Tuple[float, float, float, float, int, int]:
        """Natural key (xmin, xmax, ymin, ymax, width, height)."""
        return (
            self.area.xmin,
            self.area.xmax,
            self.area.ymin,
            self.area.ymax,
            self.size.width,
            self.size.height,
        )


@dataclass
class TimeRange:
    """
    Temporal range.

    Attributes:
        start: Start timestamp (MIN_INSTANT if unbounded)
        end: End timestamp (MAX_INSTANT if unbounded)
    """

    start: datetime
    end: datetime

    def __post_init__(self):
        """Validate and normalize timestamps."""
        if self.start.tzinfo is None:
            self.start = self.start.replace(tzinfo=timezone.utc)
        if self.end.tzinfo is None:
            self.end = self.end.replace(tzinfo=timezone.utc)

        if self.start > self.end:
            raise ValueError(f"start ({self.start}) must be <= end ({self.end})")

    @property
    def is_bounded(self) -> bool:
        return self.start != MIN_INSTANT and self.end != MAX_INSTANT

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "TimeRange") -> bool:
        return self.start <= other.end and self.end >= other.start

    def contains(self, other: "TimeRange") -> bool:
        return self.start <= other.start and self.end >= other.end

    def to_day_numbers(self) -> Tuple[float, float]:
        return (to_day_number(self.start), to_day_number(self.end))


@dataclass
class CatalogExtent:
    """
    Overall spatial and temporal coverage of the visible catalog.

    Attributes:
        area: Union of all image rectangles
        time_range: From the earliest start time to the latest end time
    """

    area: GeographicArea
    time_range: TimeRange

    def envelope(self, codec: Optional[TemporalCodec] = None) -> Tuple[float, ...]:
        """(xmin, xmax, ymin, ymax, tmin, tmax) with times as day numbers."""
        codec = codec or TemporalCodec()
        return (
            self.area.xmin,
            self.area.xmax,
            self.area.ymin,
            self.area.ymax,
            codec.day_number(self.time_range.start),
            codec.day_number(self.time_range.end),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "area": [self.area.xmin, self.area.xmax, self.area.ymin, self.area.ymax],
            "time_start": self.time_range.start.isoformat(),
            "time_end": self.time_range.end.isoformat(),
        }


@dataclass(frozen=True)
class GridCoverageEntry:
    """
    One catalogued image with its time range and bounding box.

    Attributes:
        series: Name of the series the image belongs to
        subseries: Name of the sub-series the image belongs to
        filename: Image file name, unique within the catalog
        start_time: Start of the image (MIN_INSTANT if unbounded)
        end_time: End of the image (MAX_INSTANT if unbounded)
        area: Spatial rectangle of the image
        size: Image size in pixels
    """

    series: str
    subseries: str
    filename: str
    start_time: datetime
    end_time: datetime
    area: GeographicArea
    size: GridSize

    def __post_init__(self):
        if self.start_time > self.end_time:
            raise ValueError(
                f"Image {self.filename}: start ({self.start_time}) after end ({self.end_time})"
            )

    @property
    def name(self) -> str:
        return self.filename

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(self.start_time, self.end_time)

    @property
    def bounding_box(self) -> BoundingBox:
        return BoundingBox(area=self.area, size=self.size)

    def envelope(self, codec: Optional[TemporalCodec] = None) -> Tuple[float, ...]:
        """(xmin, xmax, ymin, ymax, tmin, tmax) with times as day numbers."""
        return CatalogExtent(self.area, self.time_range).envelope(codec)

    def __str__(self) -> str:
        return f"{self.filename} ({self.subseries})"
