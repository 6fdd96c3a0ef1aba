"""
Format, band and category tables.

Rebuilds FormatEntry values from the Formats, SampleDimensions and
Categories tables. Every category, band and format goes through the
canonical pool, so re-opening a format returns shared instances.
"""

import logging
import re
from typing import Iterable, List, Optional, Tuple

from coverage_catalog.sql import queries as q
from coverage_catalog.sql.entries import Category, FormatEntry, Identifier, SampleDimension
from coverage_catalog.sql.exceptions import IllegalRecordError
from coverage_catalog.sql.table import Table

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"(?:#|0[xX])([0-9a-fA-F]{6})")


def decode_colors(text: Optional[str]) -> Tuple[str, ...]:
    """
    Decode the colors field of a category.

    The field holds either one RGB code ("#D2C8A0" or "0xD2C8A0") or a
    reference to a color palette. Surrounding quotes are stripped.

    Returns:
        ("#RRGGBB",) for a uniform color, (reference,) for a palette,
        () when the field is empty
    """
    if text is None:
        return ()
    text = text.strip()
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        text = text[1:-1].strip()
    if not text:
        return ()
    match = _HEX_COLOR.fullmatch(text)
    if match:
        return ("#" + match.group(1).upper(),)
    return (text,)


def _check_next_band(last: int, band: Optional[int], details: Optional[dict] = None) -> None:
    details = dict(details or {})
    if band is None:
        raise IllegalRecordError(
            q.SAMPLE_DIMENSIONS, "Missing band number", dict(details, previous_band=last)
        )
    if isinstance(band, bool) or not isinstance(band, int):
        raise IllegalRecordError(
            q.SAMPLE_DIMENSIONS, f"Invalid band number: {band!r}", dict(details, previous_band=last)
        )
    if band - 1 != last:
        raise IllegalRecordError(
            q.SAMPLE_DIMENSIONS,
            f"Non-consecutive band numbers: {last} followed by {band}",
            dict(details, previous_band=last, band=band),
        )


def check_band_sequence(bands: Iterable[int]) -> None:
    """
    Verify that band numbers run 1..N without gaps or repeats.

    Raises:
        IllegalRecordError: On the first out-of-sequence number
    """
    last = 0
    for band in bands:
        _check_next_band(last, band)
        last = band


class CategoryTable(Table):
    """Connection to the categories table."""

    def get_categories(self, band_id: Identifier) -> List[Category]:
        """
        Get the categories of a band, sorted by lower sample value.

        Args:
            band_id: Key of the band record

        Returns:
            Pooled Category instances
        """
        with self._lock:
            categories = []
            for row in self._execute(q.CATEGORIES_BY_BAND, (band_id,)):
                try:
                    category = Category(
                        name=row[q.CATEGORY_NAME],
                        lower=int(row[q.CATEGORY_LOWER]),
                        upper=int(row[q.CATEGORY_UPPER]),
                        c0=row[q.CATEGORY_C0],
                        c1=row[q.CATEGORY_C1],
                        log=bool(row[q.CATEGORY_LOG]),
                        colors=decode_colors(row[q.CATEGORY_COLORS]),
                    )
                except (TypeError, ValueError) as e:
                    raise IllegalRecordError(
                        q.CATEGORIES, str(e), {"band": band_id}
                    ) from e
                categories.append(self._pool.canonicalize(category))
            return categories


class SampleDimensionTable(Table):
    """Connection to the bands table."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._categories: Optional[CategoryTable] = None

    def get_sample_dimensions(self, format_key: Identifier) -> List[SampleDimension]:
        """
        Get the bands of a format, in band order.

        Args:
            format_key: Key of the format

        Returns:
            Pooled SampleDimension instances, band 1 first

        Raises:
            IllegalRecordError: If band numbers are not 1..N, or if the
                categories of a band overlap
        """
        with self._lock:
            bands = []
            last = 0
            for row in self._execute(q.BANDS_BY_FORMAT, (format_key,)):
                band = row[q.BAND_NUMBER]
                _check_next_band(last, band, {"format": format_key})
                last = band
                if self._categories is None:
                    self._categories = CategoryTable(self._executor, self._config, self._pool)
                categories = self._categories.get_categories(row[q.BAND_ID])
                try:
                    dimension = SampleDimension(tuple(categories), row[q.BAND_UNITS])
                except ValueError as e:
                    # The faulty records are in the categories table.
                    raise IllegalRecordError(
                        q.CATEGORIES, str(e), {"format": format_key, "band": band}
                    ) from e
                bands.append(self._pool.canonicalize(dimension))
            return bands

    def _close_sub_tables(self) -> None:
        if self._categories is not None:
            self._categories.close()
            self._categories = None


class FormatTable(Table):
    """Connection to the image formats table."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._bands: Optional[SampleDimensionTable] = None

    def get_entry(self, key: Identifier) -> FormatEntry:
        """
        Get the format identified by key.

        Args:
            key: Format key

        Returns:
            Pooled FormatEntry with its bands

        Raises:
            IllegalRecordError: If no format matches, or if several rows
                match with different values
        """
        with self._lock:
            rows = self._execute(q.FORMAT_BY_KEY, (key,))
            if not rows:
                raise IllegalRecordError(q.FORMATS, f"No image format for key '{key}'")
            first = tuple(rows[0])
            for row in rows[1:]:
                if tuple(row) != first:
                    raise IllegalRecordError(
                        q.FORMATS, f"Too many image formats for key '{key}'"
                    )
            if self._bands is None:
                self._bands = SampleDimensionTable(self._executor, self._config, self._pool)
            entry = FormatEntry(
                identifier=key,
                name=first[q.FORMAT_NAME],
                mime_type=first[q.FORMAT_MIME],
                extension=first[q.FORMAT_EXTENSION],
                geophysics=bool(first[q.FORMAT_GEOPHYSICS]),
                bands=tuple(self._bands.get_sample_dimensions(key)),
            )
            logger.debug(f"Constructed decoder for format {entry.name}")
            return self._pool.canonicalize(entry)

    def _close_sub_tables(self) -> None:
        if self._bands is not None:
            self._bands.close()
            self._bands = None
