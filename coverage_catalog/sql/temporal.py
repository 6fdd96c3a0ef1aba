"""
Temporal Codec for Catalog Dates.

Converts between absolute instants and a continuous "day number" scale
counted from a fixed epoch agreed upon with the backing store:
- Linear day-number arithmetic for periods and range comparisons
- Sentinel mapping of unbounded instants to +/- infinity
- Reconstruction of stored wall-clock timestamps in the store timezone
  by copying calendar fields, rather than offset arithmetic

Instants are ``datetime`` objects. Naive values are taken as UTC.
"""

import logging
import math
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

# 1950-01-01, which is -631152000000 ms from the platform's 1970 origin.
EPOCH = datetime(1950, 1, 1, tzinfo=timezone.utc)

MILLIS_PER_DAY = 24 * 60 * 60 * 1000

# Sentinels for unbounded time ranges, not real dates.
MIN_INSTANT = datetime.min.replace(tzinfo=timezone.utc)
MAX_INSTANT = datetime.max.replace(tzinfo=timezone.utc)


def _as_aware(instant: datetime) -> datetime:
    """Attach UTC to naive datetimes."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


def resolve_timezone(name: Union[str, tzinfo, None]) -> tzinfo:
    """
    Resolve a timezone name into a tzinfo.

    Args:
        name: IANA zone name, tzinfo instance, or None for UTC

    Returns:
        tzinfo instance
    """
    if name is None:
        return timezone.utc
    if isinstance(name, tzinfo):
        return name
    if name.upper() in ("UTC", "GMT", "Z"):
        return timezone.utc
    return ZoneInfo(name)


def to_day_number(instant: datetime) -> float:
    """
    Convert an instant into a number of days since the epoch.

    Args:
        instant: Instant to convert

    Returns:
        Day number, or -inf/+inf for the MIN_INSTANT/MAX_INSTANT sentinels
    """
    instant = _as_aware(instant)
    if instant == MIN_INSTANT:
        return -math.inf
    if instant == MAX_INSTANT:
        return math.inf
    delta = instant - EPOCH
    millis = (delta.days * 86400 + delta.seconds) * 1000 + delta.microseconds / 1000
    return millis / MILLIS_PER_DAY


def to_instant(day_number: float) -> datetime:
    """
    Convert a day number into an instant, rounded to the nearest millisecond.

    Args:
        day_number: Days since the epoch

    Returns:
        UTC instant, or a sentinel for infinite day numbers

    Raises:
        ValueError: If the day number is NaN or outside the representable range
    """
    if math.isnan(day_number):
        raise ValueError("Day number is NaN")
    if day_number == -math.inf:
        return MIN_INSTANT
    if day_number == math.inf:
        return MAX_INSTANT
    millis = math.floor(day_number * MILLIS_PER_DAY + 0.5)
    try:
        return EPOCH + timedelta(milliseconds=millis)
    except OverflowError as e:
        raise ValueError(f"Day number {day_number} is out of range") from e


def days_to_timedelta(days: float) -> Optional[timedelta]:
    """Convert a duration in days to a timedelta (None for NaN)."""
    if days is None or math.isnan(days):
        return None
    return timedelta(milliseconds=math.floor(days * MILLIS_PER_DAY + 0.5))


class TemporalCodec:
    """
    Date conversions bound to the timezone of the backing store.

    Stored timestamps are wall-clock values expressed in the store
    timezone. They are read back by copying their calendar fields (year,
    day of year, hour, minute, second, millisecond) into the store
    timezone, which sidesteps driver-side timestamp conversion and
    daylight-saving inconsistencies.
    """

    def __init__(self, store_timezone: Union[str, tzinfo, None] = "UTC"):
        """
        Initialize codec.

        Args:
            store_timezone: Timezone in which the store writes its dates
        """
        self.timezone = resolve_timezone(store_timezone)

    def day_number(self, instant: datetime) -> float:
        """Convert an instant into a day number."""
        return to_day_number(instant)

    def instant(self, day_number: float) -> datetime:
        """Convert a day number into an instant."""
        return to_instant(day_number)

    def from_store(
        self,
        value: Union[str, datetime, None],
        target_timezone: Optional[tzinfo] = None,
    ) -> Optional[datetime]:
        """
        Rebuild an instant from a stored timestamp.

        Args:
            value: Stored value (ISO text or datetime), None if absent
            target_timezone: Zone of the returned datetime (UTC if None)

        Returns:
            Aware datetime expressed in target_timezone, or None
        """
        if value is None:
            return None
        if isinstance(value, str):
            value = datetime.fromisoformat(value.strip())
        day_of_year = value.timetuple().tm_yday
        wall = datetime(
            value.year, 1, 1,
            value.hour, value.minute, value.second,
            (value.microsecond // 1000) * 1000,
        ) + timedelta(days=day_of_year - 1)
        instant = wall.replace(tzinfo=self.timezone)
        return instant.astimezone(target_timezone or timezone.utc)

    def to_store(self, instant: Optional[datetime]) -> Optional[str]:
        """
        Format an instant as stored text in the store timezone.

        Unbounded sentinels have no stored form and map to None.
        """
        if instant is None:
            return None
        instant = _as_aware(instant)
        if instant == MIN_INSTANT or instant == MAX_INSTANT:
            return None
        wall = instant.astimezone(self.timezone).replace(tzinfo=None)
        return wall.isoformat(sep=" ", timespec="milliseconds")

    def __repr__(self) -> str:
        return f"TemporalCodec(store_timezone={self.timezone!s})"
