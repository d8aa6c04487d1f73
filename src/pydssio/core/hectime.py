"""
HEC time model used to address and expand DSS time series.

A DSS timestamp is an integer count of granularity units (second, minute,
hour or day) since midnight of a julian base date. Julian day 0 is
31 Dec 1899, so 01JAN1900 is day 1.

Date/time strings are parsed and rendered by the HEC-DSS library itself so
that the accepted formats match the archive exactly; the pure-Python
helpers (``to_datetime``, ``from_datetime``, ``normalized``) only do epoch
arithmetic.
"""

from __future__ import annotations

import logging
import numbers
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Any

from pydssio.core.exceptions import GranularityError, IntervalError

if TYPE_CHECKING:
    from pydssio.io.dss.engine import DSSEngine

logger = logging.getLogger(__name__)

# DSS epoch (julian day 0)
DSS_EPOCH = datetime(1899, 12, 31)

SECONDS_PER_DAY = 86400

# Native buffer capacities for rendered dates and times
DATE_BUFFER_SIZE = 13
TIME_BUFFER_SIZE = 10

# julianToDate style: 4 = "02Jun1985", +100 = upper case
DEFAULT_DATE_STYLE = 104


def _call_engine(engine: DSSEngine | None, method: str, *args: Any) -> Any:
    """Invoke an engine date/time primitive under the process-wide lock."""
    from pydssio.io.dss.engine import ENGINE_LOCK, get_engine

    if engine is None:
        engine = get_engine()
    with ENGINE_LOCK:
        return getattr(engine, method)(*args)


class TimeGranularity(IntEnum):
    """Unit in which a HecTime value is counted, in seconds."""

    SECOND = 1
    MINUTE = 60
    HOUR = 3600
    DAY = 86400

    @classmethod
    def default(cls) -> "TimeGranularity":
        return cls.MINUTE

    @classmethod
    def from_seconds(cls, seconds: int) -> "TimeGranularity":
        """
        Return the granularity for a unit size in seconds.

        Raises:
            GranularityError: If ``seconds`` is not 1, 60, 3600 or 86400
        """
        if isinstance(seconds, cls):
            return seconds
        try:
            return cls(seconds)
        except (ValueError, TypeError):
            raise GranularityError(
                f"Invalid time granularity: {seconds!r} seconds "
                "(expected 1, 60, 3600 or 86400)"
            ) from None


@dataclass
class HecTime:
    """
    A DSS timestamp.

    Attributes:
        value: Number of granularity units since midnight of ``base_days``
        granularity: Unit of ``value``
        base_days: Julian base date (days since 31 Dec 1899)
    """

    value: int
    granularity: TimeGranularity = TimeGranularity.MINUTE
    base_days: int = 0

    def __post_init__(self) -> None:
        if self.granularity is None:
            self.granularity = TimeGranularity.default()
        self.granularity = TimeGranularity.from_seconds(self.granularity)
        self.value = int(self.value)
        self.base_days = int(self.base_days or 0)

    @classmethod
    def from_text(
        cls,
        text: str,
        base: int | None = None,
        granularity: TimeGranularity | int | None = None,
        engine: DSSEngine | None = None,
    ) -> HecTime | None:
        """
        Parse a free-form date/time string with the DSS date parser.

        The parser yields a julian day and seconds past midnight. The
        seconds are divided by ``granularity`` (integer division), so
        precision finer than the granularity is dropped.

        Args:
            text: Date/time string (e.g. "01JAN2020 1200")
            base: Julian base date for the result; defaults to the parsed day
            granularity: Unit of the result; defaults to minute
            engine: Engine to use; defaults to the shared native engine

        Returns:
            HecTime, or None if the string could not be parsed
        """
        gran = (
            TimeGranularity.default()
            if granularity is None
            else TimeGranularity.from_seconds(granularity)
        )
        status, julian, seconds = _call_engine(engine, "parse_datetime", text)
        if status != 0:
            logger.warning("Could not parse date/time %r (status=%d)", text, status)
            return None

        if base is None:
            return cls(seconds // gran, gran, julian)
        offset = (julian - base) * SECONDS_PER_DAY + seconds
        return cls(offset // gran, gran, base)

    def to_text(self, engine: DSSEngine | None = None) -> tuple[str, str] | None:
        """
        Render as a ``(date, time)`` pair with the DSS formatter.

        Returns:
            Tuple of date and time strings, or None if formatting failed
        """
        status, date, time = _call_engine(
            engine,
            "format_datetime",
            self.value,
            int(self.granularity),
            self.base_days,
            DATE_BUFFER_SIZE,
            TIME_BUFFER_SIZE,
        )
        if status != 0:
            logger.warning("Could not format %r (status=%d)", self, status)
            return None
        return date, time

    def add_seconds(self, seconds: int) -> None:
        """Advance in place by ``seconds``, truncated toward zero to whole units."""
        steps = abs(int(seconds)) // int(self.granularity)
        self.value += steps if seconds >= 0 else -steps

    def total_seconds(self) -> int:
        """Return seconds since the DSS epoch."""
        return self.base_days * SECONDS_PER_DAY + self.value * int(self.granularity)

    def normalized(
        self,
        granularity: TimeGranularity | int | None = None,
        base_days: int | None = None,
    ) -> HecTime:
        """
        Return the same instant expressed in another granularity and base.

        Values that do not fall on a whole unit are floored.
        """
        gran = (
            self.granularity
            if granularity is None
            else TimeGranularity.from_seconds(granularity)
        )
        base = self.base_days if base_days is None else int(base_days)
        offset = self.total_seconds() - base * SECONDS_PER_DAY
        return HecTime(offset // gran, gran, base)

    def to_datetime(self) -> datetime:
        """Convert to a naive datetime."""
        return DSS_EPOCH + timedelta(seconds=self.total_seconds())

    @classmethod
    def from_datetime(
        cls,
        dt: datetime,
        granularity: TimeGranularity | int | None = None,
        base_days: int | None = None,
    ) -> HecTime:
        """
        Create from a datetime.

        Args:
            dt: Naive datetime
            granularity: Unit of the result; defaults to minute
            base_days: Julian base date; defaults to the julian day of ``dt``
        """
        gran = (
            TimeGranularity.default()
            if granularity is None
            else TimeGranularity.from_seconds(granularity)
        )
        total = int((dt - DSS_EPOCH).total_seconds())
        base = total // SECONDS_PER_DAY if base_days is None else int(base_days)
        return cls((total - base * SECONDS_PER_DAY) // gran, gran, base)

    @staticmethod
    def date_to_julian(text: str, engine: DSSEngine | None = None) -> int:
        """Convert a date string to days since the DSS epoch."""
        return date_to_julian(text, engine)

    @staticmethod
    def julian_to_date(
        days: int, style: int = DEFAULT_DATE_STYLE, engine: DSSEngine | None = None
    ) -> str | None:
        """Convert days since the DSS epoch to a date string."""
        return julian_to_date(days, style, engine)


def date_to_julian(text: str, engine: DSSEngine | None = None) -> int:
    """
    Convert a date string to a julian day.

    Args:
        text: Date string (e.g. "01JAN2020")
        engine: Engine to use; defaults to the shared native engine

    Returns:
        Days since 31 Dec 1899
    """
    return int(_call_engine(engine, "date_to_julian", text))


def julian_to_date(
    days: int, style: int = DEFAULT_DATE_STYLE, engine: DSSEngine | None = None
) -> str | None:
    """
    Convert a julian day to a date string.

    Args:
        days: Days since 31 Dec 1899
        style: Native date style (104 gives "02JUN1985")
        engine: Engine to use; defaults to the shared native engine

    Returns:
        Date string, or None if the engine reported an error
    """
    status, text = _call_engine(
        engine, "julian_to_date", int(days), int(style), DATE_BUFFER_SIZE
    )
    if status != 0:
        logger.warning("Could not format julian day %d (status=%d)", days, status)
        return None
    return text


# =============================================================================
# Intervals
# =============================================================================


class IntervalUnit(Enum):
    """Units of a regular time series interval."""

    SECOND = "Second"
    MINUTE = "Minute"
    HOUR = "Hour"
    DAY = "Day"
    WEEK = "Week"
    MONTH = "Month"
    SEMI_MONTH = "Semi-Month"
    TRI_MONTH = "Tri-Month"
    YEAR = "Year"

    @property
    def counted(self) -> bool:
        """True for units that carry an integer multiple."""
        return self in _COUNTED_UNITS

    @property
    def seconds(self) -> int:
        return _UNIT_SECONDS[self]


_COUNTED_UNITS = frozenset(
    {IntervalUnit.SECOND, IntervalUnit.MINUTE, IntervalUnit.HOUR, IntervalUnit.DAY}
)

# Named units use the nominal lengths of the DSS library, not calendar lengths
_UNIT_SECONDS = {
    IntervalUnit.SECOND: 1,
    IntervalUnit.MINUTE: 60,
    IntervalUnit.HOUR: 3600,
    IntervalUnit.DAY: 86400,
    IntervalUnit.WEEK: 604800,
    IntervalUnit.MONTH: 2592000,
    IntervalUnit.SEMI_MONTH: 1296000,
    IntervalUnit.TRI_MONTH: 864000,
    IntervalUnit.YEAR: 31536000,
}

_UNITS_BY_TOKEN = {unit.value.lower(): unit for unit in IntervalUnit}

_INTERVAL_PATTERN = re.compile(r"(\d+)?([A-Za-z][A-Za-z-]*)")

# Native E-part spellings
_E_PART_COUNTED = re.compile(r"(\d+)(SECOND|MIN|MINUTE|HOUR|DAY)S?")
_E_PART_COUNTED_UNITS = {
    "SECOND": IntervalUnit.SECOND,
    "MIN": IntervalUnit.MINUTE,
    "MINUTE": IntervalUnit.MINUTE,
    "HOUR": IntervalUnit.HOUR,
    "DAY": IntervalUnit.DAY,
}
_E_PART_NAMED = {
    "1WEEK": IntervalUnit.WEEK,
    "1MON": IntervalUnit.MONTH,
    "1MONTH": IntervalUnit.MONTH,
    "SEMI-MONTH": IntervalUnit.SEMI_MONTH,
    "TRI-MONTH": IntervalUnit.TRI_MONTH,
    "1YEAR": IntervalUnit.YEAR,
}


@dataclass(frozen=True)
class TimeInterval:
    """
    Interval of a regular time series.

    Counted units (second, minute, hour, day) carry a positive multiple;
    named units (week, month, semi-month, tri-month, year) always have a
    count of 1.

    Example:
        >>> TimeInterval.hours(1).to_text()
        '1Hour'
        >>> TimeInterval.from_text("semi-month").value()
        1296000
    """

    unit: IntervalUnit
    count: int = 1

    def __post_init__(self) -> None:
        if self.unit.counted:
            if isinstance(self.count, bool) or not isinstance(self.count, numbers.Integral):
                raise IntervalError(f"Interval count must be an integer: {self.count!r}")
            object.__setattr__(self, "count", int(self.count))
            if self.count < 1:
                raise IntervalError(f"Interval count must be positive: {self.count}")
        elif self.count != 1:
            raise IntervalError(f"{self.unit.value} interval does not take a count")

    @classmethod
    def seconds(cls, n: int) -> TimeInterval:
        return cls(IntervalUnit.SECOND, n)

    @classmethod
    def minutes(cls, n: int) -> TimeInterval:
        return cls(IntervalUnit.MINUTE, n)

    @classmethod
    def hours(cls, n: int) -> TimeInterval:
        return cls(IntervalUnit.HOUR, n)

    @classmethod
    def days(cls, n: int) -> TimeInterval:
        return cls(IntervalUnit.DAY, n)

    @classmethod
    def from_value(cls, seconds: int) -> TimeInterval:
        """
        Return the interval of a given length in seconds.

        Named units are matched first; otherwise the largest counted unit
        that divides ``seconds`` is used.

        Raises:
            IntervalError: If ``seconds`` is not positive
        """
        seconds = int(seconds)
        if seconds < 1:
            raise IntervalError(f"Interval length must be positive: {seconds}")
        for unit in IntervalUnit:
            if not unit.counted and unit.seconds == seconds:
                return cls(unit)
        for unit in (IntervalUnit.DAY, IntervalUnit.HOUR, IntervalUnit.MINUTE):
            if seconds % unit.seconds == 0:
                return cls(unit, seconds // unit.seconds)
        return cls(IntervalUnit.SECOND, seconds)

    def value(self) -> int:
        """Return the interval length in seconds."""
        return self.count * self.unit.seconds

    def to_text(self) -> str:
        if self.unit.counted:
            return f"{self.count}{self.unit.value}"
        return self.unit.value

    def __str__(self) -> str:
        return self.to_text()

    @classmethod
    def _parse(cls, text: str) -> TimeInterval | None:
        match = _INTERVAL_PATTERN.fullmatch(text.strip())
        if match is None:
            return None
        digits, token = match.groups()
        unit = _UNITS_BY_TOKEN.get(token.lower())
        if unit is None:
            return None
        if digits is not None:
            count = int(digits)
            if not unit.counted or count < 1:
                return None
            return cls(unit, count)
        if unit.counted:
            return None
        return cls(unit)

    @classmethod
    def from_text(cls, text: str) -> TimeInterval | None:
        """
        Parse an interval string.

        Grammar: ``<positive-integer><Second|Minute|Hour|Day>`` or one of
        ``Week``, ``Month``, ``Semi-Month``, ``Tri-Month``, ``Year``. Unit
        tokens are case-insensitive.

        Returns:
            TimeInterval, or None if the string does not follow the grammar
        """
        interval = cls._parse(text)
        if interval is None:
            logger.warning("Invalid time interval: %r", text)
        return interval

    @classmethod
    def from_e_part(cls, text: str) -> TimeInterval | None:
        """
        Parse the E-part of a pathname.

        Accepts the interval grammar of ``from_text`` plus the native DSS
        spellings (``15MIN``, ``1HOUR``, ``1DAY``, ``1MON``, ``1YEAR``).
        Irregular block sizes (``IR-DAY`` etc.) give None.
        """
        interval = cls._parse(text)
        if interval is not None:
            return interval

        token = text.strip().upper()
        if token in _E_PART_NAMED:
            return cls(_E_PART_NAMED[token])
        match = _E_PART_COUNTED.fullmatch(token)
        if match is not None and int(match.group(1)) > 0:
            return cls(_E_PART_COUNTED_UNITS[match.group(2)], int(match.group(1)))

        logger.debug("E-part %r is not a regular interval", text)
        return None


WEEK = TimeInterval(IntervalUnit.WEEK)
MONTH = TimeInterval(IntervalUnit.MONTH)
SEMI_MONTH = TimeInterval(IntervalUnit.SEMI_MONTH)
TRI_MONTH = TimeInterval(IntervalUnit.TRI_MONTH)
YEAR = TimeInterval(IntervalUnit.YEAR)
