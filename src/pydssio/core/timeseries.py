"""
Time series record container for DSS data.

A regular series stores only its start time and interval; sample times are
expanded on demand. An irregular series stores one timestamp per value and
keeps the two sequences the same length on every mutation.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import ClassVar, Sequence

import numpy as np
from numpy.typing import NDArray

from pydssio.core.exceptions import (
    ContractViolation,
    IntervalError,
    IntervalNotSetError,
    RecordKindError,
    RecordShapeError,
)
from pydssio.core.hectime import HecTime, TimeInterval
from pydssio.core.pathname import DSSPathname


class TimeSeriesKind(Enum):
    """Storage form of a DSS time series."""

    REGULAR = "regular"
    IRREGULAR = "irregular"

    @classmethod
    def from_interval_seconds(cls, seconds: int) -> "TimeSeriesKind":
        """Non-positive record intervals denote irregular series."""
        return cls.IRREGULAR if seconds <= 0 else cls.REGULAR


class UnitKind(Enum):
    """Known data units."""

    INCH = "inch"
    FEET = "feet"
    MM = "mm"
    METER = "meter"
    CFS = "cfs"
    CMS = "cms"
    UNDEFINED = "undefined"


class TypeKind(Enum):
    """Known DSS data types."""

    PER_AVER = "PER-AVER"
    PER_CUM = "PER-CUM"
    INST_VAL = "INST-VAL"
    INST_CUM = "INST-CUM"
    UNDEFINED = "undefined"


@dataclass(frozen=True)
class _Label:
    """A known category or the original text when the category is unknown."""

    kind: Enum
    text: str = ""

    KINDS: ClassVar[type[Enum]]

    @classmethod
    def from_string(cls, text: str | None):
        text = "" if text is None else text
        lookup = {k.value.lower(): k for k in cls.KINDS if k.name != "UNDEFINED"}
        return cls(lookup.get(text.strip().lower(), cls.KINDS["UNDEFINED"]), text)

    @property
    def known(self) -> bool:
        return self.kind.name != "UNDEFINED"

    def __str__(self) -> str:
        return self.kind.value if self.known else self.text


class DataUnit(_Label):
    """Data unit; unrecognized units keep their text verbatim."""

    KINDS = UnitKind


class DataType(_Label):
    """DSS data type; unrecognized types keep their text verbatim."""

    KINDS = TypeKind


def _as_hectime(t: HecTime | datetime) -> HecTime:
    if isinstance(t, HecTime):
        return replace(t)
    if isinstance(t, datetime):
        return HecTime.from_datetime(t)
    raise TypeError(f"Expected HecTime or datetime, got {type(t).__name__}")


class TimeSeriesContainer:
    """
    A regular or irregular DSS time series.

    Example:
        >>> tsc = TimeSeriesContainer(TimeSeriesKind.REGULAR, 3)
        >>> tsc.set_values([1.0, 2.0, 3.0])
        >>> tsc.set_times([HecTime(0, TimeGranularity.MINUTE, 43830)])
        >>> tsc.set_interval(TimeInterval.hours(1))
        >>> [t.value for t in tsc.times(expand=True)]
        [0, 60, 120]
    """

    def __init__(self, kind: TimeSeriesKind | str, length: int) -> None:
        """
        Allocate a zeroed container.

        Args:
            kind: Regular or irregular
            length: Number of values
        """
        if length < 0:
            raise RecordShapeError(f"Time series length must be >= 0, got {length}")

        self._kind = TimeSeriesKind(kind)
        self._values = np.zeros(int(length), dtype=np.float64)
        self._times: list[HecTime] | None = None
        if self._kind is TimeSeriesKind.IRREGULAR:
            self._times = [HecTime(0) for _ in range(length)]

        self._start_time: HecTime | None = None
        self._interval: TimeInterval | None = None
        self.pathname: DSSPathname | None = None
        self.unit = DataUnit.from_string("")
        self.data_type = DataType.from_string("")

    @classmethod
    def regular(
        cls,
        values: Sequence[float] | NDArray[np.float64],
        start_time: HecTime | datetime,
        interval: TimeInterval | str | None = None,
        pathname: DSSPathname | str | None = None,
        unit: str = "",
        data_type: str = "",
    ) -> "TimeSeriesContainer":
        """
        Build a regular series in one call.

        When ``interval`` is omitted it is taken from the pathname E part.
        """
        tsc = cls(TimeSeriesKind.REGULAR, len(values))
        tsc.set_values(values)
        tsc.set_times([start_time])
        if pathname is not None:
            tsc.set_pathname(pathname)
        if interval is None and tsc.pathname is not None:
            interval = tsc.pathname.interval
        if interval is not None:
            tsc.set_interval(interval)
        tsc.set_unit(unit)
        tsc.set_type(data_type)
        return tsc

    @classmethod
    def irregular(
        cls,
        values: Sequence[float] | NDArray[np.float64],
        times: Sequence[HecTime | datetime],
        pathname: DSSPathname | str | None = None,
        unit: str = "",
        data_type: str = "",
    ) -> "TimeSeriesContainer":
        """Build an irregular series in one call."""
        tsc = cls(TimeSeriesKind.IRREGULAR, len(values))
        tsc.set_values(values)
        tsc.set_times(times)
        if pathname is not None:
            tsc.set_pathname(pathname)
        tsc.set_unit(unit)
        tsc.set_type(data_type)
        return tsc

    @property
    def kind(self) -> TimeSeriesKind:
        return self._kind

    @property
    def is_regular(self) -> bool:
        return self._kind is TimeSeriesKind.REGULAR

    @property
    def values(self) -> NDArray[np.float64]:
        """Read-only view of the values."""
        view = self._values.view()
        view.flags.writeable = False
        return view

    @property
    def start_time(self) -> HecTime | None:
        if self.is_regular:
            return None if self._start_time is None else replace(self._start_time)
        return replace(self._times[0]) if self._times else None

    @property
    def interval(self) -> TimeInterval | None:
        return self._interval

    def set_pathname(self, pathname: DSSPathname | str | None) -> None:
        self.pathname = None if pathname is None else DSSPathname.coerce(pathname)

    def set_values(self, values: Sequence[float] | NDArray[np.float64]) -> None:
        """
        Replace the values.

        Raises:
            RecordShapeError: If the length differs from the container length
        """
        arr = np.asarray(values, dtype=np.float64)
        if arr.ndim != 1 or arr.shape[0] != self._values.shape[0]:
            raise RecordShapeError(
                f"Value count ({arr.size}) doesn't match time series "
                f"length ({self._values.shape[0]})",
                expected=self._values.shape[0],
                actual=arr.size,
            )
        self._values[:] = arr

    def set_times(self, times: Sequence[HecTime | datetime]) -> None:
        """
        Set sample times.

        A regular series keeps only the first entry as its start time. An
        irregular series needs exactly one time per value.

        Raises:
            RecordShapeError: If the number of times does not fit
        """
        times = list(times)
        if self.is_regular:
            if not times:
                raise RecordShapeError(
                    "Regular time series needs a start time", expected=1, actual=0
                )
            self._start_time = _as_hectime(times[0])
            return

        if len(times) != self._values.shape[0]:
            raise RecordShapeError(
                f"Time count ({len(times)}) doesn't match value count "
                f"({self._values.shape[0]})",
                expected=self._values.shape[0],
                actual=len(times),
            )
        self._times = [_as_hectime(t) for t in times]

    def times(self, expand: bool = False) -> list[HecTime]:
        """
        Return sample times.

        Args:
            expand: For a regular series, expand the start time into one
                timestamp per value instead of returning only the start

        Raises:
            IntervalNotSetError: If expansion is requested without an interval
        """
        if not self.is_regular:
            return [replace(t) for t in self._times]

        if self._start_time is None:
            return []
        if not expand:
            return [replace(self._start_time)]
        if self._interval is None:
            raise IntervalNotSetError("Interval of regular time series is not set")

        step = self._interval.value()
        current = replace(self._start_time)
        expanded = []
        for i in range(len(self)):
            if i > 0:
                current.add_seconds(step)
            expanded.append(replace(current))
        return expanded

    def set_interval(self, interval: TimeInterval | str) -> None:
        """
        Set the interval of a regular series.

        Raises:
            RecordKindError: If the series is irregular
            IntervalError: If a string interval cannot be parsed
        """
        if not self.is_regular:
            raise RecordKindError("Irregular time series has no interval")
        if isinstance(interval, str):
            parsed = TimeInterval.from_e_part(interval)
            if parsed is None:
                raise IntervalError(f"Invalid time interval: {interval!r}")
            interval = parsed
        self._interval = interval

    def set_unit(self, unit: str) -> None:
        self.unit = DataUnit.from_string(unit)

    def set_type(self, data_type: str) -> None:
        self.data_type = DataType.from_string(data_type)

    def to_dataframe(self):
        """
        Convert to a pandas DataFrame.

        Returns:
            DataFrame with sample datetimes as index

        Raises:
            ContractViolation: If a regular series with values has no start time
        """
        import pandas as pd

        if self.is_regular and self._start_time is None and len(self) > 0:
            raise ContractViolation("Regular time series has no start time")
        times = self.times(expand=True)
        name = self.pathname.c_part if self.pathname is not None and self.pathname.c_part else "value"
        return pd.DataFrame(
            {name: self._values.copy()},
            index=pd.DatetimeIndex([t.to_datetime() for t in times]),
        )

    def __len__(self) -> int:
        return int(self._values.shape[0])

    def __repr__(self) -> str:
        return (
            f"TimeSeriesContainer(kind={self._kind.value}, pathname={self.pathname}, "
            f"n_values={len(self)}, unit='{self.unit}', type='{self.data_type}')"
        )
