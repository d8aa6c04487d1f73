"""
Contract between pydssio and the HEC-DSS library.

``DSSEngine`` lists the primitives the sessions and the time model need.
The native implementation is ``CtypesEngine`` in ``wrapper``; tests plug in
an in-memory engine.

The library reports errors through one process-wide last-error slot, so
every call into an engine is made while holding ``ENGINE_LOCK``. A session
keeps the lock across the call and the following ``query_last_error`` so
that no other thread can touch the slot in between.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pydssio.io.dss.errors import NativeErrorReport

# Re-entrant so that date rendering can run inside a session's critical section
ENGINE_LOCK = threading.RLock()


@dataclass
class RawTimeSeries:
    """
    Buffers and metadata returned by a time series retrieve.

    Attributes:
        values: Sample values (float32 or float64 as stored/requested)
        times: Per-sample times in granularity units since
            ``julian_base_date`` (irregular series only)
        units: Units string
        data_type: Data type string
        julian_base_date: Base date of ``times``
        start_julian_date: Julian day of the first sample
        start_time_seconds: Seconds past midnight of the first sample
        granularity_seconds: Unit of ``times``
        interval_seconds: Record interval; non-positive for irregular series
    """

    values: NDArray[np.floating]
    times: NDArray[np.int32] | None = None
    units: str = ""
    data_type: str = ""
    julian_base_date: int = 0
    start_julian_date: int = 0
    start_time_seconds: int = 0
    granularity_seconds: int = 60
    interval_seconds: int = 0


@dataclass
class RawPairedData:
    """
    Buffers and metadata returned by a paired-data retrieve.

    Attributes:
        n_ordinates: Number of rows returned
        n_curves: Number of columns returned
        ordinates: Index column, length ``n_ordinates``
        values: Column-major values, length ``n_ordinates * n_curves``
        labels: NUL-separated column labels
    """

    n_ordinates: int
    n_curves: int
    ordinates: NDArray[np.floating]
    values: NDArray[np.floating]
    labels: bytes = b""
    units_independent: str = ""
    type_independent: str = ""
    units_dependent: str = ""
    type_dependent: str = ""


@dataclass
class TimeWindow:
    """Rendered date/time strings bounding a time series retrieve."""

    start_date: str = ""
    start_time: str = ""
    end_date: str = ""
    end_time: str = ""


class DSSEngine(ABC):
    """Primitives of the HEC-DSS library used by pydssio."""

    @abstractmethod
    def open(self, path: str) -> Any:
        """Open a file and return its handle (IFLTAB)."""

    @abstractmethod
    def close(self, handle: Any) -> None:
        """Close a handle."""

    @abstractmethod
    def version(self, handle: Any) -> int:
        """Return the DSS format version of an open file."""

    @abstractmethod
    def retrieve_time_series(
        self,
        handle: Any,
        pathname: str,
        retrieve_flag: int = -1,
        read_doubles: bool = False,
        retrieve_all_times: bool = False,
        window: TimeWindow | None = None,
    ) -> RawTimeSeries:
        """Retrieve a time series record; scratch structures are freed before returning."""

    @abstractmethod
    def store_regular_time_series(
        self,
        handle: Any,
        pathname: str,
        values: NDArray[np.float32],
        start_date: str,
        start_time: str,
        units: str,
        data_type: str,
        storage_flag: int = 0,
    ) -> None:
        """Store a regular series from float values and a rendered start."""

    @abstractmethod
    def store_irregular_time_series(
        self,
        handle: Any,
        pathname: str,
        values: NDArray[np.float64],
        times: NDArray[np.int32],
        granularity_seconds: int,
        base_date: str,
        units: str,
        data_type: str,
        storage_flag: int = 0,
    ) -> None:
        """Store an irregular series from double values and integer times."""

    @abstractmethod
    def paired_data_extent(self, handle: Any, pathname: str) -> tuple[int, int]:
        """Return ``(rows, cols)`` of a stored paired-data record."""

    @abstractmethod
    def retrieve_paired_data(
        self,
        handle: Any,
        pathname: str,
        rows: tuple[int, int] | None = None,
        columns: tuple[int, int] | None = None,
    ) -> RawPairedData:
        """Retrieve a paired-data record, optionally a 1-based inclusive slice."""

    @abstractmethod
    def copy_record(
        self, handle_from: Any, handle_to: Any, from_pathname: str, to_pathname: str
    ) -> None:
        """Copy a record between (possibly identical) open files."""

    @abstractmethod
    def query_last_error(self, handle: Any = None) -> NativeErrorReport:
        """Read the last-error slot."""

    @abstractmethod
    def parse_datetime(self, text: str) -> tuple[int, int, int]:
        """Parse a date/time string into ``(status, julian_days, seconds)``."""

    @abstractmethod
    def format_datetime(
        self,
        value: int,
        granularity_seconds: int,
        base_days: int,
        date_size: int = 13,
        time_size: int = 10,
    ) -> tuple[int, str, str]:
        """Render a time value into ``(status, date, time)``."""

    @abstractmethod
    def date_to_julian(self, text: str) -> int:
        """Convert a date string to a julian day."""

    @abstractmethod
    def julian_to_date(self, days: int, style: int, size: int = 13) -> tuple[int, str]:
        """Render a julian day into ``(status, date)``."""


_default_engine: DSSEngine | None = None


def set_engine(engine: DSSEngine | None) -> None:
    """
    Replace the engine used when none is passed explicitly.

    Passing None restores lazy loading of the native library.
    """
    global _default_engine
    with ENGINE_LOCK:
        _default_engine = engine


def get_engine() -> DSSEngine:
    """
    Return the shared engine, loading the native library on first use.

    Raises:
        DSSLibraryError: If no engine was set and the library is unavailable
    """
    global _default_engine
    with ENGINE_LOCK:
        if _default_engine is None:
            from pydssio.io.dss.wrapper import CtypesEngine

            _default_engine = CtypesEngine()
        return _default_engine
