"""
Session over one open HEC-DSS file.

``DSSFile`` owns the file handle, runs every engine call through a checked
call (engine call, last-error query and translation under ``ENGINE_LOCK``)
and turns the raw buffers returned by the engine into record containers.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Sequence

import numpy as np

from pydssio.config import DSSSettings
from pydssio.core.exceptions import ContractViolation, DSSFileError, SliceRangeError
from pydssio.core.hectime import (
    SECONDS_PER_DAY,
    HecTime,
    TimeGranularity,
    TimeInterval,
    julian_to_date,
)
from pydssio.core.paired_data import PairedDataContainer
from pydssio.core.pathname import DSSPathname
from pydssio.core.timeseries import TimeSeriesContainer, TimeSeriesKind
from pydssio.io.dss.engine import (
    ENGINE_LOCK,
    DSSEngine,
    RawPairedData,
    RawTimeSeries,
    TimeWindow,
    get_engine,
)
from pydssio.io.dss.errors import DSSEngineError, DSSErrorReport

logger = logging.getLogger(__name__)

_VALID_MODES = ("r", "w", "rw")

_INT32_MAX = int(np.iinfo(np.int32).max)


def _split_labels(raw: bytes, cols: int) -> list[str] | None:
    """
    Split a NUL-separated label buffer into exactly ``cols`` headers.

    Extra labels are dropped and missing ones are padded with empty
    strings. Returns None when the buffer holds no labels.
    """
    text = raw.decode("utf-8", errors="replace").rstrip("\0")
    if not text:
        return None
    labels = text.split("\0")
    if len(labels) > cols:
        logger.warning("Dropping %d extra paired data labels", len(labels) - cols)
        labels = labels[:cols]
    elif len(labels) < cols:
        logger.warning("Padding %d missing paired data labels", cols - len(labels))
        labels = labels + [""] * (cols - len(labels))
    return labels


def _check_range(name: str, bounds: tuple[int, int], extent: int) -> None:
    """Validate a 1-based inclusive ``(start, end)`` slice against ``extent``."""
    start, end = bounds
    if not 1 <= start <= extent:
        raise SliceRangeError(f"start_{name}", start, (1, extent))
    if not 1 <= end <= extent:
        raise SliceRangeError(f"end_{name}", end, (1, extent))
    if start > end:
        raise SliceRangeError(f"end_{name}", end, (start, extent))


class DSSFile:
    """
    Context manager for HEC-DSS file operations.

    Provides methods for reading and writing time series and paired data
    records, and for copying records between files.

    Example:
        >>> with DSSFile("data.dss", mode="rw") as dss:
        ...     tsc = dss.read_time_series("/REGULAR/TIMESERIES/FLOW//1Hour/Ex1a/")
        ...     tsc.set_pathname("/REGULAR/TIMESERIES/FLOW//1Hour/Copy/")
        ...     dss.write_time_series(tsc)
    """

    def __init__(
        self,
        filepath: Path | str,
        mode: str = "rw",
        engine: DSSEngine | None = None,
        settings: DSSSettings | None = None,
    ) -> None:
        """
        Initialize DSS file handle.

        Args:
            filepath: Path to DSS file
            mode: File mode ('r' = read, 'w' = write, 'rw' = read/write)
            engine: Engine to use; defaults to the shared native engine
            settings: Read/write defaults; keyword arguments of each call
                take precedence

        Raises:
            ValueError: If ``mode`` is not one of 'r', 'w', 'rw'
            DSSLibraryError: If no engine is given and the library is unavailable
        """
        if mode not in _VALID_MODES:
            raise ValueError(f"Invalid DSS file mode {mode!r}, expected one of {_VALID_MODES}")

        self.filepath = Path(filepath)
        self.mode = mode
        self.settings = settings or DSSSettings()

        if engine is None:
            if settings is not None and settings.library_path is not None:
                from pydssio.io.dss.wrapper import CtypesEngine

                engine = CtypesEngine(library_path=settings.library_path)
            else:
                engine = get_engine()
        self._engine = engine

        self._handle: Any = None
        self._is_open = False
        self._version: int | None = None

    def __enter__(self) -> "DSSFile":
        """Open the DSS file."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close the DSS file."""
        self.close()

    def __repr__(self) -> str:
        state = "open" if self._is_open else "closed"
        return f"DSSFile('{self.filepath}', mode='{self.mode}', {state})"

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def version(self) -> int | None:
        """DSS format version of the file, known once it is open."""
        return self._version

    @property
    def engine(self) -> DSSEngine:
        return self._engine

    # ------------------------------------------------------------------
    # Handle management
    # ------------------------------------------------------------------

    def _checked(self, context: str, fn: Callable[..., Any], *args: Any) -> Any:
        """
        Run one engine call and translate the last-error slot.

        The call and the error query share one critical section so that
        the slot cannot be overwritten by another thread in between.

        Raises:
            DSSEngineError: If the engine reported an error
        """
        with ENGINE_LOCK:
            result = fn(*args)
            native = self._engine.query_last_error(self._handle)
        DSSErrorReport.from_native(native).raise_for_status(context)
        return result

    def _require_open(self) -> None:
        if not self._is_open:
            raise DSSFileError("DSS file not open")

    def _require_writable(self) -> None:
        self._require_open()
        if "w" not in self.mode:
            raise DSSFileError("DSS file not open for writing")

    def open(self) -> None:
        """
        Open the DSS file.

        On failure no handle is kept and the typed engine error propagates.
        """
        if self._is_open:
            return

        try:
            with ENGINE_LOCK:
                handle = self._engine.open(str(self.filepath))
                native = self._engine.query_last_error(handle)
            DSSErrorReport.from_native(native).raise_for_status(
                f"Failed to open DSS file: {self.filepath}"
            )
            self._handle = handle
            self._version = int(
                self._checked("zgetVersion", self._engine.version, self._handle)
            )
        except DSSEngineError:
            # opened but failed afterwards
            if self._handle is not None:
                with ENGINE_LOCK:
                    self._engine.close(self._handle)
            self._handle = None
            self._version = None
            raise

        self._is_open = True
        logger.debug("Opened DSS file %s (version %s)", self.filepath, self._version)

    def close(self) -> None:
        """Close the DSS file."""
        if not self._is_open:
            return

        if self._handle is not None:
            with ENGINE_LOCK:
                self._engine.close(self._handle)

        self._handle = None
        self._is_open = False
        logger.debug("Closed DSS file %s", self.filepath)

    # ------------------------------------------------------------------
    # Time series
    # ------------------------------------------------------------------

    def _render_time(self, t: HecTime | datetime) -> tuple[str, str]:
        if not isinstance(t, HecTime):
            t = HecTime.from_datetime(t, self.settings.default_granularity)
        rendered = t.to_text(engine=self._engine)
        if rendered is None:
            raise DSSFileError(f"Could not render time for the DSS library: {t}")
        return rendered

    def read_time_series(
        self,
        pathname: DSSPathname | str,
        retrieve_flag: int | None = None,
        retrieve_all_times: bool | None = None,
        read_doubles: bool | None = None,
        start: HecTime | datetime | None = None,
        end: HecTime | datetime | None = None,
    ) -> TimeSeriesContainer:
        """
        Read a regular or irregular time series record.

        Args:
            pathname: DSS pathname
            retrieve_flag: Retrieve flag (defaults to the session settings)
            retrieve_all_times: Ignore the D part and read all times
            read_doubles: Read double precision values
            start: Start of the time window (requires ``end``)
            end: End of the time window (requires ``start``)

        Returns:
            TimeSeriesContainer; an irregular record has one time per value
        """
        self._require_open()
        path = DSSPathname.coerce(pathname)

        if (start is None) != (end is None):
            raise ValueError("start and end of a time window must be given together")
        window = None
        if start is not None:
            window = TimeWindow(*self._render_time(start), *self._render_time(end))

        s = self.settings
        raw = self._checked(
            f"Failed to read time series: {path}",
            self._engine.retrieve_time_series,
            self._handle,
            str(path),
            s.retrieve_flag if retrieve_flag is None else retrieve_flag,
            s.read_doubles if read_doubles is None else read_doubles,
            s.retrieve_all_times if retrieve_all_times is None else retrieve_all_times,
            window,
        )
        tsc = self._to_time_series(path, raw)
        logger.debug("Read %d values from %s", len(tsc), path)
        return tsc

    @staticmethod
    def _to_time_series(path: DSSPathname, raw: RawTimeSeries) -> TimeSeriesContainer:
        values = np.asarray(raw.values, dtype=np.float64)
        kind = TimeSeriesKind.from_interval_seconds(raw.interval_seconds)
        gran = TimeGranularity.from_seconds(raw.granularity_seconds)

        tsc = TimeSeriesContainer(kind, len(values))
        tsc.set_pathname(path)
        tsc.set_values(values)
        tsc.set_unit(raw.units)
        tsc.set_type(raw.data_type)

        if kind is TimeSeriesKind.IRREGULAR:
            if raw.times is not None and len(values):
                tsc.set_times(
                    [HecTime(int(t), gran, raw.julian_base_date) for t in raw.times]
                )
            return tsc

        if len(values):
            tsc.set_times(
                [HecTime(raw.start_time_seconds // gran, gran, raw.start_julian_date)]
            )
        interval = path.interval
        if interval is None:
            interval = TimeInterval.from_value(raw.interval_seconds)
        tsc.set_interval(interval)
        return tsc

    def write_time_series(
        self, tsc: TimeSeriesContainer, storage_flag: int | None = None
    ) -> None:
        """
        Write a time series record under its own pathname.

        Regular series are stored as floats from a rendered start date and
        time; the pathname must name the interval in its E part. Irregular
        series are stored as doubles with integer times in the finest
        granularity present, counted from the julian day of their earliest
        time.

        Args:
            tsc: Time series to write
            storage_flag: Storage flag (defaults to the session settings)

        Raises:
            DSSFileError: If the file is not writable or the series has no pathname
            IntervalNotSetError: If a regular series pathname has no E part
            ContractViolation: If a regular series has no start time, or
                irregular times do not fit 32-bit offsets
        """
        self._require_writable()
        if tsc.pathname is None:
            raise DSSFileError("Time series has no pathname")

        path = tsc.pathname
        flag = self.settings.storage_flag if storage_flag is None else storage_flag

        if tsc.is_regular:
            path.require_interval_token()
            start = tsc.start_time
            if start is None:
                raise ContractViolation(f"Regular time series has no start time: {path}")
            start_date, start_time = self._render_time(start)
            self._checked(
                f"Failed to write time series: {path}",
                self._engine.store_regular_time_series,
                self._handle,
                str(path),
                np.asarray(tsc.values, dtype=np.float32),
                start_date,
                start_time,
                str(tsc.unit),
                str(tsc.data_type),
                flag,
            )
        else:
            times = tsc.times()
            if times:
                gran = min(t.granularity for t in times)
                base = min(t.total_seconds() for t in times) // SECONDS_PER_DAY
            else:
                gran = TimeGranularity.from_seconds(self.settings.default_granularity)
                base = 0
            offsets = [t.normalized(gran, base).value for t in times]
            if offsets and max(offsets) > _INT32_MAX:
                raise ContractViolation(
                    f"Irregular times span too long for {gran.name.lower()} "
                    f"granularity: {path}"
                )
            itimes = np.array(offsets, dtype=np.int32)
            base_date = julian_to_date(base, engine=self._engine)
            if base_date is None:
                raise DSSFileError(f"Could not render base date {base} for: {path}")
            self._checked(
                f"Failed to write time series: {path}",
                self._engine.store_irregular_time_series,
                self._handle,
                str(path),
                np.asarray(tsc.values, dtype=np.float64),
                itimes,
                int(gran),
                base_date,
                str(tsc.unit),
                str(tsc.data_type),
                flag,
            )

        logger.debug("Wrote %d values to %s", len(tsc), path)

    # ------------------------------------------------------------------
    # Paired data
    # ------------------------------------------------------------------

    def read_paired_data(
        self,
        pathname: DSSPathname | str,
        rows: tuple[int, int] | None = None,
        columns: tuple[int, int] | None = None,
    ) -> PairedDataContainer:
        """
        Read a paired data record, optionally a slice of it.

        Args:
            pathname: DSS pathname
            rows: 1-based inclusive ``(start, end)`` row range
            columns: 1-based inclusive ``(start, end)`` column range

        Raises:
            SliceRangeError: If a bound lies outside the stored table; no
                data is retrieved in that case
        """
        self._require_open()
        path = DSSPathname.coerce(pathname)

        if rows is not None or columns is not None:
            n_rows, n_cols = self._checked(
                f"Failed to read paired data: {path}",
                self._engine.paired_data_extent,
                self._handle,
                str(path),
            )
            if rows is not None:
                _check_range("row", rows, n_rows)
            if columns is not None:
                _check_range("column", columns, n_cols)

        raw = self._checked(
            f"Failed to read paired data: {path}",
            self._engine.retrieve_paired_data,
            self._handle,
            str(path),
            rows,
            columns,
        )
        pdc = self._to_paired_data(path, raw)
        logger.debug("Read paired data %s with shape %s", path, pdc.shape)
        return pdc

    @staticmethod
    def _to_paired_data(path: DSSPathname, raw: RawPairedData) -> PairedDataContainer:
        pdc = PairedDataContainer(raw.n_ordinates, raw.n_curves)
        pdc.set_pathname(path)
        pdc.set_index(raw.ordinates)
        pdc.set_columns(raw.values)
        pdc.set_headers(_split_labels(raw.labels, raw.n_curves))
        pdc.set_index_metadata(raw.units_independent, raw.type_independent)
        pdc.set_column_metadata(raw.units_dependent, raw.type_dependent)
        return pdc

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def copy_record(
        self,
        from_pathname: DSSPathname | str,
        to_pathname: DSSPathname | str,
        destination: "DSSFile | None" = None,
    ) -> None:
        """
        Copy a record within this file or into another open file.

        Args:
            from_pathname: Pathname of the record in this file
            to_pathname: Pathname of the copy
            destination: Target file (defaults to this file)
        """
        self._require_open()
        target = self if destination is None else destination
        target._require_writable()
        if target.engine is not self._engine:
            raise DSSFileError("Cannot copy records between files opened by different engines")

        src = DSSPathname.coerce(from_pathname)
        dst = DSSPathname.coerce(to_pathname)
        self._checked(
            f"Failed to copy record {src} to {dst}",
            self._engine.copy_record,
            self._handle,
            target._handle,
            str(src),
            str(dst),
        )
        logger.debug("Copied %s to %s in %s", src, dst, target.filepath)

    def copy_records(
        self,
        pathnames: Sequence[DSSPathname | str],
        destination: "DSSFile",
    ) -> int:
        """Copy several records unchanged into ``destination``; returns the count."""
        for pathname in pathnames:
            self.copy_record(pathname, pathname, destination)
        return len(pathnames)
