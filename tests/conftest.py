"""Pytest configuration and fixtures for pydssio tests."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Iterator

import numpy as np
import pytest

from pydssio.core.hectime import DSS_EPOCH, TimeInterval
from pydssio.core.pathname import DSSPathname
from pydssio.io.dss.engine import (
    DSSEngine,
    RawPairedData,
    RawTimeSeries,
    TimeWindow,
    set_engine,
)
from pydssio.io.dss.errors import NativeErrorReport

EXAMPLE_FILE = "example.dss"
EXAMPLE_TS_PATH = "/REGULAR/TIMESERIES/FLOW//1Hour/Ex1a/"
EXAMPLE_PD_PATH = "/PAIRED/DATA/FREQ-FLOW///Ex1/"
EXAMPLE_VALUES = [450.0 + 50.0 * i for i in range(12)]

# Value of the native UNDEFINED_TIME
UNDEFINED_TIME = -2147483648


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers", "integration: tests that need the HEC-DSS shared library"
    )


def julian(d: date) -> int:
    """Days since the DSS epoch."""
    return (d - DSS_EPOCH.date()).days


@dataclass
class FakeHandle:
    """Handle returned by ``FakeDSSEngine.open``."""

    path: str
    closed: bool = False


@dataclass
class FakeDSSEngine(DSSEngine):
    """
    In-memory ``DSSEngine``.

    Records are kept per file path. The last-error slot is cleared at the
    start of every call and set when a call fails, like a library that
    reports through ``zerror``.
    """

    files: dict[str, dict[str, object]] = field(default_factory=dict)
    fail_open: set[str] = field(default_factory=set)
    calls: list[str] = field(default_factory=list)
    handles: list[FakeHandle] = field(default_factory=list)
    slot: NativeErrorReport = field(default_factory=NativeErrorReport)

    def _begin(self, name: str) -> None:
        self.calls.append(name)
        self.slot = NativeErrorReport()

    def _fail(self, category: int, code: int, message: str) -> None:
        self.slot = NativeErrorReport(category, code, message)

    def _records(self, handle: FakeHandle) -> dict[str, object]:
        return self.files.setdefault(handle.path, {})

    @staticmethod
    def _key(pathname: str) -> str:
        return str(DSSPathname.from_string(pathname)).upper()

    # -- seeding --------------------------------------------------------

    def add_time_series(self, path: str, pathname: str, raw: RawTimeSeries) -> None:
        self.files.setdefault(path, {})[self._key(pathname)] = raw

    def add_paired_data(
        self,
        path: str,
        pathname: str,
        ordinates: list[float],
        columns: list[list[float]],
        labels: bytes = b"",
    ) -> None:
        self.files.setdefault(path, {})[self._key(pathname)] = RawPairedData(
            n_ordinates=len(ordinates),
            n_curves=len(columns),
            ordinates=np.array(ordinates, dtype=np.float64),
            values=np.array(columns, dtype=np.float64).ravel(),
            labels=labels,
            units_independent="percent",
            type_independent="LINEAR",
            units_dependent="cfs",
            type_dependent="LINEAR",
        )

    # -- contract -------------------------------------------------------

    def open(self, path: str) -> FakeHandle | None:
        self._begin("open")
        if path in self.fail_open:
            self._fail(3, 58, f"File does not exist: {path}")
            return None
        handle = FakeHandle(path)
        self.handles.append(handle)
        self.files.setdefault(path, {})
        return handle

    def close(self, handle: FakeHandle) -> None:
        self._begin("close")
        handle.closed = True

    def version(self, handle: FakeHandle) -> int:
        self._begin("version")
        return 7

    def retrieve_time_series(
        self,
        handle: FakeHandle,
        pathname: str,
        retrieve_flag: int = -1,
        read_doubles: bool = False,
        retrieve_all_times: bool = False,
        window: TimeWindow | None = None,
    ) -> RawTimeSeries:
        self._begin("retrieve_time_series")
        raw = self._records(handle).get(self._key(pathname))
        if not isinstance(raw, RawTimeSeries):
            self._fail(3, 52, f"Record does not exist: {pathname}")
            return RawTimeSeries(values=np.array([], dtype=np.float64))
        return replace(raw, values=raw.values.copy())

    def store_regular_time_series(
        self,
        handle: FakeHandle,
        pathname: str,
        values: np.ndarray,
        start_date: str,
        start_time: str,
        units: str,
        data_type: str,
        storage_flag: int = 0,
    ) -> None:
        self._begin("store_regular_time_series")
        start = datetime.strptime(f"{start_date} {start_time}", "%d%b%Y %H%M")
        interval = TimeInterval.from_e_part(DSSPathname.from_string(pathname).e_part)
        self._records(handle)[self._key(pathname)] = RawTimeSeries(
            values=np.asarray(values, dtype=np.float32).astype(np.float64),
            units=units,
            data_type=data_type,
            start_julian_date=julian(start.date()),
            start_time_seconds=start.hour * 3600 + start.minute * 60,
            granularity_seconds=60,
            interval_seconds=interval.value(),
        )

    def store_irregular_time_series(
        self,
        handle: FakeHandle,
        pathname: str,
        values: np.ndarray,
        times: np.ndarray,
        granularity_seconds: int,
        base_date: str,
        units: str,
        data_type: str,
        storage_flag: int = 0,
    ) -> None:
        self._begin("store_irregular_time_series")
        base = julian(datetime.strptime(base_date, "%d%b%Y").date())
        self._records(handle)[self._key(pathname)] = RawTimeSeries(
            values=np.asarray(values, dtype=np.float64).copy(),
            times=np.asarray(times, dtype=np.int32).copy(),
            units=units,
            data_type=data_type,
            julian_base_date=base,
            granularity_seconds=granularity_seconds,
            interval_seconds=0,
        )

    def _paired(self, handle: FakeHandle, pathname: str) -> RawPairedData | None:
        raw = self._records(handle).get(self._key(pathname))
        if not isinstance(raw, RawPairedData):
            self._fail(3, 52, f"Record does not exist: {pathname}")
            return None
        return raw

    def paired_data_extent(self, handle: FakeHandle, pathname: str) -> tuple[int, int]:
        self._begin("paired_data_extent")
        raw = self._paired(handle, pathname)
        if raw is None:
            return 0, 0
        return raw.n_ordinates, raw.n_curves

    def retrieve_paired_data(
        self,
        handle: FakeHandle,
        pathname: str,
        rows: tuple[int, int] | None = None,
        columns: tuple[int, int] | None = None,
    ) -> RawPairedData:
        self._begin("retrieve_paired_data")
        raw = self._paired(handle, pathname)
        if raw is None:
            return RawPairedData(0, 0, np.array([]), np.array([]))

        r0, r1 = rows if rows is not None else (1, raw.n_ordinates)
        c0, c1 = columns if columns is not None else (1, raw.n_curves)
        table = raw.values.reshape(raw.n_curves, raw.n_ordinates)
        sliced = table[c0 - 1 : c1, r0 - 1 : r1]
        return replace(
            raw,
            n_ordinates=r1 - r0 + 1,
            n_curves=c1 - c0 + 1,
            ordinates=raw.ordinates[r0 - 1 : r1].copy(),
            values=sliced.ravel().copy(),
        )

    def copy_record(
        self,
        handle_from: FakeHandle,
        handle_to: FakeHandle,
        from_pathname: str,
        to_pathname: str,
    ) -> None:
        self._begin("copy_record")
        raw = self._records(handle_from).get(self._key(from_pathname))
        if raw is None:
            self._fail(3, 52, f"Record does not exist: {from_pathname}")
            return
        self._records(handle_to)[self._key(to_pathname)] = replace(raw)

    def query_last_error(self, handle: FakeHandle | None = None) -> NativeErrorReport:
        return self.slot

    def parse_datetime(self, text: str) -> tuple[int, int, int]:
        for fmt in ("%d%b%Y %H%M", "%d%b%Y %H:%M", "%d%b%Y"):
            try:
                dt = datetime.strptime(text.strip(), fmt)
            except ValueError:
                continue
            return 0, julian(dt.date()), dt.hour * 3600 + dt.minute * 60 + dt.second
        return -1, UNDEFINED_TIME, 0

    def format_datetime(
        self,
        value: int,
        granularity_seconds: int,
        base_days: int,
        date_size: int = 13,
        time_size: int = 10,
    ) -> tuple[int, str, str]:
        dt = DSS_EPOCH + timedelta(days=base_days, seconds=value * granularity_seconds)
        return 0, dt.strftime("%d%b%Y").upper(), dt.strftime("%H%M")

    def date_to_julian(self, text: str) -> int:
        try:
            return julian(datetime.strptime(text.strip(), "%d%b%Y").date())
        except ValueError:
            return UNDEFINED_TIME

    def julian_to_date(self, days: int, style: int, size: int = 13) -> tuple[int, str]:
        if days == UNDEFINED_TIME:
            return -1, ""
        return 0, (DSS_EPOCH + timedelta(days=days)).strftime("%d%b%Y").upper()


@pytest.fixture
def fake_engine() -> FakeDSSEngine:
    """Return an empty in-memory engine."""
    return FakeDSSEngine()


@pytest.fixture
def example_engine(fake_engine: FakeDSSEngine) -> FakeDSSEngine:
    """Engine seeded with an hourly flow series and a paired data table."""
    fake_engine.add_time_series(
        EXAMPLE_FILE,
        EXAMPLE_TS_PATH,
        RawTimeSeries(
            values=np.array(EXAMPLE_VALUES, dtype=np.float64),
            units="cfs",
            data_type="INST-VAL",
            start_julian_date=julian(date(2021, 1, 1)),
            start_time_seconds=3600,
            granularity_seconds=60,
            interval_seconds=3600,
        ),
    )
    fake_engine.add_paired_data(
        EXAMPLE_FILE,
        EXAMPLE_PD_PATH,
        ordinates=[0.1, 1.0, 10.0, 50.0, 99.0],
        columns=[
            [100.0, 200.0, 300.0, 400.0, 500.0],
            [110.0, 210.0, 310.0, 410.0, 510.0],
            [120.0, 220.0, 320.0, 420.0, 520.0],
        ],
        labels=b"Median\0Upper\0Lower\0",
    )
    return fake_engine


@pytest.fixture
def shared_engine(fake_engine: FakeDSSEngine) -> Iterator[FakeDSSEngine]:
    """Install the fake engine as the process-wide default engine."""
    set_engine(fake_engine)
    yield fake_engine
    set_engine(None)
