"""
HEC-DSS 7 C library wrapper using ctypes.

This module implements ``DSSEngine`` on top of the HEC-DSS 7 C library.
The library must be installed separately and its path given via the
HECDSS_LIB environment variable, the ``library_path`` setting, or placed in
a ``lib`` directory beside this module.

Note: HEC-DSS 7 uses 64-bit integers for IFLTAB (250 elements), not the
legacy 32-bit version (600 elements).

Every struct allocated by the library (``zstructTsNew*``, ``zstructPdNew``)
is released with ``zstructFree`` before the method returns, on success and
on failure.
"""

from __future__ import annotations

import ctypes
import logging
import os
import platform
from ctypes import (
    CDLL,
    POINTER,
    Structure,
    byref,
    c_char,
    c_char_p,
    c_double,
    c_float,
    c_int,
    c_int32,
    c_int64,
    c_size_t,
    c_void_p,
    create_string_buffer,
)
from pathlib import Path
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pydssio.config import HECDSS_LIB_ENV
from pydssio.core.exceptions import DSSLibraryError
from pydssio.io.dss.engine import (
    DSSEngine,
    RawPairedData,
    RawTimeSeries,
    TimeWindow,
)
from pydssio.io.dss.errors import DSSEngineError, DSSErrorReport, NativeErrorReport

logger = logging.getLogger(__name__)

# HEC-DSS 7 IFLTAB size (64-bit integers)
IFLTAB_SIZE = 250

# zpdRetrieve retrieveDoubleFlag: 2 = return doubles
_PD_RETRIEVE_DOUBLES = 2


def _library_name() -> str:
    system = platform.system()
    if system == "Windows":
        return "hecdss.dll"
    if system == "Darwin":
        return "libhecdss.dylib"
    return "libhecdss.so"


def find_library_path(explicit: Path | str | None = None) -> Path | None:
    """Get the path to the HEC-DSS library."""
    if explicit is not None:
        path = Path(explicit)
        return path if path.exists() else None

    # Check environment variable first
    env_path = os.environ.get(HECDSS_LIB_ENV)
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path

    # Check package lib directory (bundled with pydssio)
    package_lib_dir = Path(__file__).parent / "lib"
    package_lib = package_lib_dir / _library_name()
    if package_lib.exists():
        if platform.system() == "Windows":
            try:
                os.add_dll_directory(str(package_lib_dir))
            except (AttributeError, OSError):
                pass  # directory already added
        return package_lib

    # Check common system locations
    common_paths = [
        Path("/usr/local/lib/libhecdss.so"),
        Path("/usr/lib/libhecdss.so"),
        Path("C:/Program Files/HEC/HEC-DSS/libhecdss.dll"),
        Path("C:/HEC/HEC-DSS/lib/hecdss.dll"),
    ]

    for path in common_paths:
        if path.exists():
            return path

    return None


def _load_library(explicit: Path | str | None = None) -> CDLL | None:
    """Load the HEC-DSS library."""
    lib_path = find_library_path(explicit)

    if lib_path is None:
        return None

    try:
        return ctypes.CDLL(str(lib_path))
    except OSError as exc:
        logger.warning("Failed to load HEC-DSS library %s: %s", lib_path, exc)
        return None


# Try to load the library at module import
_dss_lib = _load_library()
HAS_DSS_LIBRARY = _dss_lib is not None


# ---------------------------------------------------------------------------
# Partial ctypes definitions of the HEC-DSS 7 structs
# ---------------------------------------------------------------------------


class _zStructTimeSeries(Structure):
    """Partial ctypes definition of zStructTimeSeries for field access.

    Only defines fields through ``type``, which covers everything read after
    ``ztsRetrieve``. The full struct has ~50 fields.
    """

    _fields_ = [
        ("structType", c_int),
        ("pathname", c_char_p),
        ("julianBaseDate", c_int),
        ("startJulianDate", c_int),
        ("startTimeSeconds", c_int),
        ("endJulianDate", c_int),
        ("endTimeSeconds", c_int),
        ("timeGranularitySeconds", c_int),
        ("timeIntervalSeconds", c_int),
        ("timeOffsetSeconds", c_int),
        ("times", c_void_p),
        ("boolRetrieveAllTimes", c_int),
        ("numberValues", c_int),
        ("sizeEachValueRead", c_int),
        ("precision", c_int),
        ("floatValues", c_void_p),
        ("doubleValues", c_void_p),
        ("units", c_char_p),
        ("type", c_char_p),
    ]


class _zStructPairedData(Structure):
    """Partial ctypes definition of zStructPairedData, through ``labelsLength``."""

    _fields_ = [
        ("structType", c_int),
        ("pathname", c_char_p),
        ("numberCurves", c_int),
        ("numberOrdinates", c_int),
        ("startingCurve", c_int),
        ("endingCurve", c_int),
        ("startingOrdinate", c_int),
        ("endingOrdinate", c_int),
        ("numberCurvesInStruct", c_int),
        ("numberOrdinatesInStruct", c_int),
        ("floatOrdinates", c_void_p),
        ("floatValues", c_void_p),
        ("doubleOrdinates", c_void_p),
        ("doubleValues", c_void_p),
        ("sizeEachValueRead", c_int),
        ("xprecision", c_int),
        ("yprecision", c_int),
        ("unitsIndependent", c_char_p),
        ("typeIndependent", c_char_p),
        ("unitsDependent", c_char_p),
        ("typeDependent", c_char_p),
        ("boolIndependentIsXaxis", c_int),
        ("labels", c_void_p),
        ("labelsLength", c_int),
    ]


class _zdssLastError(Structure):
    """ctypes definition of the last-error struct filled by ``zerror``."""

    _fields_ = [
        ("errorCode", c_int),
        ("severity", c_int),
        ("errorNumber", c_int),
        ("errorType", c_int),
        ("systemError", c_int),
        ("lastAddress", c_int64),
        ("functionID", c_int),
        ("calledByFunction", c_int),
        ("errorMessage", c_char * 500),
        ("systemErrorMessage", c_char * 500),
        ("lastPathname", c_char * 394),
        ("filename", c_char * 256),
    ]


def _configure_argtypes(lib: CDLL) -> None:
    """Configure argtypes and restype for HEC-DSS 7 library functions.

    Setting explicit argtypes ensures ctypes marshals arguments correctly
    (especially pointer widths on 64-bit) and prevents access violations.
    """
    ifltab = POINTER(c_int64)

    lib.zopen.argtypes = [ifltab, c_char_p]
    lib.zopen.restype = c_int

    lib.zclose.argtypes = [ifltab]
    lib.zclose.restype = None

    lib.zgetVersion.argtypes = [ifltab]
    lib.zgetVersion.restype = c_int

    lib.zstructTsNew.argtypes = [c_char_p]
    lib.zstructTsNew.restype = c_void_p

    # zstructTsNewTimes(pathname, startDate, startTime, endDate, endTime)
    lib.zstructTsNewTimes.argtypes = [c_char_p, c_char_p, c_char_p, c_char_p, c_char_p]
    lib.zstructTsNewTimes.restype = c_void_p

    # zstructTsNewRegFloats(pathname, floatValues, numberValues,
    #     startDate, startTime, units, type)
    lib.zstructTsNewRegFloats.argtypes = [
        c_char_p, POINTER(c_float), c_int,
        c_char_p, c_char_p, c_char_p, c_char_p,
    ]
    lib.zstructTsNewRegFloats.restype = c_void_p

    # zstructTsNewIrregDoubles(pathname, doubleValues, numberValues, itimes,
    #     timeGranularitySeconds, startDateBase, units, type)
    lib.zstructTsNewIrregDoubles.argtypes = [
        c_char_p, POINTER(c_double), c_int, POINTER(c_int32),
        c_int, c_char_p, c_char_p, c_char_p,
    ]
    lib.zstructTsNewIrregDoubles.restype = c_void_p

    lib.ztsStore.argtypes = [ifltab, c_void_p, c_int]
    lib.ztsStore.restype = c_int

    # ztsRetrieve(ifltab, tss, retrieveFlag, retrieveDoublesFlag,
    #     boolRetrieveQualityNotes)
    lib.ztsRetrieve.argtypes = [ifltab, c_void_p, c_int, c_int, c_int]
    lib.ztsRetrieve.restype = c_int

    lib.zstructPdNew.argtypes = [c_char_p]
    lib.zstructPdNew.restype = c_void_p

    lib.zpdRetrieve.argtypes = [ifltab, c_void_p, c_int]
    lib.zpdRetrieve.restype = c_int

    lib.zcopyRecord.argtypes = [ifltab, ifltab, c_char_p, c_char_p]
    lib.zcopyRecord.restype = c_int

    lib.zerror.argtypes = [POINTER(_zdssLastError)]
    lib.zerror.restype = c_int

    lib.spatialDateTime.argtypes = [c_char_p, POINTER(c_int), POINTER(c_int)]
    lib.spatialDateTime.restype = c_int

    # getDateAndTime(timeMinOrSec, timeGranularitySeconds, julianBaseDate,
    #     dateString, sizeOfDateString, hoursMinsString, sizeofHoursMinsString)
    lib.getDateAndTime.argtypes = [c_int, c_int, c_int, c_char_p, c_int, c_char_p, c_int]
    lib.getDateAndTime.restype = c_int

    lib.dateToJulian.argtypes = [c_char_p]
    lib.dateToJulian.restype = c_int

    lib.julianToDate.argtypes = [c_int, c_int, c_char_p, c_size_t]
    lib.julianToDate.restype = c_int

    lib.zstructFree.argtypes = [c_void_p]
    lib.zstructFree.restype = None


if _dss_lib is not None:
    _configure_argtypes(_dss_lib)


def check_dss_available() -> None:
    """
    Check if the DSS library is available.

    Raises:
        DSSLibraryError: If the library is not available
    """
    if not HAS_DSS_LIBRARY:
        raise DSSLibraryError(
            f"HEC-DSS library not found. Set {HECDSS_LIB_ENV} environment "
            "variable to the library path."
        )


def _decode(raw: bytes | None) -> str:
    if not raw:
        return ""
    return raw.decode("utf-8", errors="replace")


def _ifltab_ptr(handle: NDArray[np.int64]) -> Any:
    return handle.ctypes.data_as(POINTER(c_int64))


def _read_buffer(address: int | None, ctype: Any, count: int) -> NDArray[np.float64]:
    """Copy ``count`` values of ``ctype`` at ``address`` into a float64 array."""
    if not address or count <= 0:
        return np.array([], dtype=np.float64)
    buf = ctypes.cast(address, POINTER(ctype * count)).contents
    return np.array(buf[:], dtype=np.float64)


class CtypesEngine(DSSEngine):
    """
    ``DSSEngine`` backed by the HEC-DSS 7 shared library.

    Example:
        >>> engine = CtypesEngine()
        >>> handle = engine.open("example.dss")
        >>> raw = engine.retrieve_time_series(handle, "/A/B/FLOW//1Hour/F/")
        >>> engine.close(handle)
    """

    def __init__(self, lib: Any = None, library_path: Path | str | None = None) -> None:
        """
        Bind to a loaded library.

        Args:
            lib: Already loaded library object (defaults to the module library)
            library_path: Load the library from this path instead

        Raises:
            DSSLibraryError: If no library could be loaded
        """
        if lib is None and library_path is not None:
            lib = _load_library(library_path)
            if lib is None:
                raise DSSLibraryError(f"Could not load HEC-DSS library: {library_path}")
            _configure_argtypes(lib)
        elif lib is None:
            check_dss_available()
            lib = _dss_lib
        self._lib = lib

    def _check_status(self, status: int, context: str) -> None:
        """Raise for a failing status, classified from the last-error slot."""
        if status == 0:
            return
        report = DSSErrorReport.from_native(self.query_last_error())
        if report.ok:
            report = DSSErrorReport.undefined(f"{context} returned status {status}")
        raise DSSEngineError(report, context)

    def open(self, path: str) -> NDArray[np.int64]:
        ifltab = np.zeros(IFLTAB_SIZE, dtype=np.int64)
        status = self._lib.zopen(_ifltab_ptr(ifltab), str(path).encode("utf-8"))
        self._check_status(status, f"zopen({path})")
        return ifltab

    def close(self, handle: NDArray[np.int64]) -> None:
        self._lib.zclose(_ifltab_ptr(handle))

    def version(self, handle: NDArray[np.int64]) -> int:
        return int(self._lib.zgetVersion(_ifltab_ptr(handle)))

    def retrieve_time_series(
        self,
        handle: NDArray[np.int64],
        pathname: str,
        retrieve_flag: int = -1,
        read_doubles: bool = False,
        retrieve_all_times: bool = False,
        window: TimeWindow | None = None,
    ) -> RawTimeSeries:
        path = pathname.encode("utf-8")
        if window is None:
            tss = self._lib.zstructTsNew(path)
        else:
            tss = self._lib.zstructTsNewTimes(
                path,
                window.start_date.encode("utf-8"),
                window.start_time.encode("utf-8"),
                window.end_date.encode("utf-8"),
                window.end_time.encode("utf-8"),
            )
        if not tss:
            raise DSSEngineError(
                DSSErrorReport.undefined(f"Failed to create time series struct for: {pathname}"),
                "ztsRetrieve",
            )

        try:
            s = ctypes.cast(tss, POINTER(_zStructTimeSeries)).contents
            s.boolRetrieveAllTimes = 1 if retrieve_all_times else 0

            status = self._lib.ztsRetrieve(
                _ifltab_ptr(handle),
                tss,
                c_int(retrieve_flag),
                c_int(2 if read_doubles else 1),  # 1 = floats, 2 = doubles
                c_int(0),  # boolRetrieveQualityNotes: 0 = skip
            )

            n_values = s.numberValues
            if n_values <= 0:
                logger.debug("No values retrieved for %s (status=%d)", pathname, status)
                return RawTimeSeries(
                    values=np.array([], dtype=np.float64),
                    units=_decode(s.units),
                    data_type=_decode(s.type),
                    interval_seconds=s.timeIntervalSeconds,
                    granularity_seconds=s.timeGranularitySeconds or 60,
                )
            self._check_status(status, f"ztsRetrieve({pathname})")

            if s.doubleValues:
                values = _read_buffer(s.doubleValues, c_double, n_values)
            else:
                values = _read_buffer(s.floatValues, c_float, n_values)

            times = None
            if s.times and s.timeIntervalSeconds <= 0:
                buf = ctypes.cast(s.times, POINTER(c_int32 * n_values)).contents
                times = np.array(buf[:], dtype=np.int32)

            return RawTimeSeries(
                values=values,
                times=times,
                units=_decode(s.units),
                data_type=_decode(s.type),
                julian_base_date=s.julianBaseDate,
                start_julian_date=s.startJulianDate,
                start_time_seconds=s.startTimeSeconds,
                granularity_seconds=s.timeGranularitySeconds or 60,
                interval_seconds=s.timeIntervalSeconds,
            )
        finally:
            self._lib.zstructFree(tss)

    def store_regular_time_series(
        self,
        handle: NDArray[np.int64],
        pathname: str,
        values: NDArray[np.float32],
        start_date: str,
        start_time: str,
        units: str,
        data_type: str,
        storage_flag: int = 0,
    ) -> None:
        values_f32 = np.ascontiguousarray(values, dtype=np.float32)
        tss = self._lib.zstructTsNewRegFloats(
            pathname.encode("utf-8"),
            values_f32.ctypes.data_as(POINTER(c_float)),
            c_int(len(values_f32)),
            start_date.encode("utf-8"),
            start_time.encode("utf-8"),
            units.encode("utf-8"),
            data_type.encode("utf-8"),
        )
        if not tss:
            raise DSSEngineError(
                DSSErrorReport.undefined(f"Failed to create time series struct for: {pathname}"),
                "ztsStore",
            )
        try:
            status = self._lib.ztsStore(_ifltab_ptr(handle), tss, c_int(storage_flag))
            self._check_status(status, f"ztsStore({pathname})")
        finally:
            self._lib.zstructFree(tss)

    def store_irregular_time_series(
        self,
        handle: NDArray[np.int64],
        pathname: str,
        values: NDArray[np.float64],
        times: NDArray[np.int32],
        granularity_seconds: int,
        base_date: str,
        units: str,
        data_type: str,
        storage_flag: int = 0,
    ) -> None:
        values_f64 = np.ascontiguousarray(values, dtype=np.float64)
        times_i32 = np.ascontiguousarray(times, dtype=np.int32)
        tss = self._lib.zstructTsNewIrregDoubles(
            pathname.encode("utf-8"),
            values_f64.ctypes.data_as(POINTER(c_double)),
            c_int(len(values_f64)),
            times_i32.ctypes.data_as(POINTER(c_int32)),
            c_int(granularity_seconds),
            base_date.encode("utf-8"),
            units.encode("utf-8"),
            data_type.encode("utf-8"),
        )
        if not tss:
            raise DSSEngineError(
                DSSErrorReport.undefined(f"Failed to create time series struct for: {pathname}"),
                "ztsStore",
            )
        try:
            status = self._lib.ztsStore(_ifltab_ptr(handle), tss, c_int(storage_flag))
            self._check_status(status, f"ztsStore({pathname})")
        finally:
            self._lib.zstructFree(tss)

    def _new_pd_struct(self, pathname: str) -> int:
        pds = self._lib.zstructPdNew(pathname.encode("utf-8"))
        if not pds:
            raise DSSEngineError(
                DSSErrorReport.undefined(f"Failed to create paired data struct for: {pathname}"),
                "zpdRetrieve",
            )
        return pds

    def paired_data_extent(self, handle: NDArray[np.int64], pathname: str) -> tuple[int, int]:
        pds = self._new_pd_struct(pathname)
        try:
            status = self._lib.zpdRetrieve(_ifltab_ptr(handle), pds, c_int(_PD_RETRIEVE_DOUBLES))
            self._check_status(status, f"zpdRetrieve({pathname})")
            s = ctypes.cast(pds, POINTER(_zStructPairedData)).contents
            return int(s.numberOrdinates), int(s.numberCurves)
        finally:
            self._lib.zstructFree(pds)

    def retrieve_paired_data(
        self,
        handle: NDArray[np.int64],
        pathname: str,
        rows: tuple[int, int] | None = None,
        columns: tuple[int, int] | None = None,
    ) -> RawPairedData:
        pds = self._new_pd_struct(pathname)
        try:
            s = ctypes.cast(pds, POINTER(_zStructPairedData)).contents
            if rows is not None:
                s.startingOrdinate, s.endingOrdinate = rows
            if columns is not None:
                s.startingCurve, s.endingCurve = columns

            status = self._lib.zpdRetrieve(_ifltab_ptr(handle), pds, c_int(_PD_RETRIEVE_DOUBLES))
            self._check_status(status, f"zpdRetrieve({pathname})")

            n_ord = s.numberOrdinatesInStruct or s.numberOrdinates
            n_cur = s.numberCurvesInStruct or s.numberCurves
            if s.doubleOrdinates:
                ordinates = _read_buffer(s.doubleOrdinates, c_double, n_ord)
                values = _read_buffer(s.doubleValues, c_double, n_ord * n_cur)
            else:
                ordinates = _read_buffer(s.floatOrdinates, c_float, n_ord)
                values = _read_buffer(s.floatValues, c_float, n_ord * n_cur)

            labels = b""
            if s.labels and s.labelsLength > 0:
                labels = ctypes.string_at(s.labels, s.labelsLength)

            return RawPairedData(
                n_ordinates=int(n_ord),
                n_curves=int(n_cur),
                ordinates=ordinates,
                values=values,
                labels=labels,
                units_independent=_decode(s.unitsIndependent),
                type_independent=_decode(s.typeIndependent),
                units_dependent=_decode(s.unitsDependent),
                type_dependent=_decode(s.typeDependent),
            )
        finally:
            self._lib.zstructFree(pds)

    def copy_record(
        self,
        handle_from: NDArray[np.int64],
        handle_to: NDArray[np.int64],
        from_pathname: str,
        to_pathname: str,
    ) -> None:
        status = self._lib.zcopyRecord(
            _ifltab_ptr(handle_from),
            _ifltab_ptr(handle_to),
            from_pathname.encode("utf-8"),
            to_pathname.encode("utf-8"),
        )
        self._check_status(status, f"zcopyRecord({from_pathname} -> {to_pathname})")

    def query_last_error(self, handle: Any = None) -> NativeErrorReport:
        err = _zdssLastError()
        self._lib.zerror(ctypes.pointer(err))
        return NativeErrorReport(
            category=err.errorType,
            code=err.errorCode,
            message=_decode(err.errorMessage),
        )

    def parse_datetime(self, text: str) -> tuple[int, int, int]:
        julian = c_int(0)
        seconds = c_int(0)
        status = self._lib.spatialDateTime(
            create_string_buffer(text.encode("utf-8")), byref(julian), byref(seconds)
        )
        return int(status), julian.value, seconds.value

    def format_datetime(
        self,
        value: int,
        granularity_seconds: int,
        base_days: int,
        date_size: int = 13,
        time_size: int = 10,
    ) -> tuple[int, str, str]:
        date_buf = create_string_buffer(date_size)
        time_buf = create_string_buffer(time_size)
        status = self._lib.getDateAndTime(
            c_int(value),
            c_int(granularity_seconds),
            c_int(base_days),
            date_buf,
            c_int(date_size),
            time_buf,
            c_int(time_size),
        )
        return int(status), _decode(date_buf.value), _decode(time_buf.value)

    def date_to_julian(self, text: str) -> int:
        return int(self._lib.dateToJulian(text.encode("utf-8")))

    def julian_to_date(self, days: int, style: int, size: int = 13) -> tuple[int, str]:
        date_buf = create_string_buffer(size)
        status = self._lib.julianToDate(c_int(days), c_int(style), date_buf, c_size_t(size))
        return int(status), _decode(date_buf.value)
