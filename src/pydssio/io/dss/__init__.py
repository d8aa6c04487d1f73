"""
HEC-DSS support for pydssio.

This package provides Python bindings for reading and writing HEC-DSS 7 files,
which are commonly used for time series data storage in water resources modeling.

The HEC-DSS library must be installed separately. Set the HECDSS_LIB environment
variable to point to the library location.

Example:
    >>> from pydssio.io.dss import DSSFile, DSSPathname
    >>>
    >>> pathname = DSSPathname.from_string("/REGULAR/TIMESERIES/FLOW//1Hour/Ex1a/")
    >>> with DSSFile("example.dss", mode="r") as dss:
    ...     tsc = dss.read_time_series(pathname)
"""

from pydssio.core.exceptions import DSSFileError, DSSLibraryError
from pydssio.core.pathname import DSSPathname
from pydssio.io.dss.engine import (
    ENGINE_LOCK,
    DSSEngine,
    RawPairedData,
    RawTimeSeries,
    TimeWindow,
    get_engine,
    set_engine,
)
from pydssio.io.dss.errors import (
    DSSEngineError,
    DSSErrorReport,
    ErrorCategory,
    ErrorGroup,
    ErrorKind,
    NativeErrorReport,
)
from pydssio.io.dss.session import DSSFile
from pydssio.io.dss.wrapper import (
    HAS_DSS_LIBRARY,
    CtypesEngine,
    check_dss_available,
    find_library_path,
)

__all__ = [
    # Pathname
    "DSSPathname",
    # Session
    "DSSFile",
    "DSSFileError",
    "DSSLibraryError",
    # Engine
    "DSSEngine",
    "CtypesEngine",
    "RawTimeSeries",
    "RawPairedData",
    "TimeWindow",
    "ENGINE_LOCK",
    "get_engine",
    "set_engine",
    "HAS_DSS_LIBRARY",
    "check_dss_available",
    "find_library_path",
    # Errors
    "ErrorGroup",
    "ErrorCategory",
    "ErrorKind",
    "NativeErrorReport",
    "DSSErrorReport",
    "DSSEngineError",
]
