"""
pydssio - typed access to HEC-DSS 7 archives.

This package provides:
- The HEC time model (granularity, julian base dates, intervals)
- Time series and paired data record containers
- Parsing and formatting of DSS pathnames
- A session for reading, writing and copying records through the
  HEC-DSS library, with typed library errors
"""

from __future__ import annotations

__version__ = "0.1.0"

from pydssio.config import DSSSettings
from pydssio.core import (
    ContractViolation,
    DataType,
    DataUnit,
    DSSFileError,
    DSSLibraryError,
    DSSPathname,
    GranularityError,
    HecTime,
    IntervalError,
    IntervalNotSetError,
    PairedDataContainer,
    PathnameError,
    PyDSSError,
    RecordKindError,
    RecordShapeError,
    SliceRangeError,
    TimeGranularity,
    TimeInterval,
    TimeSeriesContainer,
    TimeSeriesKind,
)
from pydssio.io.dss import (
    DSSEngine,
    DSSEngineError,
    DSSErrorReport,
    DSSFile,
    ErrorGroup,
    ErrorKind,
)

__all__ = [
    "__version__",
    "DSSSettings",
    # Exceptions
    "PyDSSError",
    "RecordShapeError",
    "RecordKindError",
    "PathnameError",
    "IntervalError",
    "SliceRangeError",
    "ContractViolation",
    "GranularityError",
    "IntervalNotSetError",
    "DSSLibraryError",
    "DSSFileError",
    "DSSEngineError",
    # Time model
    "TimeGranularity",
    "HecTime",
    "TimeInterval",
    # Records
    "DSSPathname",
    "TimeSeriesKind",
    "DataUnit",
    "DataType",
    "TimeSeriesContainer",
    "PairedDataContainer",
    # Session
    "DSSFile",
    "DSSEngine",
    "DSSErrorReport",
    "ErrorGroup",
    "ErrorKind",
]
