"""Core data structures for pydssio."""

from __future__ import annotations

from pydssio.core.exceptions import (
    ContractViolation,
    DSSFileError,
    DSSLibraryError,
    GranularityError,
    IntervalError,
    IntervalNotSetError,
    PathnameError,
    PyDSSError,
    RecordKindError,
    RecordShapeError,
    SliceRangeError,
)
from pydssio.core.hectime import (
    MONTH,
    SEMI_MONTH,
    TRI_MONTH,
    WEEK,
    YEAR,
    HecTime,
    IntervalUnit,
    TimeGranularity,
    TimeInterval,
    date_to_julian,
    julian_to_date,
)
from pydssio.core.paired_data import PairedDataContainer
from pydssio.core.pathname import DSSPathname
from pydssio.core.timeseries import (
    DataType,
    DataUnit,
    TimeSeriesContainer,
    TimeSeriesKind,
    TypeKind,
    UnitKind,
)

__all__ = [
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
    # Time model
    "TimeGranularity",
    "HecTime",
    "IntervalUnit",
    "TimeInterval",
    "WEEK",
    "MONTH",
    "SEMI_MONTH",
    "TRI_MONTH",
    "YEAR",
    "date_to_julian",
    "julian_to_date",
    # Records
    "DSSPathname",
    "TimeSeriesKind",
    "UnitKind",
    "TypeKind",
    "DataUnit",
    "DataType",
    "TimeSeriesContainer",
    "PairedDataContainer",
]
