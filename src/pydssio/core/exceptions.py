"""Custom exceptions for pydssio package."""

from __future__ import annotations


class PyDSSError(Exception):
    """Base exception for all pydssio errors."""

    pass


class RecordShapeError(PyDSSError, ValueError):
    """Error raised when a buffer does not fit a record container."""

    def __init__(
        self, message: str, expected: int | None = None, actual: int | None = None
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class RecordKindError(PyDSSError, TypeError):
    """Operation applied to the wrong kind of time series."""

    pass


class PathnameError(PyDSSError, ValueError):
    """Error raised when a DSS pathname is malformed."""

    pass


class IntervalError(PyDSSError, ValueError):
    """Error raised when a time interval is malformed."""

    pass


class SliceRangeError(PyDSSError, IndexError):
    """Error raised when a paired-data slice bound is out of range."""

    def __init__(self, bound: str, value: int, valid_range: tuple[int, int]) -> None:
        super().__init__(
            f"{bound}={value} is outside the valid range "
            f"[{valid_range[0]}, {valid_range[1]}]"
        )
        self.bound = bound
        self.value = value
        self.valid_range = valid_range


class ContractViolation(PyDSSError):
    """Programming error by the caller; never a runtime condition."""

    pass


class GranularityError(ContractViolation, ValueError):
    """Time granularity outside the fixed unit set."""

    pass


class IntervalNotSetError(ContractViolation):
    """Regular series used without an interval."""

    pass


class DSSLibraryError(PyDSSError):
    """Error loading or using the HEC-DSS library."""

    pass


class DSSFileError(PyDSSError):
    """Error with DSS file operations."""

    pass
