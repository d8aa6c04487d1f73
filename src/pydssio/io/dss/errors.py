"""
Translation of HEC-DSS last-error reports into typed errors.

The native library does not return rich errors from its calls; it records
the last error in a process-wide slot that is read with ``zerror``. Every
engine call made by a session is followed, under the same lock, by a read
of that slot, which is translated here into a ``DSSErrorReport``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

from pydssio.core.exceptions import DSSFileError


class ErrorGroup(Enum):
    """Coarse classification of a DSS error."""

    OK = "ok"
    ACCESS = "access"
    FILE = "file"
    MEMORY = "memory"
    UNKNOWN = "unknown"


class ErrorCategory(IntEnum):
    """Native ``errorType`` values of the last-error report."""

    NONE = 0
    WARNING = 1
    ACCESS = 2
    FILE = 3
    MEMORY = 4


_GROUP_BY_CATEGORY = {
    ErrorCategory.NONE: ErrorGroup.OK,
    ErrorCategory.WARNING: ErrorGroup.OK,
    ErrorCategory.ACCESS: ErrorGroup.ACCESS,
    ErrorCategory.FILE: ErrorGroup.FILE,
    ErrorCategory.MEMORY: ErrorGroup.MEMORY,
}


class ErrorKind(IntEnum):
    """Specific DSS error; the value is the native error code."""

    STATUS_OK = 0
    INVALID_FILE_VERSION = 1
    INCOMPATIBLE_VERSION = 2
    INCOMPATIBLE_VERSION_6 = 3
    INVALID_FILE_NAME = 4
    NO_EXCLUSIVE_ACCESS = 5
    UNABLE_TO_ACCESS_FILE = 6
    UNABLE_TO_WRITE_FILE = 7
    UNABLE_TO_CREATE_FILE = 8
    NO_WRITE_PERMISSION = 9
    NO_PERMISSION = 10
    WRITE_ON_READ_ONLY = 11
    INVALID_DSS_FILE = 12
    INVALID_ADDRESS = 13
    INVALID_NUMBER_TO_READ = 14
    INVALID_NUMBER_TO_WRITE = 15
    WRITE_ERROR = 16
    READ_ERROR = 17
    READ_BEYOND_EOF = 18
    INVALID_FILE_HEADER = 19
    TRUNCATED_FILE = 20
    INVALID_HEADER_PARAMETER = 21
    DAMAGED_FILE = 22
    CLOSED_FILE = 23
    EMPTY_FILE = 24
    IFLTAB_CORRUPT = 25
    KEY_CORRUPT = 26
    KEY_VALUE = 27
    KEY3_LOCATION = 28
    CANNOT_LOCK_FILE = 29
    CANNOT_LOCK_EXCLUSIVE = 30
    CANNOT_LOCK_MULTI_USER = 31
    CANNOT_SQUEEZE = 32
    INVALID_BIN_STATUS = 33
    CANNOT_ALLOCATE_MEMORY = 34
    INVALID_PARAMETER = 35
    INVALID_NUMBER = 36
    INCOMPATIBLE_CALL = 37
    NON_EMPTY_FILE = 38
    BIN_SIZE_CONFLICT = 39
    DIFFERENT_RECORD_TYPE = 40
    WRONG_RECORD_TYPE = 41
    NO_UNDELETE_WITH_RECLAIM = 42
    ARRAY_SPACE_EXHAUSTED = 43
    BOTH_NOTE_KINDS_USED = 44
    NO_DATA_GIVEN = 45
    NO_DATA_READ = 46
    NO_TIME_WINDOW = 47
    INVALID_DATE_TIME = 48
    INVALID_INTERVAL = 49
    TIMES_NOT_ASCENDING = 50
    DIFFERENT_PROFILE_NUMBER = 51
    RECORD_DOES_NOT_EXIST = 52
    RECORD_ALREADY_EXISTS = 53
    INVALID_PATHNAME = 54
    INVALID_RECORD_HEADER = 55
    ARRAY_TOO_SMALL = 56
    NOT_OPENED = 57
    FILE_DOES_NOT_EXIST = 58
    FILE_EXISTS = 59
    NULL_FILENAME = 60
    NULL_PATHNAME = 61
    NULL_ARGUMENT = 62
    NULL_ARRAY = 63
    UNDEFINED_ERROR = 64

    @classmethod
    def from_code(cls, code: int) -> "ErrorKind":
        """Map a native error code; unknown codes give UNDEFINED_ERROR."""
        try:
            return cls(code)
        except ValueError:
            return cls.UNDEFINED_ERROR


@dataclass(frozen=True)
class NativeErrorReport:
    """
    Raw contents of the native last-error slot.

    Attributes:
        category: Native ``errorType`` (0 none, 1 warning, 2 access, 3 file, 4 memory)
        code: Native ``errorCode``
        message: Native ``errorMessage``
    """

    category: int = 0
    code: int = 0
    message: str = ""


@dataclass(frozen=True)
class DSSErrorReport:
    """
    Typed outcome of one engine call.

    Attributes:
        group: Error group (OK when the call succeeded or only warned)
        kind: Specific error kind
        message: Message reported by the library
    """

    group: ErrorGroup = ErrorGroup.OK
    kind: ErrorKind = ErrorKind.STATUS_OK
    message: str = "No Error."

    @classmethod
    def clean(cls) -> "DSSErrorReport":
        return cls()

    @classmethod
    def undefined(cls, message: str) -> "DSSErrorReport":
        """Report for failures detected outside the native error slot."""
        return cls(ErrorGroup.UNKNOWN, ErrorKind.UNDEFINED_ERROR, message)

    @classmethod
    def from_native(cls, native: NativeErrorReport) -> "DSSErrorReport":
        """
        Classify a native report.

        Categories "none" and "warning" are successes; the access, file and
        memory categories map to their groups; any other category is
        UNKNOWN.
        """
        try:
            group = _GROUP_BY_CATEGORY[ErrorCategory(native.category)]
        except ValueError:
            group = ErrorGroup.UNKNOWN

        if group is ErrorGroup.OK:
            return cls.clean()
        return cls(group, ErrorKind.from_code(native.code), native.message.strip())

    @property
    def ok(self) -> bool:
        return self.group is ErrorGroup.OK

    def raise_for_status(self, context: str = "") -> None:
        """
        Raise a DSSEngineError unless the report is OK.

        Args:
            context: Description of the failed operation
        """
        if not self.ok:
            raise DSSEngineError(self, context)


class DSSEngineError(DSSFileError):
    """Failure reported by the HEC-DSS library."""

    def __init__(self, report: DSSErrorReport, context: str = "") -> None:
        prefix = f"{context}: " if context else ""
        super().__init__(
            f"{prefix}DSS error {report.kind.name} ({report.group.name}): {report.message}"
        )
        self.report = report
        self.context = context

    @property
    def group(self) -> ErrorGroup:
        return self.report.group

    @property
    def kind(self) -> ErrorKind:
        return self.report.kind
