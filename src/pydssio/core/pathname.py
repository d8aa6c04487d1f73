"""
HEC-DSS pathname utilities.

This module provides the class used to identify data records in DSS files.

DSS Pathname Format: /A/B/C/D/E/F/
- A: Project or Basin name
- B: Location (e.g., stream gage, well ID)
- C: Parameter (e.g., FLOW, STAGE, HEAD)
- D: Date block (e.g., 01JAN2000)
- E: Time interval (e.g., 1Hour, 1DAY, IR-MONTH)
- F: Version or scenario

Every part may be empty. Parts are trimmed but otherwise kept verbatim;
DSS itself compares pathnames case-insensitively.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace

from pydssio.core.exceptions import IntervalNotSetError, PathnameError
from pydssio.core.hectime import TimeInterval

logger = logging.getLogger(__name__)

PART_LETTERS = ("a", "b", "c", "d", "e", "f")


@dataclass(frozen=True)
class DSSPathname:
    """
    HEC-DSS pathname with structured parts.

    DSS pathnames identify data records using six parts:
    /A/B/C/D/E/F/

    Attributes:
        a_part: Project/Basin name
        b_part: Location identifier
        c_part: Parameter type (FLOW, HEAD, etc.)
        d_part: Date block
        e_part: Time interval (1Hour, 1DAY, etc.)
        f_part: Version/scenario name
    """

    a_part: str = ""
    b_part: str = ""
    c_part: str = ""
    d_part: str = ""
    e_part: str = ""
    f_part: str = ""

    def __post_init__(self) -> None:
        """Trim parts and reject embedded separators."""
        for f in fields(self):
            value = getattr(self, f.name)
            value = "" if value is None else str(value).strip()
            if "/" in value:
                raise PathnameError(f"DSS pathname {f.name} may not contain '/': {value!r}")
            object.__setattr__(self, f.name, value)

    def __str__(self) -> str:
        """Return the full pathname string."""
        return self.format()

    def format(self) -> str:
        """Return the canonical ``/A/B/C/D/E/F/`` form."""
        return f"/{self.a_part}/{self.b_part}/{self.c_part}/{self.d_part}/{self.e_part}/{self.f_part}/"

    @property
    def parts(self) -> tuple[str, str, str, str, str, str]:
        return (self.a_part, self.b_part, self.c_part, self.d_part, self.e_part, self.f_part)

    @classmethod
    def from_string(cls, pathname: str) -> "DSSPathname":
        """
        Parse a pathname from string.

        Args:
            pathname: DSS pathname string (e.g., "/PROJECT/LOC/FLOW//1DAY/V1/")

        Returns:
            DSSPathname object

        Raises:
            PathnameError: If pathname format is invalid
        """
        if not pathname.startswith("/") or not pathname.endswith("/") or len(pathname) < 2:
            raise PathnameError(f"Invalid DSS pathname format: {pathname}")

        parts = pathname[1:-1].split("/")

        if len(parts) != 6:
            raise PathnameError(
                f"DSS pathname must have exactly 6 parts, got {len(parts)}: {pathname}"
            )

        return cls(*parts)

    @classmethod
    def parse(cls, pathname: str) -> DSSPathname | None:
        """
        Parse a pathname, returning None if it is malformed.

        The failure is logged rather than raised.
        """
        try:
            return cls.from_string(pathname)
        except PathnameError as exc:
            logger.warning("%s", exc)
            return None

    @classmethod
    def coerce(cls, pathname: DSSPathname | str) -> DSSPathname:
        """Return ``pathname`` as a DSSPathname, parsing strings strictly."""
        if isinstance(pathname, DSSPathname):
            return pathname
        return cls.from_string(pathname)

    def with_part(self, letter: str, value: str) -> "DSSPathname":
        """Return a new pathname with one part replaced."""
        letter = letter.lower()
        if letter not in PART_LETTERS:
            raise PathnameError(f"Unknown pathname part: {letter!r}")
        return replace(self, **{f"{letter}_part": value})

    def with_location(self, location: str) -> "DSSPathname":
        """Return a new pathname with a different location (B part)."""
        return self.with_part("b", location)

    def with_parameter(self, parameter: str) -> "DSSPathname":
        """Return a new pathname with a different parameter (C part)."""
        return self.with_part("c", parameter)

    def with_date_range(self, date_range: str) -> "DSSPathname":
        """Return a new pathname with a different date block (D part)."""
        return self.with_part("d", date_range)

    def with_interval(self, interval: TimeInterval | str) -> "DSSPathname":
        """Return a new pathname with a different interval (E part)."""
        return self.with_part("e", str(interval))

    def with_version(self, version: str) -> "DSSPathname":
        """Return a new pathname with a different version (F part)."""
        return self.with_part("f", version)

    def matches(self, pattern: "DSSPathname | str") -> bool:
        """
        Check if this pathname matches a pattern.

        Pattern parts can be empty to match any value. Comparison is
        case-insensitive, as in DSS.

        Args:
            pattern: DSSPathname pattern or string

        Returns:
            True if pathname matches pattern
        """
        pattern = DSSPathname.coerce(pattern)
        return all(
            not wanted or wanted.upper() == actual.upper()
            for wanted, actual in zip(pattern.parts, self.parts)
        )

    @property
    def interval(self) -> TimeInterval | None:
        """Regular interval encoded in the E part, if any."""
        if not self.e_part:
            return None
        return TimeInterval.from_e_part(self.e_part)

    def require_interval_token(self) -> str:
        """
        Return the E part for a regular series write.

        Raises:
            IntervalNotSetError: If the E part is empty
        """
        if not self.e_part:
            raise IntervalNotSetError(
                f"Regular time series pathname has no interval (E part): {self}"
            )
        return self.e_part

    @property
    def is_irregular_interval(self) -> bool:
        """Check if the E part names an irregular block (IR-DAY, IR-MONTH, ...)."""
        return self.e_part.upper().startswith("IR-")
