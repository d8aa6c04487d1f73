"""Unit tests for the HEC time model.

Tests:
- TimeGranularity enum
- HecTime construction, parsing, rendering and arithmetic
- date_to_julian / julian_to_date
- TimeInterval grammar and constructors
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from unittest.mock import MagicMock

import numpy as np
import pytest

from pydssio.core.exceptions import ContractViolation, GranularityError, IntervalError
from pydssio.core.hectime import (
    DSS_EPOCH,
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


def julian(d: date) -> int:
    return (d - DSS_EPOCH.date()).days


# =============================================================================
# Test TimeGranularity
# =============================================================================


class TestTimeGranularity:
    """Tests for TimeGranularity enum."""

    def test_values(self) -> None:
        """Test unit sizes in seconds."""
        assert TimeGranularity.SECOND == 1
        assert TimeGranularity.MINUTE == 60
        assert TimeGranularity.HOUR == 3600
        assert TimeGranularity.DAY == 86400

    def test_default_is_minute(self) -> None:
        """Test default granularity."""
        assert TimeGranularity.default() is TimeGranularity.MINUTE

    def test_from_seconds(self) -> None:
        """Test lookup by seconds."""
        assert TimeGranularity.from_seconds(3600) is TimeGranularity.HOUR

    @pytest.mark.parametrize("seconds", [0, 30, 120, 7200, -60])
    def test_from_seconds_invalid(self, seconds: int) -> None:
        """Test anything outside the unit set is a contract violation."""
        with pytest.raises(GranularityError):
            TimeGranularity.from_seconds(seconds)

    def test_granularity_error_hierarchy(self) -> None:
        """Test GranularityError is a ValueError and a contract violation."""
        with pytest.raises(ValueError):
            TimeGranularity.from_seconds(30)
        with pytest.raises(ContractViolation):
            TimeGranularity.from_seconds(30)


# =============================================================================
# Test HecTime
# =============================================================================


class TestHecTime:
    """Tests for HecTime dataclass."""

    def test_defaults(self) -> None:
        """Test minute granularity and epoch base by default."""
        t = HecTime(10)
        assert t.granularity is TimeGranularity.MINUTE
        assert t.base_days == 0

    def test_none_granularity_uses_default(self) -> None:
        """Test None granularity falls back to minute."""
        assert HecTime(1, None).granularity is TimeGranularity.MINUTE

    def test_integer_granularity(self) -> None:
        """Test integer granularity is converted to the enum."""
        t = HecTime(1, 86400, 5)
        assert t.granularity is TimeGranularity.DAY

    def test_invalid_granularity(self) -> None:
        """Test construction with an invalid granularity."""
        with pytest.raises(GranularityError):
            HecTime(1, 45)

    def test_add_seconds(self) -> None:
        """Test advancing by whole units."""
        t = HecTime(0, TimeGranularity.MINUTE)
        t.add_seconds(3600)
        assert t.value == 60

    def test_add_seconds_truncates_toward_zero(self) -> None:
        """Test partial units are dropped in both directions."""
        t = HecTime(0, TimeGranularity.MINUTE)
        t.add_seconds(90)
        assert t.value == 1
        t.add_seconds(-150)
        assert t.value == -1

    def test_add_seconds_coarse_granularity(self) -> None:
        """Test an addition smaller than one unit is a no-op."""
        t = HecTime(3, TimeGranularity.HOUR)
        t.add_seconds(3599)
        assert t.value == 3

    def test_total_seconds(self) -> None:
        """Test seconds since the epoch."""
        assert HecTime(2, TimeGranularity.HOUR, 1).total_seconds() == 86400 + 7200

    def test_normalized(self) -> None:
        """Test re-expressing in another granularity and base."""
        t = HecTime(1, TimeGranularity.DAY, 10)
        n = t.normalized(TimeGranularity.MINUTE, 10)
        assert n == HecTime(1440, TimeGranularity.MINUTE, 10)
        assert n.total_seconds() == t.total_seconds()

    def test_normalized_floors(self) -> None:
        """Test instants off the unit grid are floored."""
        t = HecTime(90, TimeGranularity.MINUTE, 0)
        assert t.normalized(TimeGranularity.HOUR).value == 1

    def test_datetime_round_trip(self) -> None:
        """Test conversion to and from datetime."""
        dt = datetime(2021, 1, 1, 1, 30)
        t = HecTime.from_datetime(dt)
        assert t.base_days == julian(date(2021, 1, 1))
        assert t.value == 90
        assert t.to_datetime() == dt

    def test_from_datetime_with_base(self) -> None:
        """Test from_datetime relative to an explicit base date."""
        t = HecTime.from_datetime(datetime(1900, 1, 2), TimeGranularity.HOUR, 0)
        assert t.value == 48

    def test_epoch(self) -> None:
        """Test julian day 1 is 01JAN1900."""
        assert HecTime(1, TimeGranularity.DAY).to_datetime() == datetime(1900, 1, 1)


class TestHecTimeText:
    """Tests for HecTime parsing and rendering through an engine."""

    def test_from_text_without_base(self, fake_engine) -> None:
        """Test the result is based on the parsed day."""
        t = HecTime.from_text("01JAN2021 0130", engine=fake_engine)
        assert t == HecTime(90, TimeGranularity.MINUTE, julian(date(2021, 1, 1)))

    def test_from_text_with_base(self, fake_engine) -> None:
        """Test the value is counted from an explicit base."""
        base = julian(date(2020, 12, 31))
        t = HecTime.from_text("01JAN2021 0130", base=base, engine=fake_engine)
        assert t.base_days == base
        assert t.value == (86400 + 5400) // 60

    def test_from_text_drops_sub_granularity(self, fake_engine) -> None:
        """Test integer division by the granularity."""
        t = HecTime.from_text(
            "01JAN2021 0130", granularity=TimeGranularity.HOUR, engine=fake_engine
        )
        assert t.value == 1

    def test_from_text_invalid(self, fake_engine, caplog: pytest.LogCaptureFixture) -> None:
        """Test unparseable text gives None and a warning."""
        with caplog.at_level(logging.WARNING):
            assert HecTime.from_text("not a date", engine=fake_engine) is None
        assert "not a date" in caplog.text

    def test_to_text(self, fake_engine) -> None:
        """Test rendering into date and time strings."""
        t = HecTime(90, TimeGranularity.MINUTE, julian(date(2021, 1, 1)))
        assert t.to_text(engine=fake_engine) == ("01JAN2021", "0130")

    def test_to_text_passes_buffer_sizes(self) -> None:
        """Test the native buffer capacities."""
        engine = MagicMock()
        engine.format_datetime.return_value = (0, "01JAN2021", "0130")
        HecTime(90, 60, 44197).to_text(engine=engine)
        engine.format_datetime.assert_called_once_with(90, 60, 44197, 13, 10)

    def test_to_text_failure(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test a formatting failure gives None."""
        engine = MagicMock()
        engine.format_datetime.return_value = (-1, "", "")
        with caplog.at_level(logging.WARNING):
            assert HecTime(1).to_text(engine=engine) is None
        assert "Could not format" in caplog.text

    def test_text_round_trip(self, fake_engine) -> None:
        """Test rendering then parsing gives the same time."""
        t = HecTime(600, TimeGranularity.MINUTE, julian(date(1999, 6, 2)))
        date_text, time_text = t.to_text(engine=fake_engine)
        assert HecTime.from_text(f"{date_text} {time_text}", engine=fake_engine) == t

    def test_uses_shared_engine(self, shared_engine) -> None:
        """Test the process-wide engine is used when none is passed."""
        t = HecTime.from_text("02JAN1900")
        assert t.base_days == 2
        assert HecTime(0, 60, 2).to_text() == ("02JAN1900", "0000")


class TestJulianConversions:
    """Tests for date_to_julian and julian_to_date."""

    def test_date_to_julian(self, fake_engine) -> None:
        """Test date string to julian day."""
        assert date_to_julian("01JAN1900", engine=fake_engine) == 1
        assert HecTime.date_to_julian("31DEC1899", engine=fake_engine) == 0

    def test_julian_to_date(self, fake_engine) -> None:
        """Test julian day to date string."""
        assert julian_to_date(1, engine=fake_engine) == "01JAN1900"
        assert HecTime.julian_to_date(julian(date(1985, 6, 2)), engine=fake_engine) == "02JUN1985"

    def test_julian_to_date_default_style(self) -> None:
        """Test the default native date style."""
        engine = MagicMock()
        engine.julian_to_date.return_value = (0, "02JUN1985")
        julian_to_date(31199, engine=engine)
        engine.julian_to_date.assert_called_once_with(31199, 104, 13)

    def test_julian_to_date_failure(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test an engine failure gives None."""
        engine = MagicMock()
        engine.julian_to_date.return_value = (-1, "")
        with caplog.at_level(logging.WARNING):
            assert julian_to_date(5, engine=engine) is None


# =============================================================================
# Test TimeInterval
# =============================================================================


class TestTimeInterval:
    """Tests for TimeInterval."""

    def test_counted_values(self) -> None:
        """Test exact lengths of counted intervals."""
        assert TimeInterval.seconds(30).value() == 30
        assert TimeInterval.minutes(15).value() == 900
        assert TimeInterval.hours(1).value() == 3600
        assert TimeInterval.days(2).value() == 172800

    def test_named_values(self) -> None:
        """Test nominal lengths of named intervals."""
        assert WEEK.value() == 604800
        assert MONTH.value() == 2592000
        assert SEMI_MONTH.value() == 1296000
        assert TRI_MONTH.value() == 864000
        assert YEAR.value() == 31536000

    def test_to_text(self) -> None:
        """Test canonical text."""
        assert TimeInterval.hours(1).to_text() == "1Hour"
        assert str(TimeInterval.minutes(15)) == "15Minute"
        assert SEMI_MONTH.to_text() == "Semi-Month"
        assert str(YEAR) == "Year"

    @pytest.mark.parametrize(
        "interval",
        [
            TimeInterval.seconds(1),
            TimeInterval.minutes(30),
            TimeInterval.hours(6),
            TimeInterval.days(1),
            WEEK,
            MONTH,
            SEMI_MONTH,
            TRI_MONTH,
            YEAR,
        ],
    )
    def test_text_round_trip(self, interval: TimeInterval) -> None:
        """Test parsing canonical text gives the same interval."""
        assert TimeInterval.from_text(interval.to_text()) == interval

    def test_from_text_case_insensitive(self) -> None:
        """Test unit tokens ignore case."""
        assert TimeInterval.from_text("1hour") == TimeInterval.hours(1)
        assert TimeInterval.from_text("SEMI-MONTH") == SEMI_MONTH

    @pytest.mark.parametrize("text", ["0Hour", "2Week", "Hour", "1Fortnight", "", "1 Hour"])
    def test_from_text_invalid(self, text: str, caplog: pytest.LogCaptureFixture) -> None:
        """Test text outside the grammar gives None."""
        with caplog.at_level(logging.WARNING):
            assert TimeInterval.from_text(text) is None
        assert "Invalid time interval" in caplog.text

    def test_non_positive_count(self) -> None:
        """Test counted intervals need a positive multiple."""
        with pytest.raises(IntervalError):
            TimeInterval.hours(0)
        with pytest.raises(IntervalError):
            TimeInterval.days(-1)

    def test_numpy_integer_count(self) -> None:
        """Test integer-like counts are accepted and stored as int."""
        interval = TimeInterval.hours(np.int64(2))
        assert interval == TimeInterval.hours(2)
        assert type(interval.count) is int
        assert interval.to_text() == "2Hour"

    @pytest.mark.parametrize("count", [True, 1.5, "2"])
    def test_non_integer_count(self, count) -> None:
        with pytest.raises(IntervalError, match="must be an integer"):
            TimeInterval(IntervalUnit.HOUR, count)

    def test_named_with_count(self) -> None:
        """Test named intervals take no multiple."""
        with pytest.raises(IntervalError):
            TimeInterval(IntervalUnit.WEEK, 2)

    def test_unit_properties(self) -> None:
        """Test counted/named classification."""
        assert IntervalUnit.HOUR.counted
        assert not IntervalUnit.MONTH.counted
        assert IntervalUnit.DAY.seconds == 86400


class TestTimeIntervalEPart:
    """Tests for parsing native E-part spellings."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("1Hour", TimeInterval.hours(1)),
            ("15MIN", TimeInterval.minutes(15)),
            ("1MINUTE", TimeInterval.minutes(1)),
            ("1DAY", TimeInterval.days(1)),
            ("6HOURS", TimeInterval.hours(6)),
            ("1WEEK", WEEK),
            ("1MON", MONTH),
            ("1MONTH", MONTH),
            ("TRI-MONTH", TRI_MONTH),
            ("1YEAR", YEAR),
        ],
    )
    def test_native_spellings(self, text: str, expected: TimeInterval) -> None:
        """Test native spellings map to intervals."""
        assert TimeInterval.from_e_part(text) == expected

    def test_irregular_block(self) -> None:
        """Test irregular block sizes are not intervals."""
        assert TimeInterval.from_e_part("IR-DAY") is None
        assert TimeInterval.from_e_part("IR-MONTH") is None


class TestTimeIntervalFromValue:
    """Tests for TimeInterval.from_value."""

    def test_counted(self) -> None:
        """Test the largest dividing unit is used."""
        assert TimeInterval.from_value(3600) == TimeInterval.hours(1)
        assert TimeInterval.from_value(900) == TimeInterval.minutes(15)
        assert TimeInterval.from_value(90) == TimeInterval.seconds(90)
        assert TimeInterval.from_value(172800) == TimeInterval.days(2)

    def test_named(self) -> None:
        """Test nominal lengths map to named intervals."""
        assert TimeInterval.from_value(2592000) == MONTH
        assert TimeInterval.from_value(31536000) == YEAR

    def test_non_positive(self) -> None:
        """Test non-positive lengths are rejected."""
        with pytest.raises(IntervalError):
            TimeInterval.from_value(0)
