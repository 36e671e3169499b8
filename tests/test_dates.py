"""
Tests for calendar date coercion and two-tier fallback.
"""
import pytest
import pandas as pd
import numpy as np
import sys
from datetime import date, datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.data.dates import (
    to_calendar_date,
    coerce_date_column,
    resolve_effective_dates,
    resolve_record_dates,
    days_between,
)


class TestToCalendarDate:
    """Tests for scalar date coercion."""

    def test_date_objects(self):
        assert to_calendar_date(date(2025, 1, 31)) == pd.Timestamp("2025-01-31")
        assert to_calendar_date(datetime(2025, 1, 31, 17, 45)) == pd.Timestamp("2025-01-31")

    def test_strings(self):
        assert to_calendar_date("2025-03-01") == pd.Timestamp("2025-03-01")
        assert to_calendar_date(" 2025-03-01T08:00:00 ") == pd.Timestamp("2025-03-01")

    def test_timezone_dropped_keeping_wall_date(self):
        value = datetime(2025, 3, 1, 23, 30, tzinfo=timezone.utc)
        result = to_calendar_date(value)
        assert result == pd.Timestamp("2025-03-01")
        assert result.tzinfo is None

    @pytest.mark.parametrize("value", [None, "", "   ", "#N/A", "not a date", np.nan, True, 45000, 3.5])
    def test_unusable_values_are_absent(self, value):
        assert pd.isna(to_calendar_date(value))

    def test_out_of_range_is_absent(self):
        assert pd.isna(to_calendar_date(date(1, 1, 1)))


class TestCoerceDateColumn:
    """Tests for column coercion."""

    def test_mixed_column(self):
        df = pd.DataFrame({"d": ["2025-01-01", None, "garbage", date(2025, 2, 1)]})

        result = coerce_date_column(df, "d")

        assert result.iloc[0] == pd.Timestamp("2025-01-01")
        assert pd.isna(result.iloc[1])
        assert pd.isna(result.iloc[2])
        assert result.iloc[3] == pd.Timestamp("2025-02-01")

    def test_missing_column_all_absent(self):
        df = pd.DataFrame({"x": [1, 2]})

        result = coerce_date_column(df, "d")

        assert len(result) == 2
        assert result.isna().all()

    def test_datetime_column_normalised(self):
        df = pd.DataFrame({"d": pd.to_datetime(["2025-01-01 13:00", None])})

        result = coerce_date_column(df, "d")

        assert result.iloc[0] == pd.Timestamp("2025-01-01")
        assert pd.isna(result.iloc[1])


class TestResolveEffectiveDates:
    """Tests for independent per-endpoint fallback."""

    def test_endpoints_resolve_independently(self):
        df = pd.DataFrame({
            "planned": ["2025-02-15", None, "bad"],
            "original_start": ["2025-01-01", "2025-01-05", "2025-01-09"],
            "target": [None, "2025-03-01", None],
            "original_end": ["2025-02-20", "2025-03-30", None],
        })

        result = resolve_effective_dates(df, ("planned", "original_start"), ("target", "original_end"))

        # start from preferred, end from fallback
        assert result["effective_start"].iloc[0] == pd.Timestamp("2025-02-15")
        assert result["effective_end"].iloc[0] == pd.Timestamp("2025-02-20")
        # start from fallback, end from preferred
        assert result["effective_start"].iloc[1] == pd.Timestamp("2025-01-05")
        assert result["effective_end"].iloc[1] == pd.Timestamp("2025-03-01")
        # unparseable preferred falls back; nothing for end
        assert result["effective_start"].iloc[2] == pd.Timestamp("2025-01-09")
        assert pd.isna(result["effective_end"].iloc[2])

    def test_record_form(self):
        record = {"planned": "", "original_start": "2025-01-01", "target": "2025-02-01"}

        start, end = resolve_record_dates(record, ("planned", "original_start"), ("target", "original_end"))

        assert start == pd.Timestamp("2025-01-01")
        assert end == pd.Timestamp("2025-02-01")

    def test_record_form_absent(self):
        start, end = resolve_record_dates({}, ("a", "b"), ("c", "d"))

        assert start is None
        assert end is None


class TestDaysBetween:
    """Tests for signed day variance."""

    def test_signed_days_with_missing(self):
        later = pd.Series(pd.to_datetime(["2025-01-10", "2025-01-01", None]))
        earlier = pd.Series(pd.to_datetime(["2025-01-01", "2025-01-10", "2025-01-01"]))

        result = days_between(later, earlier)

        assert str(result.dtype) == "Int64"
        assert result.iloc[0] == 9
        assert result.iloc[1] == -9
        assert pd.isna(result.iloc[2])
