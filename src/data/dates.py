"""
Calendar date coercion and two-tier date fallback.

Every date that enters a rollup or a classification passes through here.
Blank, malformed, error-valued or out-of-range inputs become NaT; nothing in
this module raises on bad data.
"""
import logging
from datetime import date, datetime
from typing import Any, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

DatePair = Tuple[str, str]


def to_calendar_date(value: Any) -> pd.Timestamp:
    """
    Coerce a single value to a naive midnight Timestamp, or NaT.

    Only real date/datetime objects and date-like strings are accepted.
    Numbers and booleans are not dates here.
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return pd.NaT

    try:
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return pd.NaT
            ts = pd.to_datetime(text, errors="coerce")
        elif isinstance(value, (pd.Timestamp, datetime, date, np.datetime64)):
            ts = pd.Timestamp(value)
        else:
            return pd.NaT
    except (ValueError, OverflowError, TypeError):
        return pd.NaT

    if pd.isna(ts):
        return pd.NaT
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    if not (pd.Timestamp.min <= ts <= pd.Timestamp.max):
        return pd.NaT
    return ts.normalize()


def coerce_date_column(df: pd.DataFrame, col: str) -> pd.Series:
    """
    Return df[col] as naive calendar dates (datetime64), NaT where unusable.

    A missing column yields an all-NaT series on df's index.
    """
    if col not in df.columns:
        return pd.Series(pd.NaT, index=df.index, dtype="datetime64[ns]")

    series = df[col]
    if pd.api.types.is_datetime64_any_dtype(series):
        if getattr(series.dt, "tz", None) is not None:
            series = series.dt.tz_localize(None)
        return series.dt.normalize()

    coerced = series.map(to_calendar_date).astype("datetime64[ns]")

    # Non-blank inputs that failed to parse
    blank = series.isna() | series.astype(str).str.strip().eq("")
    unparsed = int((coerced.isna() & ~blank).sum())
    if unparsed:
        logger.debug("%s: %d value(s) could not be read as dates", col, unparsed)

    return coerced


def resolve_with_fallback(df: pd.DataFrame, preferred: str, fallback: str) -> pd.Series:
    """Preferred date where valid, else fallback date where valid, else NaT."""
    primary = coerce_date_column(df, preferred)
    secondary = coerce_date_column(df, fallback)
    return primary.where(primary.notna(), secondary)


def resolve_effective_dates(df: pd.DataFrame,
                            start_fields: DatePair,
                            end_fields: DatePair) -> pd.DataFrame:
    """
    Resolve effective start/end for every row.

    Each endpoint is resolved on its own, so a row may take its start from the
    preferred field and its end from the fallback field.

    Returns DataFrame (same index) with effective_start, effective_end.
    """
    return pd.DataFrame({
        "effective_start": resolve_with_fallback(df, *start_fields),
        "effective_end": resolve_with_fallback(df, *end_fields),
    }, index=df.index)


def resolve_record_dates(record: Mapping[str, Any],
                         start_fields: DatePair,
                         end_fields: DatePair) -> Tuple[Optional[pd.Timestamp], Optional[pd.Timestamp]]:
    """Single-record form of resolve_effective_dates; absent dates come back as None."""
    def _resolve(fields: DatePair) -> Optional[pd.Timestamp]:
        for name in fields:
            ts = to_calendar_date(record.get(name))
            if not pd.isna(ts):
                return ts
        return None

    return _resolve(start_fields), _resolve(end_fields)


def days_between(later: pd.Series, earlier: pd.Series) -> pd.Series:
    """
    Signed whole-day difference later - earlier as nullable Int64.

    <NA> wherever either side is missing.
    """
    delta = pd.to_datetime(later) - pd.to_datetime(earlier)
    return delta.dt.days.astype("Int64")
