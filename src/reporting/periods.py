"""
Fiscal reporting periods.

Fiscal years start 1 July and are labelled by the calendar year they end in
(FY2025 = 1 Jul 2024 to 30 Jun 2025).
"""
import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional

import pandas as pd

from src.config import FISCAL_YEAR_START_MONTH, QUARTER_ALL, QUARTER_MONTHS

logger = logging.getLogger(__name__)

_FY_PATTERN = re.compile(r"^(?:FY)?\s*(\d{2}|\d{4})$", re.IGNORECASE)
_FY_SPAN_PATTERN = re.compile(r"^(?:FY)?\s*(\d{4})\s*[-/]\s*(\d{2}|\d{4})$", re.IGNORECASE)


@dataclass(frozen=True)
class ReportingPeriod:
    """Inclusive calendar date range for one fiscal year/quarter selection."""
    start: pd.Timestamp
    end: pd.Timestamp
    fiscal_year: int
    quarter: str

    @property
    def label(self) -> str:
        if self.quarter == QUARTER_ALL:
            return f"FY{self.fiscal_year}"
        return f"FY{self.fiscal_year} {self.quarter}"

    def contains(self, day: Any) -> bool:
        ts = pd.Timestamp(day).normalize()
        return self.start <= ts <= self.end


def fiscal_year_for(day: date) -> int:
    """Fiscal year (ending-year label) containing day."""
    return day.year + 1 if day.month >= FISCAL_YEAR_START_MONTH else day.year


def quarter_for(day: date) -> str:
    """Fiscal quarter (Q1..Q4) containing day."""
    for quarter, (first_month, last_month) in QUARTER_MONTHS.items():
        if first_month <= day.month <= last_month:
            return quarter
    raise ValueError(f"Month out of range: {day.month}")


def parse_fiscal_year(label: Any) -> Optional[int]:
    """
    Read a fiscal year label.

    Accepts 2025, 25, "2025", "FY2025", "FY25" and spans such as "2024-25" or
    "2024/2025" (labelled by the ending year). Returns None if unreadable.
    """
    if label is None:
        return None
    if isinstance(label, int) and not isinstance(label, bool):
        if label <= 0:
            return None
        return 2000 + label if label < 100 else label

    text = str(label).strip()
    span = _FY_SPAN_PATTERN.match(text)
    if span:
        start_year = int(span.group(1))
        return start_year + 1

    single = _FY_PATTERN.match(text)
    if single:
        year = int(single.group(1))
        return 2000 + year if year < 100 else year

    return None


def parse_quarter(selector: Any) -> Optional[str]:
    """Normalise a quarter selector to 'Q1'..'Q4' or 'all'. None if unreadable."""
    if selector is None:
        return None
    if isinstance(selector, int) and not isinstance(selector, bool):
        key = f"Q{selector}"
        return key if key in QUARTER_MONTHS else None

    text = str(selector).strip()
    if text.lower() in (QUARTER_ALL, "full year", "fy"):
        return QUARTER_ALL
    key = text.upper()
    if key in QUARTER_MONTHS:
        return key
    if key.isdigit() and f"Q{key}" in QUARTER_MONTHS:
        return f"Q{key}"
    return None


def _month_start(year: int, month: int) -> pd.Timestamp:
    return pd.Timestamp(year=year, month=month, day=1)


def _month_end(year: int, month: int) -> pd.Timestamp:
    return pd.Timestamp(year=year, month=month, day=calendar.monthrange(year, month)[1])


def _calendar_year(fiscal_year: int, month: int) -> int:
    return fiscal_year - 1 if month >= FISCAL_YEAR_START_MONTH else fiscal_year


def resolve_reporting_period(fiscal_year: Any = None,
                             quarter: Any = None,
                             today: Optional[date] = None) -> ReportingPeriod:
    """
    Map a (fiscal year, quarter) selection to a concrete date range.

    Q1 = Jul-Sep, Q2 = Oct-Dec, Q3 = Jan-Mar, Q4 = Apr-Jun; 'all' is the
    whole fiscal year. Unspecified or unreadable selectors fall back to the
    fiscal year / quarter containing today.
    """
    if today is None:
        today = date.today()

    year = parse_fiscal_year(fiscal_year)
    if year is None:
        if fiscal_year is not None:
            logger.warning("Unreadable fiscal year %r; using current fiscal year", fiscal_year)
        year = fiscal_year_for(today)

    selected = parse_quarter(quarter)
    if selected is None:
        if quarter is not None:
            logger.warning("Unreadable quarter %r; using current quarter", quarter)
        selected = quarter_for(today)

    if selected == QUARTER_ALL:
        first_month, last_month = QUARTER_MONTHS["Q1"][0], QUARTER_MONTHS["Q4"][1]
    else:
        first_month, last_month = QUARTER_MONTHS[selected]

    start = _month_start(_calendar_year(year, first_month), first_month)
    end = _month_end(_calendar_year(year, last_month), last_month)

    return ReportingPeriod(start=start, end=end, fiscal_year=year, quarter=selected)


def fiscal_year_options(today: Optional[date] = None, back: int = 2, forward: int = 1) -> List[int]:
    """Fiscal years around today, oldest first, for selector lists."""
    if today is None:
        today = date.today()
    current = fiscal_year_for(today)
    return list(range(current - back, current + forward + 1))
