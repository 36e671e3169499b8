"""
Milestone status metrics pack.

Single source of truth for: PMP milestone classification against a reporting
period (Scheduled / Delayed), report ordering, project filtering and the
dashboard counts derived from them.
"""
import logging
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from src.config import LinkContext, STATUS_DELAYED, STATUS_ORDER, STATUS_SCHEDULED
from src.data.dates import resolve_effective_dates
from src.data.links import build_link_series
from src.data.schema import Records, normalise_milestones
from src.reporting.periods import ReportingPeriod

logger = logging.getLogger(__name__)

EFFECTIVE_START_FIELDS = ("planned_start_date", "original_start_date_pmp")
EFFECTIVE_END_FIELDS = ("target_end_date", "original_end_date_pmp")

REPORT_COLUMNS = [
    "id",
    "title",
    "status",
    "effective_start",
    "effective_end",
    "sort_date",
    "planned_start_date",
    "target_end_date",
    "original_start_date_pmp",
    "original_end_date_pmp",
    "closed_date",
    "is_critical_date",
    "is_key_feature",
    "link",
]


def prefilter_pmp_milestones(milestones: Records) -> pd.DataFrame:
    """Keep only rows flagged as PMP milestones; everything else never reaches classification."""
    df = normalise_milestones(milestones)
    keep = df["is_pmp_milestone"].astype(bool)
    dropped = int((~keep).sum())
    if dropped:
        logger.debug("Pre-filter dropped %d non-PMP milestone(s)", dropped)
    return df[keep].copy()


def overlaps_period(start: pd.Series, end: pd.Series, period: ReportingPeriod) -> pd.Series:
    """start <= period.end and end >= period.start; False where either side is missing."""
    return start.notna() & end.notna() & (start <= period.end) & (end >= period.start)


def _status_rules(df: pd.DataFrame, period: ReportingPeriod) -> List[Tuple[str, pd.Series]]:
    """
    Ordered status rules; first match wins, rows matching none are dropped.

    Scheduled: effective (fallback-resolved) dates overlap the period and at
               least one current-plan date exists; a range built purely
               from the PMP baseline is left to the Delayed rule.
    Delayed:   raw PMP baseline dates overlap the period and the planned start
               is absent or after the period ends.
    """
    has_current_plan = df["planned_start_date"].notna() | df["target_end_date"].notna()
    scheduled = has_current_plan & overlaps_period(df["effective_start"], df["effective_end"], period)

    original_start = df["original_start_date_pmp"]
    original_end = df["original_end_date_pmp"]
    planned_start = df["planned_start_date"]
    delayed = (
        ~scheduled
        & overlaps_period(original_start, original_end, period)
        & (planned_start.isna() | (planned_start > period.end))
    )

    return [
        (STATUS_SCHEDULED, scheduled),
        (STATUS_DELAYED, delayed),
    ]


def classify_milestones(milestones: Records, period: ReportingPeriod) -> pd.DataFrame:
    """
    Classify PMP milestones against a reporting period.

    Args:
        milestones: Milestone records (non-PMP rows are pre-filtered out)
        period: Resolved reporting period

    Returns:
        DataFrame of classified milestones only, with status, effective_start,
        effective_end and sort_date added. Unsorted; see sort_classified_milestones.
    """
    df = prefilter_pmp_milestones(milestones)

    effective = resolve_effective_dates(df, EFFECTIVE_START_FIELDS, EFFECTIVE_END_FIELDS)
    df["effective_start"] = effective["effective_start"]
    df["effective_end"] = effective["effective_end"]

    if len(df) == 0:
        df["status"] = pd.Series(dtype=object)
        df["sort_date"] = pd.Series(dtype="datetime64[ns]")
        return df

    rules = _status_rules(df, period)
    df["status"] = np.select(
        [mask.to_numpy(dtype=bool) for _, mask in rules],
        [label for label, _ in rules],
        default="",
    )
    df = df[df["status"] != ""].copy()

    df["sort_date"] = df["effective_end"].where(
        df["status"] == STATUS_SCHEDULED,
        df["original_end_date_pmp"],
    )

    logger.debug(
        "Classified milestones for %s: %d scheduled, %d delayed",
        period.label,
        int((df["status"] == STATUS_SCHEDULED).sum()),
        int((df["status"] == STATUS_DELAYED).sum()),
    )
    return df


def sort_classified_milestones(classified: pd.DataFrame) -> pd.DataFrame:
    """
    Order report rows: Scheduled before Delayed, then sort_date ascending
    (missing dates last within their status), then id ascending.
    """
    if len(classified) == 0:
        return classified.reset_index(drop=True)

    rank = {status: i for i, status in enumerate(STATUS_ORDER)}
    keyed = classified.assign(
        _status_rank=classified["status"].map(rank).fillna(len(rank)),
        _sort_missing=classified["sort_date"].isna(),
        _id_number=pd.to_numeric(classified["id"], errors="coerce"),
        _id_text=classified["id"].astype(str),
    )
    keyed = keyed.sort_values(
        ["_status_rank", "_sort_missing", "sort_date", "_id_number", "_id_text"],
        kind="mergesort",
        na_position="last",
    )
    return keyed.drop(columns=["_status_rank", "_sort_missing", "_id_number", "_id_text"]).reset_index(drop=True)


def filter_by_project(classified: pd.DataFrame, project: Optional[str]) -> pd.DataFrame:
    """
    Case-insensitive substring filter on project (or title when the
    records carry no project column). Blank filter passes everything.
    """
    if project is None or not str(project).strip() or len(classified) == 0:
        return classified

    column = "project" if "project" in classified.columns else "title"
    if column == "title":
        logger.debug("No project column; filtering %d milestones on title", len(classified))
    needle = str(project).strip()
    mask = classified[column].fillna("").astype(str).str.contains(needle, case=False, regex=False)
    return classified[mask]


def build_milestone_report(milestones: Records,
                           period: ReportingPeriod,
                           project: Optional[str] = None,
                           link_context: Optional[LinkContext] = None) -> pd.DataFrame:
    """
    Classified, filtered and ordered milestone rows for one reporting period.
    """
    classified = classify_milestones(milestones, period)
    classified = filter_by_project(classified, project)

    if link_context is not None:
        classified = classified.assign(link=build_link_series(classified["id"], link_context))
    else:
        classified = classified.assign(link=None)

    report = sort_classified_milestones(classified)

    extra_cols = [c for c in report.columns if c not in REPORT_COLUMNS and c != "is_pmp_milestone"]
    return report[REPORT_COLUMNS + extra_cols]


def summarise_milestone_status(report: pd.DataFrame) -> Dict[str, int]:
    """
    Get summary counts for a milestone report.
    """
    if len(report) == 0:
        return {"total": 0, "scheduled": 0, "delayed": 0, "critical_date": 0, "key_feature": 0}

    return {
        "total": len(report),
        "scheduled": int((report["status"] == STATUS_SCHEDULED).sum()),
        "delayed": int((report["status"] == STATUS_DELAYED).sum()),
        "critical_date": int(report["is_critical_date"].fillna(False).astype(bool).sum()),
        "key_feature": int(report["is_key_feature"].fillna(False).astype(bool).sum()),
    }
