"""
Epic enrichment metrics pack.

Joins Epics to their Feature rollups and derives schedule variances,
work-item links and schedule alerts.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from src.config import LinkContext
from src.data.dates import days_between
from src.data.links import build_link_series
from src.data.schema import Records, normalise_epics, normalise_id_value
from src.metrics.feature_rollup import compute_feature_rollups

logger = logging.getLogger(__name__)

# Left-outer join defaults for epics without any features.
# Rollup dates and variances have no default and stay NaT/<NA>.
MISSING_ROLLUP_DEFAULTS = {
    "feature_count": 0,
    "features_with_dates": 0,
}

ROLLUP_DATE_COLUMNS = [
    "rolled_up_start",
    "rolled_up_end",
    "active_rolled_up_start",
    "active_rolled_up_end",
]

# (output column, later operand, earlier operand)
VARIANCE_DEFINITIONS: List[Tuple[str, str, str]] = [
    ("start_date_variance", "rolled_up_start", "start_date"),
    ("end_date_variance", "rolled_up_end", "target_date"),
    ("original_start_variance", "start_date", "original_start_date"),
    ("original_end_variance", "target_date", "original_end_date"),
]

VARIANCE_COLUMNS = [name for name, _, _ in VARIANCE_DEFINITIONS]

ALERT_NO_FEATURES = "No Features"
ALERT_NO_FEATURE_DATES = "No Feature Dates"
ALERT_CRITICAL_AT_RISK = "Critical Date At Risk"
ALERT_FINISH_LATE = "Features Finish Late"
ALERT_BASELINE_SLIP = "Slipped From Baseline"
ALERT_ON_TRACK = "On Track"


def attach_rollups(epics: pd.DataFrame, rollups: pd.DataFrame) -> pd.DataFrame:
    """
    Left-outer join of epics to rollups on id == parent_id.

    Epics without a rollup get MISSING_ROLLUP_DEFAULTS for counts and NaT dates.
    """
    joined = epics.merge(
        rollups,
        left_on="id",
        right_index=True,
        how="left",
    )

    for col, default in MISSING_ROLLUP_DEFAULTS.items():
        joined[col] = joined[col].fillna(default).astype("int64")
    for col in ROLLUP_DATE_COLUMNS:
        joined[col] = pd.to_datetime(joined[col])

    return joined


def add_variances(df: pd.DataFrame) -> pd.DataFrame:
    """Signed day variances; <NA> wherever an operand is missing."""
    df = df.copy()
    for name, later, earlier in VARIANCE_DEFINITIONS:
        df[name] = days_between(df[later], df[earlier])
    return df


def sort_epics(df: pd.DataFrame) -> pd.DataFrame:
    """Stable sort by area path then title."""
    return df.sort_values(
        ["area_path", "title"],
        kind="mergesort",
        na_position="last",
    ).reset_index(drop=True)


def enrich_epics(epics: Records,
                 rollups: Optional[pd.DataFrame] = None,
                 link_context: Optional[LinkContext] = None,
                 features: Records = None) -> pd.DataFrame:
    """
    Build the enriched Epic table.

    Args:
        epics: Epic records
        rollups: Output of compute_feature_rollups (indexed by parent_id).
            Computed from `features` when not supplied.
        link_context: Organization/project used for the link column
        features: Feature records, only used when rollups is None

    Returns:
        DataFrame with one row per epic: epic fields, rollup dates and counts,
        four variance columns and link, sorted by (area_path, title).
    """
    epic_df = normalise_epics(epics)

    if rollups is None:
        rollups = compute_feature_rollups(features)

    duplicated = epic_df["id"].duplicated(keep="first") & epic_df["id"].notna()
    if duplicated.any():
        logger.warning("Dropping %d duplicate epic id(s)", int(duplicated.sum()))
        epic_df = epic_df[~duplicated]

    enriched = attach_rollups(epic_df, rollups)
    enriched = add_variances(enriched)

    if link_context is not None:
        enriched["link"] = build_link_series(enriched["id"], link_context)
    else:
        enriched["link"] = None

    logger.debug("Enriched %d epics (%d with features)",
                 len(enriched), int((enriched["feature_count"] > 0).sum()))
    return sort_epics(enriched)


# =============================================================================
# SCHEDULE ALERTS
# =============================================================================

def _alert_rules(df: pd.DataFrame) -> List[Tuple[str, pd.Series]]:
    """Ordered decision table; the first matching rule labels the row."""
    critical = df["critical_date"] if "critical_date" in df.columns else pd.Series(pd.NaT, index=df.index)
    end_variance = df["end_date_variance"].fillna(0)
    baseline_variance = df["original_end_variance"].fillna(0)

    return [
        (ALERT_NO_FEATURES, df["feature_count"] == 0),
        (ALERT_NO_FEATURE_DATES, df["rolled_up_end"].isna()),
        (ALERT_CRITICAL_AT_RISK, critical.notna() & (df["rolled_up_end"] > critical)),
        (ALERT_FINISH_LATE, end_variance > 0),
        (ALERT_BASELINE_SLIP, baseline_variance > 0),
    ]


def classify_epic_schedule(enriched: pd.DataFrame) -> pd.DataFrame:
    """Add schedule_alert to an enriched epic table."""
    df = enriched.copy()
    if len(df) == 0:
        df["schedule_alert"] = pd.Series(dtype=object)
        return df

    rules = _alert_rules(df)
    df["schedule_alert"] = np.select(
        [mask.to_numpy(dtype=bool) for _, mask in rules],
        [label for label, _ in rules],
        default=ALERT_ON_TRACK,
    )
    return df


def lookup_epic_rollup(enriched: pd.DataFrame, epic_id: Any) -> Dict[str, Any]:
    """
    Keyed lookup of one enriched epic for downstream consumers.

    A miss returns zero counts and absent (None) dates/variances.
    """
    key = normalise_id_value(epic_id)
    fields = ROLLUP_DATE_COLUMNS + VARIANCE_COLUMNS + ["link"]
    match = enriched[enriched["id"] == key] if key is not None and len(enriched) > 0 else enriched.iloc[0:0]

    if len(match) == 0:
        result = {"id": key, "found": False}
        result.update(MISSING_ROLLUP_DEFAULTS)
        result.update({col: None for col in fields})
        return result

    row = match.iloc[0]
    result = {"id": key, "found": True}
    for col in list(MISSING_ROLLUP_DEFAULTS) + fields:
        value = row.get(col)
        result[col] = None if value is None or pd.isna(value) else value
    return result
