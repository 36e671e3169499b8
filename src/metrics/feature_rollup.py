"""
Feature rollup metrics pack.

Single source of truth for: Epic-level start/end rollups and feature counts
derived from child Features.
"""
import logging
from typing import Iterable, Optional

import pandas as pd

from src.config import config
from src.data.schema import Records, normalise_features

logger = logging.getLogger(__name__)

ROLLUP_COLUMNS = [
    "parent_id",
    "rolled_up_start",
    "rolled_up_end",
    "feature_count",
    "features_with_dates",
    "active_rolled_up_start",
    "active_rolled_up_end",
]


def _empty_rollups() -> pd.DataFrame:
    df = pd.DataFrame({
        "parent_id": pd.Series(dtype=object),
        "rolled_up_start": pd.Series(dtype="datetime64[ns]"),
        "rolled_up_end": pd.Series(dtype="datetime64[ns]"),
        "feature_count": pd.Series(dtype="int64"),
        "features_with_dates": pd.Series(dtype="int64"),
        "active_rolled_up_start": pd.Series(dtype="datetime64[ns]"),
        "active_rolled_up_end": pd.Series(dtype="datetime64[ns]"),
    })
    return df.set_index("parent_id")


def active_feature_mask(features: pd.DataFrame,
                        closed_states: Optional[Iterable[str]] = None) -> pd.Series:
    """
    True where a feature is still in flight (state not Done/Closed).

    State comparison ignores case and surrounding whitespace.
    """
    if closed_states is None:
        closed_states = config.closed_states
    closed = {s.strip().lower() for s in closed_states}

    state = features["state"].fillna("").astype(str).str.strip().str.lower()
    return ~state.isin(closed)


def compute_feature_rollups(features: Records,
                            closed_states: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """
    Roll child Features up to their parent Epic.

    Orphans (no parent_id) are dropped. Per parent:
    - rolled_up_start / rolled_up_end: min start / max end over present dates
    - feature_count: number of children
    - features_with_dates: children with both start and end
    - active_rolled_up_start / active_rolled_up_end: same min/max over
      children not in a closed state (NaT when none are active)

    Returns DataFrame indexed by parent_id. Parents with no children have no row.
    """
    df = normalise_features(features)

    orphans = df["parent_id"].isna()
    if orphans.any():
        logger.debug("Dropping %d orphan feature(s) with no parent", int(orphans.sum()))
    df = df[~orphans]

    if len(df) == 0:
        return _empty_rollups()

    df = df.assign(has_both_dates=df["start_date"].notna() & df["end_date"].notna())

    rollups = df.groupby("parent_id", sort=True).agg(
        rolled_up_start=("start_date", "min"),
        rolled_up_end=("end_date", "max"),
        feature_count=("id", "size"),
        features_with_dates=("has_both_dates", "sum"),
    )

    active = df[active_feature_mask(df, closed_states)]
    active_rollups = active.groupby("parent_id", sort=True).agg(
        active_rolled_up_start=("start_date", "min"),
        active_rolled_up_end=("end_date", "max"),
    )

    rollups = rollups.join(active_rollups, how="left")
    rollups["feature_count"] = rollups["feature_count"].astype("int64")
    rollups["features_with_dates"] = rollups["features_with_dates"].astype("int64")
    for col in ["rolled_up_start", "rolled_up_end", "active_rolled_up_start", "active_rolled_up_end"]:
        rollups[col] = pd.to_datetime(rollups[col])

    # Children with one-sided dates can leave min(start) after max(end)
    inverted = rollups["rolled_up_start"] > rollups["rolled_up_end"]
    if inverted.any():
        logger.warning(
            "%d parent(s) have a rolled-up start after their rolled-up end: %s",
            int(inverted.sum()), list(rollups.index[inverted])[:10],
        )

    rollups.index.name = "parent_id"
    logger.debug("Rolled up %d features into %d parents", len(df), len(rollups))
    return rollups[ROLLUP_COLUMNS[1:]]
