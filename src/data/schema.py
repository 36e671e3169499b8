"""
Schema validation and record normalisation for work-item snapshots.
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd

from src.config import (
    REQUIRED_COLUMNS,
    OPTIONAL_COLUMNS,
    DATE_COLUMNS,
    FLAG_COLUMNS,
)
from src.data.dates import coerce_date_column

logger = logging.getLogger(__name__)

Records = Union[pd.DataFrame, Iterable[Mapping[str, Any]], None]

TRUTHY_TEXT = {"true", "yes", "y", "1"}

ID_COLUMNS = {
    "features": ["id", "parent_id"],
    "epics": ["id"],
    "milestones": ["id"],
}


class SchemaValidationError(Exception):
    """Raised when required columns are missing."""
    pass


def validate_required_columns(df: pd.DataFrame, table_name: str) -> Tuple[bool, List[str]]:
    """
    Validate that required columns exist in dataframe.
    Returns (is_valid, missing_columns).
    """
    if table_name not in REQUIRED_COLUMNS:
        return True, []

    required = REQUIRED_COLUMNS[table_name]
    missing = [col for col in required if col not in df.columns]

    return len(missing) == 0, missing


def check_optional_columns(df: pd.DataFrame, table_name: str) -> List[str]:
    """
    Check which optional columns are missing.
    Returns list of missing optional columns.
    """
    if table_name not in OPTIONAL_COLUMNS:
        return []

    optional = OPTIONAL_COLUMNS[table_name]
    return [col for col in optional if col not in df.columns]


def validate_schema(df: pd.DataFrame, table_name: str, strict: bool = True) -> Dict:
    """
    Full schema validation.

    Args:
        df: DataFrame to validate
        table_name: Name of table for column requirements lookup
        strict: If True, raise error on missing required columns

    Returns:
        Dict with validation results
    """
    is_valid, missing_required = validate_required_columns(df, table_name)
    missing_optional = check_optional_columns(df, table_name)

    result = {
        "is_valid": is_valid,
        "missing_required": missing_required,
        "missing_optional": missing_optional,
        "total_columns": len(df.columns),
        "total_rows": len(df),
    }

    if strict and not is_valid:
        raise SchemaValidationError(
            f"Missing required columns in {table_name}: {missing_required}"
        )

    return result


# =============================================================================
# VALUE NORMALISATION
# =============================================================================

def normalise_id_value(value: Any) -> Optional[str]:
    """Work-item id as a text key; integral floats lose their '.0'."""
    if value is None:
        return None
    if isinstance(value, (float, np.floating)):
        if np.isnan(value):
            return None
        if float(value).is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_)):
        return str(int(value))
    if value is pd.NA or value is pd.NaT:
        return None
    text = str(value).strip()
    return text or None


def normalise_id_series(series: pd.Series) -> pd.Series:
    return series.map(normalise_id_value).astype(object)


def coerce_flag_value(value: Any) -> bool:
    """Boolean-like tracker values (True, 1, 'Yes', 'true') to bool."""
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, float, np.integer, np.floating)):
        return not pd.isna(value) and value == 1
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_TEXT
    return False


def coerce_flag_series(series: pd.Series) -> pd.Series:
    return series.map(coerce_flag_value).astype(bool)


# =============================================================================
# RECORD FRAMES
# =============================================================================

def records_to_frame(records: Records, table_name: str) -> pd.DataFrame:
    """
    Build a DataFrame from records (DataFrame or sequence of dicts).

    Every required and optional column of table_name is present on return;
    missing ones are filled with None.
    """
    if records is None:
        df = pd.DataFrame()
    elif isinstance(records, pd.DataFrame):
        df = records.copy()
    else:
        df = pd.DataFrame(list(records))

    expected = REQUIRED_COLUMNS.get(table_name, []) + OPTIONAL_COLUMNS.get(table_name, [])
    for col in expected:
        if col not in df.columns:
            df[col] = pd.Series([None] * len(df), index=df.index, dtype=object)

    return df


def normalise_table(records: Records, table_name: str) -> pd.DataFrame:
    """Ensure consistent column types: text ids, calendar dates, boolean flags."""
    df = records_to_frame(records, table_name)

    for col in ID_COLUMNS.get(table_name, []):
        df[col] = normalise_id_series(df[col])

    for col in DATE_COLUMNS.get(table_name, []):
        df[col] = coerce_date_column(df, col)

    for col in FLAG_COLUMNS.get(table_name, []):
        df[col] = coerce_flag_series(df[col])

    logger.debug("Normalised %s: %d rows", table_name, len(df))
    return df


def normalise_features(records: Records) -> pd.DataFrame:
    return normalise_table(records, "features")


def normalise_epics(records: Records) -> pd.DataFrame:
    return normalise_table(records, "epics")


def normalise_milestones(records: Records) -> pd.DataFrame:
    return normalise_table(records, "milestones")
