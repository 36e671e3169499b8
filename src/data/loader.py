"""
Snapshot loading utilities.

Snapshots are flat exports of Features, Epics and Milestones written by the
tracker sync job as parquet or csv.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import pandas as pd

from src.config import config, TABLE_FILES
from src.data.schema import records_to_frame, validate_schema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotInputs:
    """Raw records for one computation pass."""
    features: pd.DataFrame = field(default_factory=pd.DataFrame)
    epics: pd.DataFrame = field(default_factory=pd.DataFrame)
    milestones: pd.DataFrame = field(default_factory=pd.DataFrame)

    @property
    def is_empty(self) -> bool:
        return len(self.features) == 0 and len(self.epics) == 0 and len(self.milestones) == 0


def _normalise_column_selection(columns: Optional[Sequence[str]]) -> Optional[list]:
    """Deduplicate and normalise a requested column list."""
    if not columns:
        return None
    return list(dict.fromkeys(str(col) for col in columns))


def _load_file(filepath: Path, columns: Optional[Sequence[str]] = None) -> Optional[pd.DataFrame]:
    """Load a single file (parquet or csv), optionally selecting columns."""
    selected_cols = _normalise_column_selection(columns)
    parquet_path = filepath.with_suffix(".parquet")
    csv_path = filepath.with_suffix(".csv")

    if parquet_path.exists():
        if selected_cols:
            df = pd.read_parquet(parquet_path)
            keep_cols = [col for col in selected_cols if col in df.columns]
            return df[keep_cols]
        return pd.read_parquet(parquet_path)
    elif csv_path.exists():
        if selected_cols:
            try:
                return pd.read_csv(csv_path, usecols=selected_cols)
            except ValueError:
                df = pd.read_csv(csv_path)
                keep_cols = [col for col in selected_cols if col in df.columns]
                return df[keep_cols]
        return pd.read_csv(csv_path)
    return None


def load_snapshot(table_name: str,
                  data_dir: Optional[Path] = None,
                  columns: Optional[Sequence[str]] = None,
                  strict: bool = True) -> Optional[pd.DataFrame]:
    """
    Load one snapshot table. Returns None if the file does not exist.

    Raises SchemaValidationError when strict and required columns are missing.
    """
    if table_name not in TABLE_FILES:
        return None

    snapshots_dir = Path(data_dir) / "snapshots" if data_dir else config.snapshots_dir
    df = _load_file(snapshots_dir / TABLE_FILES[table_name], columns=columns)
    if df is None:
        logger.warning("No %s snapshot found in %s", table_name, snapshots_dir)
        return None

    validate_schema(df, table_name, strict=strict)
    logger.debug("Loaded %d rows from %s snapshot", len(df), table_name)
    return records_to_frame(df, table_name)


def load_snapshot_inputs(data_dir: Optional[Path] = None, strict: bool = True) -> SnapshotInputs:
    """Load all three snapshot tables; missing files become empty tables."""
    frames = {}
    for table_name in TABLE_FILES:
        df = load_snapshot(table_name, data_dir=data_dir, strict=strict)
        frames[table_name] = df if df is not None else records_to_frame(None, table_name)
    return SnapshotInputs(**frames)


def get_data_status(data_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Get status of all snapshot files."""
    snapshots_dir = Path(data_dir) / "snapshots" if data_dir else config.snapshots_dir
    status = {}

    for key, filename in TABLE_FILES.items():
        parquet_path = snapshots_dir / f"{filename}.parquet"
        csv_path = snapshots_dir / f"{filename}.csv"
        status[key] = {
            "parquet_exists": parquet_path.exists(),
            "csv_exists": csv_path.exists(),
        }

    return status
