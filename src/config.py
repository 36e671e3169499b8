"""
Application configuration management.
"""
import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Tuple


def _default_data_dir() -> Path:
    env_dir = os.getenv("DATA_DIR")
    if env_dir:
        return Path(env_dir)
    return Path("./data")


def _closed_states_from_env() -> Tuple[str, ...]:
    raw = os.getenv("CLOSED_STATES", "Done,Closed")
    return tuple(s.strip() for s in raw.split(",") if s.strip())


@dataclass
class AppConfig:
    """Application configuration with environment overrides."""

    # Paths
    data_dir: Path = field(default_factory=_default_data_dir)

    # Environment
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Work-item tracker identifiers (link building only, never contacted)
    devops_base_url: str = field(default_factory=lambda: os.getenv("DEVOPS_BASE_URL", "https://dev.azure.com"))
    devops_organization: str = field(default_factory=lambda: os.getenv("DEVOPS_ORGANIZATION", ""))
    devops_project: str = field(default_factory=lambda: os.getenv("DEVOPS_PROJECT", ""))

    # Business logic defaults
    closed_states: Tuple[str, ...] = field(default_factory=_closed_states_from_env)

    @property
    def snapshots_dir(self) -> Path:
        return self.data_dir / "snapshots"

    @property
    def reports_dir(self) -> Path:
        return self.data_dir / "reports"


# Global config instance
config = AppConfig()


@dataclass(frozen=True)
class LinkContext:
    """Organization/project identifiers used to build work-item links."""
    organization: str
    project: str
    base_url: str = "https://dev.azure.com"

    @classmethod
    def from_config(cls, app_config: AppConfig = None) -> "LinkContext":
        app_config = app_config or config
        return cls(
            organization=app_config.devops_organization,
            project=app_config.devops_project,
            base_url=app_config.devops_base_url,
        )


# Snapshot file names
TABLE_FILES = {
    "features": "features_snapshot",
    "epics": "epics_snapshot",
    "milestones": "milestones_snapshot",
}

# Required columns (hard fail at the loading boundary if missing)
REQUIRED_COLUMNS = {
    "features": [
        "id",
        "parent_id",
        "state",
    ],
    "epics": [
        "id",
        "title",
        "area_path",
    ],
    "milestones": [
        "id",
        "title",
        "is_pmp_milestone",
    ],
}

# Optional columns (added as absent if missing)
OPTIONAL_COLUMNS = {
    "features": [
        "start_date",
        "end_date",
    ],
    "epics": [
        "start_date",
        "target_date",
        "original_start_date",
        "original_end_date",
        "critical_date",
        "priority",
        "effort",
        "key_deliverable",
        "last_updated",
    ],
    "milestones": [
        "planned_start_date",
        "target_end_date",
        "original_start_date_pmp",
        "original_end_date_pmp",
        "closed_date",
        "is_critical_date",
        "is_key_feature",
    ],
}

DATE_COLUMNS = {
    "features": ["start_date", "end_date"],
    "epics": [
        "start_date",
        "target_date",
        "original_start_date",
        "original_end_date",
        "critical_date",
        "last_updated",
    ],
    "milestones": [
        "planned_start_date",
        "target_end_date",
        "original_start_date_pmp",
        "original_end_date_pmp",
        "closed_date",
    ],
}

FLAG_COLUMNS = {
    "features": [],
    "epics": ["key_deliverable"],
    "milestones": ["is_pmp_milestone", "is_critical_date", "is_key_feature"],
}

# Milestone statuses, in report order
STATUS_SCHEDULED = "Scheduled"
STATUS_DELAYED = "Delayed"
STATUS_ORDER = [STATUS_SCHEDULED, STATUS_DELAYED]

# Fiscal calendar
FISCAL_YEAR_START_MONTH = 7
QUARTER_ALL = "all"
QUARTER_MONTHS = {
    "Q1": (7, 9),
    "Q2": (10, 12),
    "Q3": (1, 3),
    "Q4": (4, 6),
}

# Empty-state messages
MESSAGE_NO_DATA = "No data loaded. Refresh the data source to load milestones."
MESSAGE_NO_MILESTONES = "No milestones found for {filters}."
