"""
Refresh pipeline: one all-or-nothing computation pass over a snapshot.

Records are fetched by a caller-supplied function before any computation
starts. A pass either publishes a complete RefreshResult or publishes nothing,
leaving the previous result in place.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Optional

import pandas as pd

from src.config import LinkContext, MESSAGE_NO_DATA, MESSAGE_NO_MILESTONES
from src.data.loader import SnapshotInputs
from src.metrics.epic_enrichment import classify_epic_schedule, enrich_epics
from src.metrics.feature_rollup import compute_feature_rollups
from src.metrics.milestone_status import build_milestone_report, summarise_milestone_status
from src.reporting.periods import ReportingPeriod, resolve_reporting_period

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportSelection:
    """User selection for the milestone report."""
    fiscal_year: Optional[object] = None
    quarter: Optional[object] = None
    project: Optional[str] = None


@dataclass(frozen=True)
class EpicReport:
    rows: pd.DataFrame
    rollups: pd.DataFrame
    feature_count_in: int
    epic_count_in: int


@dataclass(frozen=True)
class MilestoneReport:
    """Classified milestone rows plus what is needed to explain an empty result."""
    rows: pd.DataFrame
    period: ReportingPeriod
    project: Optional[str]
    input_count: int

    @property
    def has_input(self) -> bool:
        return self.input_count > 0

    @property
    def is_empty(self) -> bool:
        return len(self.rows) == 0

    @property
    def summary(self) -> Dict[str, int]:
        return summarise_milestone_status(self.rows)

    def empty_state_message(self) -> Optional[str]:
        """None when there are rows; otherwise the no-data or no-match message."""
        if not self.is_empty:
            return None
        if not self.has_input:
            return MESSAGE_NO_DATA
        filters = self.period.label
        if self.project and self.project.strip():
            filters = f"{filters}, project '{self.project.strip()}'"
        return MESSAGE_NO_MILESTONES.format(filters=filters)


@dataclass(frozen=True)
class RefreshResult:
    pass_id: int
    epics: EpicReport
    milestones: MilestoneReport


def run_pass(inputs: SnapshotInputs,
             selection: Optional[ReportSelection] = None,
             link_context: Optional[LinkContext] = None,
             pass_id: int = 0,
             today: Optional[date] = None) -> RefreshResult:
    """
    Compute every output for one snapshot. Pure: inputs are not modified.

    Without a link_context the link columns are left absent.
    """
    selection = selection or ReportSelection()

    rollups = compute_feature_rollups(inputs.features)
    epics = enrich_epics(inputs.epics, rollups=rollups, link_context=link_context)
    epics = classify_epic_schedule(epics)

    period = resolve_reporting_period(selection.fiscal_year, selection.quarter, today=today)
    milestone_rows = build_milestone_report(
        inputs.milestones,
        period,
        project=selection.project,
        link_context=link_context,
    )

    logger.info(
        "Pass %s: %d epics enriched, %d milestones reported for %s",
        pass_id, len(epics), len(milestone_rows), period.label,
    )

    return RefreshResult(
        pass_id=pass_id,
        epics=EpicReport(
            rows=epics,
            rollups=rollups,
            feature_count_in=len(inputs.features),
            epic_count_in=len(inputs.epics),
        ),
        milestones=MilestoneReport(
            rows=milestone_rows,
            period=period,
            project=selection.project,
            input_count=len(inputs.milestones),
        ),
    )


@dataclass
class ReportCache:
    """
    Published results keyed by pass id.

    Last pass wins: only a pass id greater than the latest published one is
    accepted; stale or repeated ids are rejected. The latest result is always
    retained, even with keep=0.
    """
    results: Dict[int, RefreshResult] = field(default_factory=dict)
    latest_pass_id: Optional[int] = None
    keep: int = 3

    def publish(self, result: RefreshResult) -> bool:
        if self.latest_pass_id is not None and result.pass_id <= self.latest_pass_id:
            logger.warning(
                "Rejected result for pass %s; pass %s already published",
                result.pass_id, self.latest_pass_id,
            )
            return False

        self.results[result.pass_id] = result
        self.latest_pass_id = result.pass_id

        stale_count = max(len(self.results) - max(self.keep, 1), 0)
        for old_id in sorted(self.results)[:stale_count]:
            del self.results[old_id]
        return True

    def latest(self) -> Optional[RefreshResult]:
        if self.latest_pass_id is None:
            return None
        return self.results.get(self.latest_pass_id)

    def get(self, pass_id: int) -> Optional[RefreshResult]:
        return self.results.get(pass_id)


def run_refresh(fetch_inputs: Callable[[], SnapshotInputs],
                cache: ReportCache,
                pass_id: int,
                selection: Optional[ReportSelection] = None,
                link_context: Optional[LinkContext] = None,
                today: Optional[date] = None) -> Optional[RefreshResult]:
    """
    Fetch, compute and publish one pass.

    If fetching or computing fails, nothing is published and the previously
    published result (or None) is returned.
    """
    try:
        inputs = fetch_inputs()
        result = run_pass(inputs, selection, link_context, pass_id=pass_id, today=today)
    except Exception:
        logger.exception("Refresh pass %s failed; keeping previous result", pass_id)
        return cache.latest()

    if not cache.publish(result):
        return cache.latest()
    return result
