#!/usr/bin/env python
"""
Build the epic rollup and milestone schedule report from snapshot files.

Usage:
    python scripts/build_report.py
    python scripts/build_report.py --fiscal-year FY2025 --quarter Q3
    python scripts/build_report.py --data-dir /path/to/data --project Apollo --output report.xlsx
"""
import argparse
import logging
import sys
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import config, LinkContext
from src.data.loader import load_snapshot_inputs
from src.exports import export_report_workbook
from src.pipeline import ReportCache, ReportSelection, run_refresh


def main():
    parser = argparse.ArgumentParser(description="Build schedule rollup report")
    parser.add_argument("--data-dir", type=str, default=None, help="Override data directory")
    parser.add_argument("--fiscal-year", type=str, default=None, help="Fiscal year, e.g. FY2025 (default: current)")
    parser.add_argument("--quarter", type=str, default=None, help="Q1..Q4 or 'all' (default: current)")
    parser.add_argument("--project", type=str, default=None, help="Free-text project filter")
    parser.add_argument("--output", type=str, default=None, help="Workbook path (default: <data-dir>/reports/)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    data_dir = Path(args.data_dir) if args.data_dir else config.data_dir

    print("Building schedule report...")
    print(f"  Source: {data_dir / 'snapshots'}")
    print()

    cache = ReportCache()
    result = run_refresh(
        lambda: load_snapshot_inputs(data_dir),
        cache,
        pass_id=1,
        selection=ReportSelection(args.fiscal_year, args.quarter, args.project),
        link_context=LinkContext.from_config(),
    )

    if result is None:
        print("ERROR: refresh failed; no report produced (run with --verbose for details)")
        sys.exit(1)

    milestones = result.milestones
    print(f"Epics: {len(result.epics.rows):,} enriched from {result.epics.feature_count_in:,} features")
    print(f"Milestones ({milestones.period.label}, "
          f"{milestones.period.start:%d %b %Y} - {milestones.period.end:%d %b %Y}):")
    for name, count in milestones.summary.items():
        print(f"  {name}: {count:,}")

    message = milestones.empty_state_message()
    if message:
        print()
        print(message)

    excel_bytes, filename = export_report_workbook(result)
    reports_dir = data_dir / "reports" if args.data_dir else config.reports_dir
    output = Path(args.output) if args.output else reports_dir / filename
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(excel_bytes)

    print()
    print(f"✓ Report written to {output}")


if __name__ == "__main__":
    main()
