"""
Export utilities for enriched epic and milestone report tables.
"""
import pandas as pd
from typing import Optional
from datetime import datetime
from io import BytesIO

from src.pipeline import RefreshResult


def export_dataframe_csv(df: pd.DataFrame, filename: Optional[str] = None) -> tuple:
    """
    Export dataframe to CSV bytes.

    Returns: (csv_bytes, filename)
    """
    if filename is None:
        filename = f"export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"

    csv_bytes = df.to_csv(index=False, date_format="%Y-%m-%d").encode('utf-8')

    return csv_bytes, filename


def export_report_workbook(result: RefreshResult, filename: Optional[str] = None) -> tuple:
    """
    Export one refresh pass as a workbook with Epics, Milestones and Summary sheets.

    Returns: (excel_bytes, filename)
    """
    milestones = result.milestones
    if filename is None:
        label = milestones.period.label.replace(" ", "_")
        filename = f"schedule_report_{label}_pass{result.pass_id}.xlsx"

    summary_rows = [{"metric": "period", "value": milestones.period.label}]
    summary_rows.extend({"metric": k, "value": v} for k, v in milestones.summary.items())
    message = milestones.empty_state_message()
    if message:
        summary_rows.append({"metric": "message", "value": message})

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        result.epics.rows.to_excel(writer, sheet_name="Epics", index=False)
        milestones.rows.to_excel(writer, sheet_name="Milestones", index=False)
        pd.DataFrame(summary_rows).to_excel(writer, sheet_name="Summary", index=False)

    return buffer.getvalue(), filename
