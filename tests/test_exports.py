import pandas as pd
import sys
from datetime import date
from io import BytesIO
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import LinkContext
from src.data.loader import SnapshotInputs
from src.exports import export_dataframe_csv, export_report_workbook
from src.pipeline import ReportSelection, run_pass


def test_csv_export_dates_as_calendar_dates():
    df = pd.DataFrame({"id": ["1"], "sort_date": pd.to_datetime(["2025-03-15"])})

    csv_bytes, filename = export_dataframe_csv(df, "milestones.csv")

    assert filename == "milestones.csv"
    assert "2025-03-15" in csv_bytes.decode("utf-8")


def test_report_workbook_sheets():
    inputs = SnapshotInputs(
        epics=pd.DataFrame([{"id": "1", "title": "Platform", "area_path": "Core"}]),
        milestones=pd.DataFrame([{"id": "9", "title": "Beta", "is_pmp_milestone": True,
                                  "planned_start_date": "2025-01-10", "target_end_date": "2025-02-10"}]),
    )
    result = run_pass(inputs, ReportSelection("FY2025", "Q3"),
                      LinkContext("contoso", "pmo"), pass_id=3, today=date(2025, 2, 1))

    excel_bytes, filename = export_report_workbook(result)
    sheets = pd.read_excel(BytesIO(excel_bytes), sheet_name=None)

    assert filename == "schedule_report_FY2025_Q3_pass3.xlsx"
    assert set(sheets) == {"Epics", "Milestones", "Summary"}
    assert sheets["Milestones"]["status"].tolist() == ["Scheduled"]


def test_only_report_exports_are_public():
    import src.exports as exports
    import src.data.schema as schema

    public = sorted(name for name in vars(exports) if name.startswith("export_"))
    assert public == ["export_dataframe_csv", "export_report_workbook"]
    assert not hasattr(schema, "get_column_info")
