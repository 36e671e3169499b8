"""
Tests for schema validation and record normalisation.
"""
import pytest
import pandas as pd
import numpy as np
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.data.schema import (
    validate_required_columns,
    check_optional_columns,
    validate_schema,
    SchemaValidationError,
    normalise_id_value,
    coerce_flag_value,
    records_to_frame,
    normalise_milestones,
    normalise_features,
)


class TestValidateRequiredColumns:
    """Tests for required column validation."""

    def test_all_columns_present(self):
        """All required columns present should return valid."""
        df = pd.DataFrame({
            "id": ["1"],
            "parent_id": ["10"],
            "state": ["Active"],
        })

        is_valid, missing = validate_required_columns(df, "features")

        assert is_valid is True
        assert missing == []

    def test_missing_columns(self):
        """Missing columns should be detected."""
        df = pd.DataFrame({"id": ["1"]})

        is_valid, missing = validate_required_columns(df, "milestones")

        assert is_valid is False
        assert "title" in missing
        assert "is_pmp_milestone" in missing

    def test_unknown_table(self):
        """Unknown table name should pass (no requirements)."""
        df = pd.DataFrame({"any_col": [1, 2, 3]})

        is_valid, missing = validate_required_columns(df, "unknown_table")

        assert is_valid is True
        assert missing == []


class TestValidateSchema:
    """Tests for full schema validation."""

    def test_strict_mode_raises(self):
        df = pd.DataFrame({"id": ["1"]})

        with pytest.raises(SchemaValidationError):
            validate_schema(df, "epics", strict=True)

    def test_non_strict_returns_result(self):
        df = pd.DataFrame({"id": ["1"]})

        result = validate_schema(df, "epics", strict=False)

        assert result["is_valid"] is False
        assert "area_path" in result["missing_required"]
        assert result["total_rows"] == 1
        assert result["total_columns"] == 1

    def test_missing_optional_listed(self):
        df = pd.DataFrame({"id": ["1"], "parent_id": ["2"], "state": ["New"]})

        missing = check_optional_columns(df, "features")

        assert missing == ["start_date", "end_date"]


class TestValueNormalisation:
    """Tests for id and flag coercion."""

    def test_integral_float_ids_lose_suffix(self):
        assert normalise_id_value(101.0) == "101"
        assert normalise_id_value(101) == "101"
        assert normalise_id_value(" 7 ") == "7"

    def test_blank_ids_are_absent(self):
        assert normalise_id_value(None) is None
        assert normalise_id_value(np.nan) is None
        assert normalise_id_value("") is None
        assert normalise_id_value("   ") is None

    @pytest.mark.parametrize("value", [True, 1, 1.0, "yes", "TRUE", " y ", "1"])
    def test_truthy_flags(self, value):
        assert coerce_flag_value(value) is True

    @pytest.mark.parametrize("value", [False, 0, None, np.nan, "no", "", "maybe", 2])
    def test_falsy_flags(self, value):
        assert coerce_flag_value(value) is False


class TestRecordFrames:
    """Tests for building frames from record sequences."""

    def test_missing_columns_added(self):
        df = records_to_frame([{"id": 1, "title": "M1", "is_pmp_milestone": True}], "milestones")

        assert "planned_start_date" in df.columns
        assert "closed_date" in df.columns
        assert df["planned_start_date"].isna().all()

    def test_none_gives_empty_frame_with_columns(self):
        df = records_to_frame(None, "features")

        assert len(df) == 0
        assert {"id", "parent_id", "state", "start_date", "end_date"} <= set(df.columns)

    def test_input_frame_not_mutated(self):
        source = pd.DataFrame({"id": [1], "parent_id": [2.0], "state": ["New"]})

        normalise_features(source)

        assert "start_date" not in source.columns
        assert source["parent_id"].iloc[0] == 2.0

    def test_normalise_milestones_types(self):
        df = normalise_milestones([
            {"id": 5.0, "title": "M", "is_pmp_milestone": "Yes",
             "planned_start_date": "2025-02-15", "target_end_date": "#N/A"},
        ])

        assert df["id"].iloc[0] == "5"
        assert df["is_pmp_milestone"].iloc[0] == True  # noqa: E712
        assert df["planned_start_date"].iloc[0] == pd.Timestamp("2025-02-15")
        assert pd.isna(df["target_end_date"].iloc[0])
