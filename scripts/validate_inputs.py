#!/usr/bin/env python
"""
Validate work-item snapshot files against schema requirements.

Usage:
    python scripts/validate_inputs.py
    python scripts/validate_inputs.py --data-dir /path/to/data
"""
import argparse
import sys
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd
from src.config import config, TABLE_FILES, DATE_COLUMNS
from src.data.dates import coerce_date_column
from src.data.schema import validate_schema


def validate_file(filepath: Path, table_name: str) -> dict:
    """Validate a single snapshot file."""
    result = {
        "exists": False,
        "format": None,
        "rows": 0,
        "columns": 0,
        "valid": False,
        "missing_required": [],
        "missing_optional": [],
        "unreadable_dates": {},
        "errors": []
    }

    parquet_path = filepath.with_suffix(".parquet")
    csv_path = filepath.with_suffix(".csv")

    if parquet_path.exists():
        result["exists"] = True
        result["format"] = "parquet"
        load_path = parquet_path
    elif csv_path.exists():
        result["exists"] = True
        result["format"] = "csv"
        load_path = csv_path
    else:
        result["errors"].append(f"File not found: {filepath}.(parquet|csv)")
        return result

    try:
        if result["format"] == "parquet":
            df = pd.read_parquet(load_path)
        else:
            df = pd.read_csv(load_path)

        result["rows"] = len(df)
        result["columns"] = len(df.columns)
    except Exception as e:
        result["errors"].append(f"Failed to load: {e}")
        return result

    schema_result = validate_schema(df, table_name, strict=False)
    result["valid"] = schema_result["is_valid"]
    result["missing_required"] = schema_result["missing_required"]
    result["missing_optional"] = schema_result["missing_optional"]

    # Dates that will be treated as absent
    for col in DATE_COLUMNS.get(table_name, []):
        if col not in df.columns:
            continue
        raw_present = df[col].notna() & df[col].astype(str).str.strip().ne("")
        unreadable = int((raw_present & coerce_date_column(df, col).isna()).sum())
        if unreadable:
            result["unreadable_dates"][col] = unreadable

    return result


def main():
    parser = argparse.ArgumentParser(description="Validate work-item snapshot files")
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Override data directory"
    )

    args = parser.parse_args()

    data_dir = Path(args.data_dir) if args.data_dir else config.data_dir
    snapshots_dir = data_dir / "snapshots"

    print("=" * 60)
    print("Snapshot Validation")
    print("=" * 60)
    print(f"Source directory: {snapshots_dir}")
    print()

    all_valid = True

    for table_key, filename in TABLE_FILES.items():
        print(f"Validating: {table_key}")
        print("-" * 40)

        result = validate_file(snapshots_dir / filename, table_key)

        if result["exists"]:
            print(f"  ✓ Found: {filename}.{result['format']}")
            print(f"    Rows: {result['rows']:,}")
            print(f"    Columns: {result['columns']}")

            if result["valid"]:
                print(f"  ✓ Schema valid")
            else:
                print(f"  ✗ Schema invalid")
                print(f"    Missing required: {result['missing_required']}")
                all_valid = False

            if result["missing_optional"]:
                print(f"  ⚠ Missing optional: {result['missing_optional']}")
            for col, count in result["unreadable_dates"].items():
                print(f"  ⚠ {col}: {count:,} value(s) not readable as dates (treated as blank)")
        else:
            print(f"  ✗ Not found: {filename}")
            all_valid = False

        if result["errors"]:
            for err in result["errors"]:
                print(f"  ✗ Error: {err}")
            all_valid = False

        print()

    print("=" * 60)
    if all_valid:
        print("✓ All validations passed")
        sys.exit(0)
    else:
        print("✗ Validation failed - see errors above")
        sys.exit(1)


if __name__ == "__main__":
    main()
