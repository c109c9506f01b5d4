"""
Migrate a study plan workbook → data/ directory of CSV files.

Only the sheets the plan loader reads (courses, prerequisites) are written.

Usage:
    python scripts/migrate_xlsx_to_csv.py --src plan.xlsx [--out DIR]

Defaults:
    --out  data/  (repo root)
"""

import argparse
import os
import sys

import pandas as pd

PLAN_SHEETS = ("courses", "prerequisites")


def migrate(src: str, out_dir: str) -> list[str]:
    """Write each plan sheet of `src` as <sheet>.csv in out_dir. Returns written paths."""
    if not os.path.isfile(src):
        print(f"[FATAL] Source file not found: {src}")
        sys.exit(1)

    xl = pd.ExcelFile(src)
    sheets = [s for s in xl.sheet_names if s in PLAN_SHEETS]
    if "courses" not in sheets:
        print(f"[FATAL] '{src}' has no 'courses' sheet (found: {xl.sheet_names})")
        sys.exit(1)
    skipped = [s for s in xl.sheet_names if s not in PLAN_SHEETS]
    if skipped:
        print(f"[INFO] Skipping non-plan sheets: {skipped}")

    os.makedirs(out_dir, exist_ok=True)

    written = []
    for sheet in sheets:
        df = xl.parse(sheet)
        dest = os.path.join(out_dir, f"{sheet}.csv")
        df.to_csv(dest, index=False)
        written.append(dest)
        print(f"[OK]   {sheet} → {dest}  ({len(df)} rows)")

    print(f"[INFO] Migration complete. {len(written)} CSVs written to '{out_dir}'")
    return written


if __name__ == "__main__":
    repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    parser = argparse.ArgumentParser(description="Migrate a plan workbook to a CSV directory.")
    parser.add_argument("--src", required=True, help="Source xlsx file")
    parser.add_argument(
        "--out",
        default=os.path.join(repo_root, "data"),
        help="Output directory for CSV files",
    )
    args = parser.parse_args()
    migrate(args.src, args.out)
