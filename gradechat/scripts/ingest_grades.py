# scripts/ingest_grades.py

"""
Build the grade warehouse from raw CSV exports.

- Reads every CSV in data/raw/ (or the directory given with --raw)
- Maps the many header spellings to one schema (term, subject, nbr, ...)
- Coerces grade buckets to ints (blank -> 0), GPA to float
- Writes data/warehouse/grades.parquet through DuckDB
"""

import argparse
import glob
import os
from pathlib import Path

import duckdb
import pandas as pd
from rich.console import Console

from gradechat.chatbot import settings
from gradechat.chatbot.intent_schema import GRADE_COLUMNS

console = Console()

RAW_DIR = settings.PROJECT_ROOT / "data" / "raw"

# header as found in the exports -> warehouse column
COLUMN_MAPPING = {
    "term": "term", "semester": "term",
    "subject": "subject", "dept": "subject", "department": "subject",
    "nbr": "nbr", "course_nbr": "nbr", "course nbr": "nbr", "course number": "nbr", "course_number": "nbr",
    "course name": "course_name", "course_name": "course_name", "title": "course_name",
    "section": "section", "sec": "section",
    "prof": "prof", "professor": "prof", "instructor": "prof",
    "total": "total", "enrollment": "total",
    "a+": "a_plus", "a_plus": "a_plus", "a plus": "a_plus",
    "a": "a",
    "a-": "a_minus", "a_minus": "a_minus", "a minus": "a_minus",
    "b+": "b_plus", "b_plus": "b_plus", "b plus": "b_plus",
    "b": "b",
    "b-": "b_minus", "b_minus": "b_minus", "b minus": "b_minus",
    "c+": "c_plus", "c_plus": "c_plus", "c plus": "c_plus",
    "c": "c",
    "c-": "c_minus", "c_minus": "c_minus", "c minus": "c_minus",
    "d": "d",
    "f": "f",
    "w": "w", "withdraw": "w",
    "inc/na": "inc_na", "inc_na": "inc_na", "inc": "inc_na", "na": "inc_na", "incomplete": "inc_na",
    "avg gpa": "avg_gpa", "avg_gpa": "avg_gpa", "average gpa": "avg_gpa", "gpa": "avg_gpa",
}

TEXT_COLUMNS = ["term", "subject", "nbr", "course_name", "section", "prof"]


def normalize_frame(df: pd.DataFrame) -> pd.DataFrame:
    renamed = {c: COLUMN_MAPPING.get(str(c).strip().lower()) for c in df.columns}
    df = df.rename(columns={k: v for k, v in renamed.items() if v})
    df = df.loc[:, ~df.columns.duplicated()].copy()

    for col in GRADE_COLUMNS:
        if col not in df.columns:
            df[col] = None

    for col in TEXT_COLUMNS:
        df[col] = df[col].fillna("").astype(str).str.strip()
    df["subject"] = df["subject"].str.upper()
    df["prof"] = df["prof"].str.upper()
    # "212.0" from numeric CSV columns -> "212"
    df["nbr"] = df["nbr"].str.replace(r"\.0$", "", regex=True)

    for col in GRADE_COLUMNS:
        if col in TEXT_COLUMNS or col == "avg_gpa":
            continue
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0).astype(int)
    df["avg_gpa"] = pd.to_numeric(df["avg_gpa"], errors="coerce")

    # rows without a professor or course number cannot be queried
    df = df[(df["prof"] != "") & (df["nbr"] != "")]
    return df[GRADE_COLUMNS]


def load_raw(raw_dir: Path) -> pd.DataFrame:
    files = sorted(glob.glob(str(raw_dir / "*.csv")))
    if not files:
        return pd.DataFrame(columns=GRADE_COLUMNS)
    frames = []
    for path in files:
        df = pd.read_csv(path, dtype=str)
        frames.append(normalize_frame(df))
        console.print(f"✅ {os.path.basename(path)}: {len(frames[-1])} rows")
    return pd.concat(frames, ignore_index=True)


def write_warehouse(df: pd.DataFrame, out: Path) -> int:
    os.makedirs(out.parent, exist_ok=True)
    con = duckdb.connect()
    try:
        con.register("grades_clean", df)
        con.execute(f"COPY (SELECT * FROM grades_clean) TO '{out.as_posix()}' (FORMAT 'parquet')")
        n = con.execute("SELECT COUNT(*) FROM grades_clean").fetchone()[0]
    finally:
        con.close()
    return n


def main(argv=None):
    ap = argparse.ArgumentParser(description="Build the grade warehouse from raw CSVs")
    ap.add_argument("--raw", type=Path, default=RAW_DIR)
    ap.add_argument("--out", type=Path, default=settings.WAREHOUSE_PATH)
    args = ap.parse_args(argv)

    df = load_raw(args.raw)
    if df.empty:
        console.print(f"[yellow]⚠️ No rows found in {args.raw}/*.csv[/yellow]")
        return 1

    n = write_warehouse(df, args.out)
    console.print(f"\n✅ Warehouse rebuilt: {args.out} ({n} rows, {df['prof'].nunique()} professors)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
