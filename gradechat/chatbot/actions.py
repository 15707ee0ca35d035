from typing import Dict, List, Optional
from pathlib import Path
import logging
import re

import duckdb

from . import settings
from .intent_schema import CourseRef, GRADE_BUCKETS, GradeRow
from .semester import apply_filters

log = logging.getLogger("chatbot.actions")

WAREHOUSE_DEFAULT = settings.WAREHOUSE_PATH

TEXT_COLUMNS = ["term", "subject", "nbr", "course_name", "section", "prof"]
COUNT_COLUMNS = ["total", *[col for col, _ in GRADE_BUCKETS], "inc_na"]


class WarehouseMissing(Exception):
    pass


def _escape_single_quotes(s: str) -> str:
    return s.replace("'", "''")


def _source(warehouse: Path) -> str:
    path = _escape_single_quotes(warehouse.as_posix())
    if warehouse.suffix.lower() == ".csv":
        return f"read_csv_auto('{path}', header = TRUE)"
    return f"read_parquet('{path}')"


def _select_list() -> str:
    """
    Normalize types so CSV and Parquet warehouses look the same:
    text columns trimmed strings, counts non-null ints, GPA a nullable double.
    """
    cols = [f"TRIM(CAST({c} AS VARCHAR)) AS {c}" for c in TEXT_COLUMNS]
    cols += [f"COALESCE(TRY_CAST({c} AS INTEGER), 0) AS {c}" for c in COUNT_COLUMNS]
    cols.append("TRY_CAST(avg_gpa AS DOUBLE) AS avg_gpa")
    return ",\n            ".join(cols)


class GradeWarehouse:
    """
    Read-only access to the grade table (one row per section).

    Every call opens its own in-memory DuckDB connection over the file, so
    instances are safe to share between requests.
    """

    def __init__(self, warehouse: Optional[Path] = None):
        self.warehouse = Path(warehouse or WAREHOUSE_DEFAULT)

    def exists(self) -> bool:
        return self.warehouse.exists()

    def require(self) -> None:
        if not self.exists():
            raise WarehouseMissing(f"Warehouse not found at {self.warehouse}")

    def _query(self, where: str = "", params: Optional[List] = None, order: str = "") -> List[Dict]:
        if not self.exists():
            log.warning("Warehouse not found at %s", self.warehouse)
            return []

        sql = f"""
            SELECT
            {_select_list()}
            FROM {_source(self.warehouse)}
            {where}
            {order}
        """
        con = duckdb.connect()
        try:
            cur = con.execute(sql, params or [])
            names = [d[0] for d in cur.description]
            return [dict(zip(names, row)) for row in cur.fetchall()]
        finally:
            con.close()

    def get_all_professor_names(self) -> List[str]:
        rows = self._query(where="WHERE prof IS NOT NULL AND TRIM(CAST(prof AS VARCHAR)) <> ''")
        names = sorted({r["prof"] for r in rows})
        log.info("Loaded %d professor names", len(names))
        return names

    def search_professor(self, fragment: str) -> List[GradeRow]:
        """Rows whose professor contains `fragment` (case-insensitive)."""
        return self._query(
            where="WHERE CAST(prof AS VARCHAR) ILIKE ?",
            params=[f"%{fragment.strip()}%"],
            order="ORDER BY term DESC, subject, nbr, section",
        )

    def query_by_professor(self, name: str) -> List[GradeRow]:
        """
        Tolerant professor lookup, tried in order:
        1. the name as given ("SMITH, J", "smith")
        2. surname only, kept where prof and query agree
        3. "LAST, F" built from a "last first" style query
        """
        grades = self.search_professor(name)
        log.info("lookup %r: %d rows", name, len(grades))
        if grades:
            return grades

        parts = [p for p in re.split(r"[,\s]+", name.strip()) if p]
        if not parts:
            return []

        last = parts[0]
        if last.lower() != name.strip().lower():
            wanted = name.strip().lower()
            grades = [
                g for g in self.search_professor(last)
                if g["prof"].lower() == wanted
                or wanted in g["prof"].lower()
                or g["prof"].lower().split(",")[0].strip() in wanted
            ]
            log.info("surname lookup %r: %d rows", last, len(grades))
            if grades:
                return grades

        if len(parts) >= 2:
            formatted = f"{last}, {parts[1][0]}"
            grades = self.search_professor(formatted)
            log.info("formatted lookup %r: %d rows", formatted, len(grades))
        return grades

    def query_by_professor_and_course(self, name: str, subject: Optional[str], number: str) -> List[GradeRow]:
        return apply_filters(self.query_by_professor(name), course=CourseRef(number=number, subject=subject))
