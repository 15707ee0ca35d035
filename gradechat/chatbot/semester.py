# chatbot/semester.py

import logging
import re
from typing import Iterable, List, Optional

from .intent_schema import CourseRef, GradeRow

log = logging.getLogger("chatbot.semester")

# Longer words first so "summer" is not read as "su" + "mmer".
SEMESTER_WORD_PATTERN = r"(?:spring|fall|summer|sp|fa|su)"

SEMESTER_PATTERN = re.compile(r"\b(spring|fall|summer|sp|fa|su)\s*(\d{1,4})(?!\d)", re.IGNORECASE)

SEASON_CODES = {
    "spring": "SP",
    "sp": "SP",
    "fall": "FA",
    "fa": "FA",
    "summer": "SU",
    "su": "SU",
}


def normalize_semester(text: str) -> Optional[str]:
    """
    'Spring 25' -> 'SP25', 'fa24' -> 'FA24', anything else -> None.

    Year digits are kept verbatim; the code is used as a substring filter on
    the stored term, so it must follow the storage's own year convention.
    """
    if not text:
        return None
    m = SEMESTER_PATTERN.search(text)
    if not m:
        return None
    code = SEASON_CODES[m.group(1).lower()] + m.group(2)
    log.debug("semester %r -> %s", m.group(0), code)
    return code


def _matches_course(row: GradeRow, course: CourseRef) -> bool:
    if str(row.get("nbr") or "").strip() != course.number:
        return False
    if course.subject is None:
        return True
    return str(row.get("subject") or "").strip().upper() == course.subject.upper()


def apply_filters(
    rows: Iterable[GradeRow],
    semester: Optional[str] = None,
    course: Optional[CourseRef] = None,
) -> List[GradeRow]:
    """Order-preserving semester/course filter over grade rows."""
    out = list(rows)
    if semester:
        wanted = semester.upper()
        out = [r for r in out if wanted in str(r.get("term") or "").upper()]
        log.info("semester %s: %d rows", semester, len(out))
    if course:
        out = [r for r in out if _matches_course(r, course)]
        log.info("course %s: %d rows", course.label(), len(out))
    return out
