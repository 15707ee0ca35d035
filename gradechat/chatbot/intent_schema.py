# chatbot/intent_schema.py

from __future__ import annotations
from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, List, Optional, Tuple, TypedDict


class GradeRow(TypedDict, total=False):
    """
    One section's grade distribution as stored in the warehouse.

    Counts are per-bucket headcounts; `avg_gpa` may be missing for
    sections that only report pass/fail style grades.
    """

    term: str            # e.g. "SP25" (may carry extra text, e.g. "2025 SP25")
    subject: str         # e.g. "CSCI"
    nbr: str             # e.g. "212"
    course_name: str
    section: str
    prof: str            # canonical "LASTNAME, F"
    total: int
    a_plus: int
    a: int
    a_minus: int
    b_plus: int
    b: int
    b_minus: int
    c_plus: int
    c: int
    c_minus: int
    d: int
    f: int
    w: int
    inc_na: int
    avg_gpa: Optional[float]


# (column, label) in the order every dump and prompt lists them
GRADE_BUCKETS: List[Tuple[str, str]] = [
    ("a_plus", "A+"),
    ("a", "A"),
    ("a_minus", "A-"),
    ("b_plus", "B+"),
    ("b", "B"),
    ("b_minus", "B-"),
    ("c_plus", "C+"),
    ("c", "C"),
    ("c_minus", "C-"),
    ("d", "D"),
    ("f", "F"),
    ("w", "W"),
]

GRADE_COLUMNS: List[str] = [
    "term", "subject", "nbr", "course_name", "section", "prof", "total",
    *[col for col, _ in GRADE_BUCKETS],
    "inc_na", "avg_gpa",
]


@dataclass(frozen=True)
class CourseRef:
    number: str                      # always present, 3-4 digits
    subject: Optional[str] = None    # None = "any subject", resolve from context

    def label(self) -> str:
        return f"{self.subject} {self.number}" if self.subject else self.number


@dataclass(frozen=True)
class FuzzyMatch:
    name: str
    similarity: float


@dataclass(frozen=True)
class Extraction:
    """Result of one extraction pass over one message."""

    professor_name: Optional[str] = None
    course_info: Optional[CourseRef] = None
    is_follow_up: bool = False
    # True when the professor came from a possessive ("chyn's"); course
    # extraction is skipped in that case.
    possessive: bool = False


@dataclass
class ConversationContext:
    last_professor: Optional[str] = None
    last_course: Optional[CourseRef] = None
    last_semester: Optional[str] = None

    def copy(self) -> "ConversationContext":
        return replace(self)


@dataclass(frozen=True)
class ResolvedQuery:
    professor: str
    course: Optional[CourseRef] = None
    semester: Optional[str] = None


@dataclass
class ChatResponse:
    response: str
    grade_data: Optional[List[GradeRow]] = None
    ambiguous: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
