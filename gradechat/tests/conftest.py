import pytest

from gradechat.chatbot.intent_schema import GRADE_COLUMNS
from gradechat.chatbot.semester import apply_filters
from gradechat.chatbot.intent_schema import CourseRef


def make_row(**overrides):
    row = {col: 0 for col in GRADE_COLUMNS}
    row.update(
        term="SP24", subject="CSCI", nbr="212", course_name="Object-Oriented Programming",
        section="01", prof="SMITH, J", avg_gpa=3.1,
    )
    row.update(overrides)
    return row


class FakeWarehouse:
    """In-memory stand-in for GradeWarehouse."""

    def __init__(self, rows, names=None):
        self.rows = list(rows)
        self.names = names if names is not None else sorted({r["prof"] for r in self.rows})
        self.calls = []

    def get_all_professor_names(self):
        return list(self.names)

    def query_by_professor(self, name):
        self.calls.append(("professor", name))
        return [r for r in self.rows if name.lower() in r["prof"].lower()]

    def query_by_professor_and_course(self, name, subject, number):
        self.calls.append(("course", name, subject, number))
        return apply_filters(self.query_by_professor(name), course=CourseRef(number=number, subject=subject))


@pytest.fixture()
def smith_rows():
    return [
        make_row(term="SP24", nbr="212", a_plus=3, a=10, a_minus=4, b_plus=5, b=6, b_minus=2,
                 c_plus=1, c=2, c_minus=0, d=1, f=1, w=2, total=37, avg_gpa=3.1),
        make_row(term="FA24", nbr="111", course_name="Introduction to Algorithmic Problem-Solving",
                 section="02", a_plus=1, a=7, a_minus=3, b_plus=2, b=8, b_minus=3,
                 c_plus=2, c=4, c_minus=1, d=2, f=3, w=4, total=40, avg_gpa=2.75),
    ]


@pytest.fixture()
def warehouse(smith_rows):
    johnson = make_row(prof="JOHNSON, A", subject="MATH", nbr="151", course_name="Calculus I", term="SP24")
    return FakeWarehouse(smith_rows + [johnson], names=["SMITH, J", "JOHNSON, A"])
