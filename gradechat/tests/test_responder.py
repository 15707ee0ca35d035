from gradechat.chatbot.intent_schema import CourseRef, ResolvedQuery
from gradechat.chatbot.narrative import NarrativeUnavailable
from gradechat.chatbot.responder import FALLBACK_NOTE, assemble, format_numbers

SMITH = ResolvedQuery(professor="SMITH, J")


def test_no_rows_explains_what_was_searched():
    resolved = ResolvedQuery(professor="SMITH, J", course=CourseRef("212", "CSCI"), semester="SP25")
    reply = assemble(resolved, [], numbers_only=True, suggestions=["SMITH, J", "SMYTHE, K"])
    assert reply.grade_data is None
    assert "Professor SMITH, J in CSCI 212 for SP25" in reply.response
    assert "spelling" in reply.response
    assert "different semester" in reply.response
    assert "Did you mean: SMYTHE, K?" in reply.response


def test_numbers_only_is_deterministic_and_skips_llm(smith_rows):
    prompts = []
    reply = assemble(SMITH, smith_rows, numbers_only=True, narrator=prompts.append)
    assert prompts == []
    assert reply.grade_data == smith_rows
    text = reply.response
    assert "CSCI 212 Object-Oriented Programming (SP24):" in text
    assert "- A+: 3\n- A: 10\n- A-: 4" in text
    assert "- W: 4" in text
    assert "- Avg GPA: 3.10" in text
    assert "- Avg GPA: 2.75" in text
    assert text == format_numbers(SMITH, list(smith_rows))


def test_missing_counts_and_gpa(smith_rows):
    row = dict(smith_rows[0], a_plus=None, avg_gpa=None)
    text = format_numbers(SMITH, [row])
    assert "- A+: 0" in text
    assert "- Avg GPA: N/A" in text


def test_narrative_path(smith_rows):
    prompts = []

    def narrator(prompt):
        prompts.append(prompt)
        return "Smith grades fairly."

    reply = assemble(SMITH, smith_rows, numbers_only=False, narrator=narrator)
    assert reply.response == "Smith grades fairly."
    assert reply.grade_data == smith_rows
    assert "Professor: SMITH, J" in prompts[0]
    assert "A+=3" in prompts[0]


def test_narrative_failure_falls_back(smith_rows):
    def broken(prompt):
        raise NarrativeUnavailable("quota")

    reply = assemble(SMITH, smith_rows, numbers_only=False, narrator=broken)
    assert reply.response.startswith(FALLBACK_NOTE)
    assert "- A+: 3" in reply.response
    assert reply.ambiguous is False


def test_no_narrator_falls_back(smith_rows):
    reply = assemble(SMITH, smith_rows, numbers_only=False, narrator=None)
    assert reply.response.startswith(FALLBACK_NOTE)
