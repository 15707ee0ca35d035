# chatbot/responder.py

"""
Turns resolved rows into the chat reply.

Three outcomes:
- no rows        -> "nothing found" with what was searched and what to try
- numbers only   -> fixed-format per-section bucket dump (no LLM)
- otherwise      -> LLM narrative, falling back to the dump if the LLM fails
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from .intent_schema import ChatResponse, GRADE_BUCKETS, GradeRow, ResolvedQuery
from .narrative import build_prompt

log = logging.getLogger("chatbot.responder")

Narrator = Callable[[str], str]

FALLBACK_NOTE = "(The AI summary is unavailable right now, so here are the raw grade counts.)"


def _format_gpa(value) -> str:
    if value is None or value == "":
        return "N/A"
    try:
        return f"{float(value):.2f}"
    except (TypeError, ValueError):
        return str(value)


def _count(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def describe_query(resolved: ResolvedQuery) -> str:
    parts = [f"Professor {resolved.professor}"]
    if resolved.course:
        parts.append(f"in {resolved.course.label()}")
    if resolved.semester:
        parts.append(f"for {resolved.semester}")
    return " ".join(parts)


def format_numbers(resolved: ResolvedQuery, rows: Sequence[GradeRow]) -> str:
    """Deterministic bucket-by-bucket breakdown, one block per row."""
    blocks: List[str] = [f"Grade distribution for {describe_query(resolved)}:"]
    for row in rows:
        lines = [f"{row.get('subject', '')} {row.get('nbr', '')} {row.get('course_name', '')} ({row.get('term', '')}):".strip()]
        lines.extend(f"- {label}: {_count(row.get(col))}" for col, label in GRADE_BUCKETS)
        lines.append(f"- Avg GPA: {_format_gpa(row.get('avg_gpa'))}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def not_found(resolved: ResolvedQuery, suggestions: Sequence[str] = ()) -> ChatResponse:
    lines = [f"No grade distribution data found for {describe_query(resolved)}."]
    lines.append("You could:")
    lines.append("- check the spelling of the professor's name (e.g. 'Smith' or 'Smith, J')")
    if resolved.semester:
        lines.append("- try a different semester, or leave the semester out")
    if resolved.course:
        lines.append("- leave out the course to see everything they have taught")
    others = [s for s in suggestions if s != resolved.professor]
    if others:
        lines.append("Did you mean: " + ", ".join(others) + "?")
    return ChatResponse(response="\n".join(lines), grade_data=None)


def assemble(
    resolved: ResolvedQuery,
    rows: Sequence[GradeRow],
    numbers_only: bool,
    narrator: Optional[Narrator] = None,
    suggestions: Sequence[str] = (),
) -> ChatResponse:
    if not rows:
        return not_found(resolved, suggestions)

    rows = list(rows)
    if numbers_only:
        return ChatResponse(response=format_numbers(resolved, rows), grade_data=rows)

    prompt = build_prompt(resolved.professor, rows, resolved.course, resolved.semester)
    if narrator is None:
        log.warning("no narrative generator configured, using the numbers dump")
    else:
        try:
            return ChatResponse(response=narrator(prompt), grade_data=rows)
        except Exception as e:
            log.warning("narrative generation failed, using the numbers dump: %s", e)

    text = FALLBACK_NOTE + "\n\n" + format_numbers(resolved, rows)
    return ChatResponse(response=text, grade_data=rows)
