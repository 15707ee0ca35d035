# chatbot/context.py

"""
Per-session conversational context.

Each chat session remembers the last professor, course and semester it
resolved, so a follow-up like "just the numbers" can reuse them. Context is
read at the start of a turn and written back only after the turn has produced
a response; a failed or abandoned turn leaves it untouched.

Two requests for the same session racing each other is last-write-wins.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional

from .intent_schema import ConversationContext, CourseRef, Extraction, ResolvedQuery

log = logging.getLogger("chatbot.context")


class NoEntityFound(Exception):
    """No professor in the message and nothing to fall back on."""


class AmbiguousFollowUp(Exception):
    """A follow-up was asked before any professor was discussed."""


class ContextStore:
    """Session-keyed storage for ConversationContext."""

    def get_context(self, session_id: str) -> ConversationContext:
        raise NotImplementedError

    def save_context(self, session_id: str, context: ConversationContext) -> None:
        raise NotImplementedError


class InMemoryContextStore(ContextStore):
    def __init__(self) -> None:
        self._contexts: Dict[str, ConversationContext] = {}
        self._lock = threading.Lock()

    def get_context(self, session_id: str) -> ConversationContext:
        with self._lock:
            ctx = self._contexts.get(session_id)
            return ctx.copy() if ctx else ConversationContext()

    def save_context(self, session_id: str, context: ConversationContext) -> None:
        with self._lock:
            self._contexts[session_id] = context.copy()

    def reset(self, session_id: str) -> None:
        with self._lock:
            self._contexts.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._contexts)


def _fill_course(named: Optional[CourseRef], remembered: Optional[CourseRef]) -> Optional[CourseRef]:
    # "212" after "CSCI 212" keeps the remembered subject
    if named is None:
        return remembered
    if named.subject is None and remembered and remembered.number == named.number:
        return remembered
    return named


def resolve(
    extraction: Extraction,
    context: ConversationContext,
    semester: Optional[str] = None,
) -> ResolvedQuery:
    """
    Decide which professor/course/semester this turn is about.

    A professor named in the message always wins. Otherwise the remembered
    professor is used for follow-ups, and for messages that only change the
    course or semester ("what about csci 212?"). Remembered course and
    semester are only reused when the professor is.
    """
    if extraction.professor_name:
        return ResolvedQuery(
            professor=extraction.professor_name,
            course=extraction.course_info,
            semester=semester,
        )

    refines = extraction.course_info is not None or semester is not None
    if not (extraction.is_follow_up or refines):
        raise NoEntityFound()

    if not context.last_professor:
        if extraction.is_follow_up:
            raise AmbiguousFollowUp()
        raise NoEntityFound()

    log.info("using session context: professor %s", context.last_professor)
    return ResolvedQuery(
        professor=context.last_professor,
        course=_fill_course(extraction.course_info, context.last_course),
        semester=semester or context.last_semester,
    )


def commit(resolved: ResolvedQuery) -> ConversationContext:
    """Context to store once a turn about `resolved` has completed."""
    return ConversationContext(
        last_professor=resolved.professor,
        last_course=resolved.course,
        last_semester=resolved.semester,
    )
