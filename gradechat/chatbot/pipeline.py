# chatbot/pipeline.py

"""
One chat turn, start to finish:

    extract -> resolve context -> query rows -> filter -> assemble -> commit

Only storage errors escape `ChatService.handle`; everything else (nothing
recognised, an unanswerable follow-up, no rows, LLM down) becomes a normal
ChatResponse.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol

from .context import AmbiguousFollowUp, ContextStore, InMemoryContextStore, NoEntityFound, commit, resolve
from .entities import EntityExtractor, is_numbers_only
from .intent_schema import ChatResponse, GradeRow, ResolvedQuery
from .responder import Narrator, assemble
from .semester import apply_filters, normalize_semester

log = logging.getLogger("chatbot.pipeline")

USAGE_HINT = (
    "Ask me about a specific professor, e.g. 'What's the grade distribution for "
    "Professor Smith?' or 'Tell me about Professor Johnson in CSCI 212'."
)
NO_ENTITY = (
    "I couldn't identify a professor name in your message. " + USAGE_HINT
)
AMBIGUOUS = (
    "I'm not sure which professor you're asking about. "
    "Could you please specify the professor name?"
)


class CatalogSource(Protocol):
    def get_all_professor_names(self) -> List[str]: ...


class GradeSource(Protocol):
    def query_by_professor(self, name: str) -> List[GradeRow]: ...

    def query_by_professor_and_course(self, name: str, subject: Optional[str], number: str) -> List[GradeRow]: ...


class ChatService:
    def __init__(
        self,
        catalog_source: CatalogSource,
        grade_source: GradeSource,
        narrator: Optional[Narrator] = None,
        store: Optional[ContextStore] = None,
        extractor: Optional[EntityExtractor] = None,
    ):
        self.catalog_source = catalog_source
        self.grade_source = grade_source
        self.narrator = narrator
        self.store = store or InMemoryContextStore()
        self.extractor = extractor or EntityExtractor()
        self._catalog: Optional[List[str]] = None

    @property
    def catalog(self) -> List[str]:
        if self._catalog is None:
            self._catalog = list(self.catalog_source.get_all_professor_names())
        return self._catalog

    def refresh_catalog(self) -> None:
        self._catalog = None
        self.extractor.matcher.clear_cache()

    def _query(self, resolved: ResolvedQuery) -> List[GradeRow]:
        course = resolved.course
        if course and course.subject:
            rows = self.grade_source.query_by_professor_and_course(resolved.professor, course.subject, course.number)
        else:
            rows = self.grade_source.query_by_professor(resolved.professor)
        log.info("%d rows for %s", len(rows), resolved.professor)
        return apply_filters(rows, semester=resolved.semester, course=course)

    def _suggestions(self, name: str) -> List[str]:
        return [s["suggestion"] for s in self.extractor.matcher.suggest_corrections(name, self.catalog)]

    def handle(self, message: str, session_id: str) -> ChatResponse:
        text = (message or "").strip()
        if not text:
            return ChatResponse(response="Please ask me something. " + USAGE_HINT)

        context = self.store.get_context(session_id)
        extraction = self.extractor.extract(text, self.catalog)
        log.info("extracted %s", extraction)

        try:
            resolved = resolve(extraction, context, semester=normalize_semester(text))
        except AmbiguousFollowUp:
            return ChatResponse(response=AMBIGUOUS, ambiguous=True)
        except NoEntityFound:
            return ChatResponse(response=NO_ENTITY, ambiguous=True)

        rows = self._query(resolved)
        suggestions = self._suggestions(resolved.professor) if not rows else []
        reply = assemble(resolved, rows, is_numbers_only(text, extraction), self.narrator, suggestions)

        self.store.save_context(session_id, commit(resolved))
        return reply


def build_default_service(narrator: Optional[Callable[[str], str]] = None) -> ChatService:
    """Service wired to the configured warehouse and OpenAI narrative."""
    from . import settings
    from .actions import GradeWarehouse
    from .narrative import NarrativeGenerator

    warehouse = GradeWarehouse()
    extractor = EntityExtractor(
        professor_threshold=settings.PROFESSOR_MATCH_THRESHOLD,
        single_token_threshold=settings.SINGLE_TOKEN_MATCH_THRESHOLD,
    )
    return ChatService(
        catalog_source=warehouse,
        grade_source=warehouse,
        narrator=narrator or NarrativeGenerator().generate,
        extractor=extractor,
    )
