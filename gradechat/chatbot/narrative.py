# chatbot/narrative.py

"""
LLM-backed narrative for grade distributions.

Goal: take the rows we already filtered for a professor (and maybe a course
or semester) and have the model phrase a short, student-facing summary:

    Professor: SMITH, J
    Course: CSCI 212 (Object-Oriented Programming)
    Grade Data: Object-Oriented Programming (SP24): A+=3, A=10, ...

The model never sees anything we did not put in the prompt, and it never
decides which professor or course the user meant; that is done by the
rule-based extractor before we get here.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Optional, Sequence, Tuple

from openai import OpenAI

from . import settings
from .intent_schema import CourseRef, GRADE_BUCKETS, GradeRow

log = logging.getLogger("chatbot.narrative")

MAX_CACHE_ENTRIES = 256


class NarrativeUnavailable(Exception):
    """The LLM is not configured or the call failed."""


# ---------------------------
# 1) System prompt
# ---------------------------

SYSTEM_PROMPT = """
You are a helpful assistant for college students looking at historical
grade distributions. Provide clear, informative and friendly answers about
professors and courses.

Only use the grade data given in the message. Never invent numbers,
courses or semesters that are not listed there.
""".strip()


# ---------------------------
# 2) Prompt builder
# ---------------------------


def format_row_inline(row: GradeRow) -> str:
    buckets = ", ".join(f"{label}={row.get(col) or 0}" for col, label in GRADE_BUCKETS)
    gpa = row.get("avg_gpa")
    return f"{row.get('course_name', '')} ({row.get('term', '')}): {buckets}, Avg GPA={gpa if gpa is not None else 'N/A'}"


def build_prompt(
    professor: str,
    rows: Sequence[GradeRow],
    course: Optional[CourseRef] = None,
    semester: Optional[str] = None,
) -> str:
    """
    Build the user message for the narrative call.
    Rows are embedded verbatim so the answer can be checked against them.
    """
    header = [f"Professor: {professor}"]
    if semester:
        header.append(f"Semester: {semester}")
    if course:
        title = rows[0].get("course_name") if rows else None
        header.append(f"Course: {course.label()}" + (f" ({title})" if title else ""))

    focus = f"Professor {professor}" + (f" and {course.label()}" if course else "")
    instructions = [
        f"- Focus ONLY on {focus}",
        "- Keep the response concise and to the point",
        "- Analyze grade patterns, difficulty level and teaching style",
        "- Provide practical insights for students",
    ]
    if course:
        instructions.append("- Do NOT mention other courses")

    grade_data = "; ".join(format_row_inline(r) for r in rows)

    return f"""
GRADE DISTRIBUTION DATA:
{chr(10).join(header)}
Grade Data: {grade_data}

INSTRUCTIONS:
{chr(10).join(instructions)}

Provide a brief analysis of the grade distribution patterns and what they
indicate about course difficulty and Professor {professor}'s teaching style.
""".strip()


# ---------------------------
# 3) Client + cached generation
# ---------------------------


def _get_client() -> OpenAI:
    """
    Create an OpenAI client.
    Requires OPENAI_API_KEY in the environment.
    """
    return OpenAI()


class NarrativeGenerator:
    """
    Calls the chat completion API; identical prompts inside the TTL window
    return the previous answer instead of a fresh one. Expired entries are
    swept on every insert and the oldest go first past `max_entries`.
    """

    def __init__(
        self,
        model: str = settings.NARRATIVE_MODEL,
        max_tokens: int = settings.NARRATIVE_MAX_TOKENS,
        temperature: float = settings.NARRATIVE_TEMPERATURE,
        cache_ttl: int = settings.NARRATIVE_CACHE_TTL,
        client: Optional[OpenAI] = None,
        max_entries: int = MAX_CACHE_ENTRIES,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.cache_ttl = cache_ttl
        self._client = client
        self.max_entries = max_entries
        self._cache: Dict[str, Tuple[float, str]] = {}

    def _cached(self, prompt: str) -> Optional[str]:
        hit = self._cache.get(prompt)
        if hit is None:
            return None
        stored_at, text = hit
        if time.monotonic() - stored_at > self.cache_ttl:
            del self._cache[prompt]
            return None
        return text

    def generate(self, prompt: str) -> str:
        cached = self._cached(prompt)
        if cached is not None:
            log.info("narrative cache hit")
            return cached

        if self._client is None:
            if not settings.openai_configured():
                raise NarrativeUnavailable("OPENAI_API_KEY is not configured")
            self._client = _get_client()

        try:
            resp = self._client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
            )
        except Exception as e:
            raise NarrativeUnavailable(str(e)) from e

        content = (resp.choices[0].message.content or "").strip()
        if not content:
            raise NarrativeUnavailable("empty completion")

        self._store(prompt, content)
        return content

    def _store(self, prompt: str, text: str) -> None:
        now = time.monotonic()
        for key in [k for k, (stored_at, _) in self._cache.items() if now - stored_at > self.cache_ttl]:
            del self._cache[key]
        self._cache.pop(prompt, None)
        self._cache[prompt] = (now, text)
        while len(self._cache) > self.max_entries:
            del self._cache[next(iter(self._cache))]

    def clear_cache(self) -> None:
        self._cache.clear()
