# chatbot/entities.py

"""
Rule-based professor / course extraction for chat messages.

A message goes through a short pipeline of stages, each returning either a
`Candidate` or None:

    1. follow-up detection   ("just give me the numbers")
    2. possessive form       ("chyn's 212 class")
    3. templated phrases     ("grade distribution for professor smith")
    4. single-token message  ("waxman")

The first stage that yields a validated candidate wins; the candidate is then
resolved against the professor catalog with fuzzy matching. Course extraction
runs separately with its own ordered rules.

Rules are plain (name, pattern, handler) entries so their priority order is
visible in one place; earlier rules are more specific than later ones.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence

from .intent_schema import CourseRef, Extraction
from .matcher import NameMatcher
from .semester import SEMESTER_WORD_PATTERN

log = logging.getLogger("chatbot.entities")

PROFESSOR_MATCH_THRESHOLD = 0.6
SINGLE_TOKEN_MATCH_THRESHOLD = 0.5

# "smith", "smith j", "smith, j", "smith, j."
NAME = r"[a-z]+(?:\s*,\s*[a-z]\b\.?|\s+[a-z]\b\.?)?"
TITLE = r"(?:professor|prof|dr)\b\.?"
GRADES = r"(?:grade distribution|grades)"
TOPIC = r"(?:numbers?|data|distribution|grades?|stats?|statistics)\b"

# Words that precede 's in ordinary English and are never names.
CONTRACTIONS: FrozenSet[str] = frozenset(
    {"what", "it", "that", "this", "there", "here", "where", "when", "why", "how"}
)

STOPWORDS: FrozenSet[str] = frozenset(
    {
        "spring", "fall", "summer", "sp", "fa", "su",
        "what", "is", "was", "the", "grade", "distribution", "grades", "like",
        "for", "give", "me", "just", "numbers", "number", "data", "show", "only",
        "about", "how", "tell", "can", "you", "display", "professor", "prof",
        "dr", "of", "in", "with",
        # articles, plurals and role nouns
        "professors", "a", "an", "my", "this", "that", "class", "course",
        "classes", "courses", "instructor", "teacher",
    }
)

# Single-word messages that are chat filler, not surnames.
CHATTER_WORDS: FrozenSet[str] = STOPWORDS | frozenset(
    {
        "hi", "hello", "hey", "yo", "hiya", "sup", "thanks", "thank", "thx",
        "please", "help", "ok", "okay", "yes", "yeah", "yep", "no", "nope",
        "sure", "cool", "nice", "great", "awesome", "bye", "goodbye", "hmm",
        "who", "when", "where", "which", "why", "test", "testing", "again",
        "more", "anything", "nothing", "nevermind", "reset", "start", "exit",
        "quit", "menu", "course", "class", "courses", "classes",
    }
)

# Surnames in the grade table that also look like course tokens; a message
# containing one of them never yields a course.
AMBIGUOUS_SURNAMES: FrozenSet[str] = frozenset(
    {"chyn", "chyns", "waxman", "williams", "smith", "johnson"}
)

# Words that can sit in front of a number without being a subject code.
NON_SUBJECT_WORDS: FrozenSet[str] = STOPWORDS | frozenset(
    {"fal", "spr", "sum", "top", "are", "am", "has", "had", "be", "to", "a", "an", "at", "on", "my", "our"}
)

_FLAGS = re.IGNORECASE

FOLLOW_UP_PATTERNS: List[re.Pattern] = [
    re.compile(r"^(?:please\s+)?(?:just|only)\s+(?:the\s+)?(?:raw\s+)?" + TOPIC, _FLAGS),
    re.compile(r"^(?:what about|how about|tell me about)\s+(?:the\s+)?" + TOPIC, _FLAGS),
    re.compile(
        r"^(?:please\s+)?(?:just\s+|only\s+)?(?:can you\s+|could you\s+)?(?:please\s+)?"
        r"(?:show|give|display|send)\s+(?:me\s+)?(?:just\s+|only\s+)?(?:the\s+)?(?:raw\s+)?" + TOPIC,
        _FLAGS,
    ),
]

NUMBERS_ONLY_PATTERN = re.compile(
    r"\b(?:numbers?|data|distribution|grades?|stats?|statistics|raw|counts?)\b", _FLAGS
)
EXPLICIT_NUMBERS_PATTERN = re.compile(
    r"\b(?:just|only)\s+(?:the\s+)?(?:raw\s+)?numbers\b|\bnumbers\s+only\b", _FLAGS
)

POSSESSIVE_PATTERN = re.compile(r"\b(" + NAME + r")['’]s\b", _FLAGS)

_COURSE_CODE_AHEAD = re.compile(r"\s*-?\s*\d{3,4}\b")

# A titled or possessive name is a name even when a course number follows it.
SUBJECT_CODE_EXEMPT_RULES: FrozenSet[str] = frozenset({"titled", "possessive"})
_SUBJECT_CODE_SHAPE = re.compile(r"[a-z]{2,4}", _FLAGS)


@dataclass(frozen=True)
class Candidate:
    text: str
    rule: str
    end: int            # offset just past the capture in the source text


@dataclass(frozen=True)
class Rule:
    name: str
    pattern: re.Pattern
    handler: Callable[[str, re.Match], Optional[Candidate]]


def _capture(rule_name: str) -> Callable[[str, re.Match], Optional[Candidate]]:
    def handler(text: str, m: re.Match) -> Optional[Candidate]:
        raw = (m.group(1) or "").strip().rstrip(".").strip()
        if not raw:
            return None
        return Candidate(raw, rule_name, m.end(1))

    return handler


def _rule(name: str, regex: str) -> Rule:
    return Rule(name, re.compile(regex, _FLAGS), _capture(name))


# Order matters: generic phrasings come after the ones that would otherwise
# swallow keywords like "what is" or "grades".
PROFESSOR_RULES: List[Rule] = [
    _rule("titled", rf"\b{TITLE}\s+({NAME})"),
    _rule("grades_for", rf"\b{GRADES} for (?:{TITLE})?\s*({NAME})"),
    _rule("tell_me_about", rf"\b(?:tell me about|what about|how is) (?:{TITLE})?\s*({NAME})"),
    _rule("preposition", rf"\b(?:in|for|with) (?:{TITLE})?\s*({NAME})"),
    _rule("like_for", rf"\b(?:like for|distribution like for)\s+({NAME})"),
    _rule("what_is_grades_like", rf"\b(?:what is|what was)\s+({NAME})\s+{GRADES}\s+(?:like|for)"),
    _rule("what_is_semester", rf"\b(?:what is|what was)\s+({NAME})\s+{SEMESTER_WORD_PATTERN}\s*\d+"),
    _rule("name_grades_like", rf"\b({NAME})\s+{GRADES}\s+(?:like|for)"),
    _rule("name_semester_grades", rf"\b({NAME})\s+{SEMESTER_WORD_PATTERN}\s*\d+\s+{GRADES}"),
    _rule("what_is_grades", rf"\b(?:what is|what was)\s+({NAME})\s+{GRADES}"),
    _rule("name_grades", rf"\b({NAME})\s+{GRADES}"),
]


def _course_with_subject(text: str, m: re.Match) -> Optional[CourseRef]:
    subject = m.group(1)
    if subject.lower() in NON_SUBJECT_WORDS:
        return None
    return CourseRef(number=m.group(2), subject=subject.upper())


def _course_number_only(text: str, m: re.Match) -> Optional[CourseRef]:
    return CourseRef(number=m.group(1))


SUBJECT = r"([a-z]{2,4})\s*-?\s*(\d{3,4})\b"

# (name, pattern, handler) as for professors; handlers return CourseRef
COURSE_RULES = [
    ("prep_subject", re.compile(rf"\b(?:for|in|about|of)\s+{SUBJECT}", _FLAGS), _course_with_subject),
    ("subject_class", re.compile(rf"\b{SUBJECT}\s+(?:class|course)\b", _FLAGS), _course_with_subject),
    ("what_is_subject", re.compile(rf"\b(?:what is|what was|how is)\s+{SUBJECT}", _FLAGS), _course_with_subject),
    ("bare_subject", re.compile(rf"\b{SUBJECT}", _FLAGS), _course_with_subject),
    ("number_class", re.compile(r"\b(\d{3,4})\s+(?:class|course)\b", _FLAGS), _course_number_only),
    ("what_is_number", re.compile(r"\b(?:what is|what was|how is)\s+(\d{3,4})\s+(?:class|course)\b", _FLAGS), _course_number_only),
    ("prep_number", re.compile(r"\b(?:in|for|of)\s+(\d{3})\b(?!\s*-?\s*\d)", _FLAGS), _course_number_only),
]


def _tokens(text: str) -> List[str]:
    return [t for t in re.split(r"[\s,]+", text.lower()) if t]


def validate_candidate(candidate: Candidate, text: str) -> Optional[Candidate]:
    """
    Reject candidates made of question/structure words, too-short captures,
    and bare subject codes directly followed by a course number ("for csci
    212"). Titled and possessive names skip the subject-code check.
    """
    lowered = candidate.text.lower()
    words = [w.rstrip(".") for w in _tokens(lowered)]
    if len(lowered.replace(" ", "")) < 2:
        log.debug("reject %r (%s): too short", candidate.text, candidate.rule)
        return None
    if lowered in STOPWORDS or all(w in STOPWORDS for w in words):
        log.debug("reject %r (%s): stopword", candidate.text, candidate.rule)
        return None
    if (
        candidate.rule not in SUBJECT_CODE_EXEMPT_RULES
        and _SUBJECT_CODE_SHAPE.fullmatch(candidate.text)
        and _COURSE_CODE_AHEAD.match(text, candidate.end)
    ):
        log.debug("reject %r (%s): looks like a subject code", candidate.text, candidate.rule)
        return None
    return candidate


def run_rules(rules: Iterable[Rule], text: str) -> Optional[Candidate]:
    """First validated candidate from an ordered rule list."""
    for rule in rules:
        m = rule.pattern.search(text)
        if not m:
            continue
        candidate = rule.handler(text, m)
        if candidate is None:
            continue
        if validate_candidate(candidate, text):
            log.debug("rule %s -> %r", rule.name, candidate.text)
            return candidate
    return None


def detect_follow_up(text: str) -> bool:
    """
    A context-only request: asks for numbers/data/grades without naming
    anyone. "give me the grades for smith" names someone, so it is not one.
    """
    for pattern in FOLLOW_UP_PATTERNS:
        m = pattern.search(text)
        if not m:
            continue
        if run_rules(PROFESSOR_RULES, text[m.end():]) is not None:
            return False
        return True
    return False


def possessive_candidate(text: str) -> Optional[Candidate]:
    for m in POSSESSIVE_PATTERN.finditer(text):
        raw = m.group(1).strip()
        if raw.lower() in CONTRACTIONS:
            log.debug("skip contraction %r", raw)
            continue
        candidate = validate_candidate(Candidate(raw, "possessive", m.end(1)), text)
        if candidate:
            return candidate
    return None


def single_token_candidate(text: str) -> Optional[Candidate]:
    parts = text.split()
    if len(parts) != 1:
        return None
    token = parts[0].strip(".,!?;:'\"()")
    if len(token) < 3 or token.isdigit() or token.lower() in CHATTER_WORDS:
        return None
    return Candidate(token, "single_token", len(text))


def is_numbers_only(text: str, extraction: Extraction) -> bool:
    if EXPLICIT_NUMBERS_PATTERN.search(text):
        return True
    return extraction.is_follow_up and bool(NUMBERS_ONLY_PATTERN.search(text))


class EntityExtractor:
    """
    Pulls a professor name and/or a course reference out of a chat message.

    Never raises for odd input: anything it cannot find is None.
    """

    def __init__(
        self,
        matcher: Optional[NameMatcher] = None,
        professor_threshold: float = PROFESSOR_MATCH_THRESHOLD,
        single_token_threshold: float = SINGLE_TOKEN_MATCH_THRESHOLD,
        ambiguous_surnames: Iterable[str] = AMBIGUOUS_SURNAMES,
    ) -> None:
        self.matcher = matcher or NameMatcher()
        self.professor_threshold = professor_threshold
        self.single_token_threshold = single_token_threshold
        self.ambiguous_surnames = frozenset(s.lower() for s in ambiguous_surnames)

    def extract(self, message: str, catalog: Sequence[str]) -> Extraction:
        text = (message or "").strip()
        if not text:
            return Extraction()

        if detect_follow_up(text):
            log.debug("follow-up request: %r", text)
            return Extraction(course_info=self.extract_course(text), is_follow_up=True)

        possessive = possessive_candidate(text)
        if possessive:
            name = self._resolve(possessive, catalog, self.professor_threshold)
            return Extraction(professor_name=name, possessive=True)

        professor = None
        candidate = run_rules(PROFESSOR_RULES, text)
        if candidate:
            professor = self._resolve(candidate, catalog, self.professor_threshold)
        else:
            candidate = single_token_candidate(text)
            if candidate:
                professor = self._resolve(candidate, catalog, self.single_token_threshold)

        return Extraction(professor_name=professor, course_info=self.extract_course(text))

    def extract_course(self, text: str) -> Optional[CourseRef]:
        words = {w.strip(".,!?;:'\"()") for w in text.lower().split()}
        if words & self.ambiguous_surnames:
            log.debug("ambiguous surname in %r, skipping course extraction", text)
            return None
        for name, pattern, handler in COURSE_RULES:
            for m in pattern.finditer(text):
                course = handler(text, m)
                if course:
                    log.debug("course rule %s -> %s", name, course.label())
                    return course
        return None

    def _resolve(self, candidate: Candidate, catalog: Sequence[str], threshold: float) -> str:
        best = self.matcher.best_match(candidate.text, catalog, threshold)
        if best:
            log.info("resolved %r -> %r (%.2f, %s)", candidate.text, best.name, best.similarity, candidate.rule)
            return best.name
        log.info("no catalog match for %r (%s), keeping raw text", candidate.text, candidate.rule)
        return candidate.text
