# chatbot/matcher.py

"""
Approximate professor-name matching.

Similarity is normalized Levenshtein distance:

    (max_len - distance(a, b)) / max_len

compared case-insensitively, with two empty strings counting as identical.
The score is symmetric but not a metric once normalized, so use it for
ranking candidates, not for clustering names.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

from .intent_schema import FuzzyMatch

log = logging.getLogger("chatbot.matcher")

MAX_CACHE_ENTRIES = 1024


def similarity(a: str, b: str) -> float:
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    distance = Levenshtein.distance(a.lower(), b.lower())
    return (max_len - distance) / max_len


class NameMatcher:
    """
    Ranks a catalog of names against a query fragment.

    Results are memoized per (query, catalog size, threshold, limit) in an
    LRU of at most `max_entries`. The catalog is assumed stable for the
    matcher's lifetime; call `clear_cache()` after the catalog is refreshed.
    """

    def __init__(self, max_entries: int = MAX_CACHE_ENTRIES) -> None:
        self.max_entries = max_entries
        self._cache: OrderedDict[Tuple[str, int, float, int], List[FuzzyMatch]] = OrderedDict()

    def find_best_matches(
        self,
        query: str,
        candidates: Sequence[str],
        threshold: float = 0.6,
        max_results: int = 5,
    ) -> List[FuzzyMatch]:
        key = (query.lower(), len(candidates), threshold, max_results)
        cached = self._cache.get(key)
        if cached is not None:
            self._cache.move_to_end(key)
            return list(cached)

        scored = [FuzzyMatch(name, similarity(query, name)) for name in candidates]
        kept = [m for m in scored if m.similarity >= threshold]
        # sorted() is stable: equal scores keep catalog order
        kept = sorted(kept, key=lambda m: m.similarity, reverse=True)[: max(max_results, 0)]

        log.debug("fuzzy %r -> %s", query, [(m.name, round(m.similarity, 3)) for m in kept])
        self._cache[key] = kept
        while len(self._cache) > self.max_entries:
            self._cache.popitem(last=False)
        return list(kept)

    def best_match(self, query: str, candidates: Sequence[str], threshold: float) -> Optional[FuzzyMatch]:
        matches = self.find_best_matches(query, candidates, threshold, 1)
        return matches[0] if matches else None

    def suggest_corrections(
        self, query: str, candidates: Sequence[str], max_suggestions: int = 3
    ) -> List[Dict]:
        """Loose "did you mean" suggestions for a name that found no data."""
        matches = self.find_best_matches(query, candidates, 0.3, max_suggestions)
        return [
            {"original": query, "suggestion": m.name, "confidence": m.similarity}
            for m in matches
        ]

    def clear_cache(self) -> None:
        self._cache.clear()


_default = NameMatcher()


def find_best_matches(
    query: str,
    candidates: Sequence[str],
    threshold: float = 0.6,
    max_results: int = 5,
) -> List[FuzzyMatch]:
    return _default.find_best_matches(query, candidates, threshold, max_results)
