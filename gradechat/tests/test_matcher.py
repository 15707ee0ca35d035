import pytest

from gradechat.chatbot import matcher
from gradechat.chatbot.matcher import NameMatcher, similarity

CATALOG = ["SMITH, J", "JOHNSON, A", "CHYN, X", "WAXMAN, B"]


@pytest.mark.parametrize("s", ["", "a", "smith", "SMITH, J", "O'Brien"])
def test_identical_strings_score_one(s):
    assert similarity(s, s) == 1.0


@pytest.mark.parametrize("a,b", [("smith", "SMITH, J"), ("kitten", "sitting"), ("", "x"), ("chyn", "chyns")])
def test_similarity_is_symmetric(a, b):
    assert similarity(a, b) == similarity(b, a)


def test_empty_strings():
    assert similarity("", "") == 1.0
    assert similarity("", "x") == 0.0


def test_case_insensitive_and_normalized():
    assert similarity("SMITH", "smith") == 1.0
    # 3 edits over 7 characters
    assert similarity("kitten", "sitting") == pytest.approx(4 / 7)
    assert similarity("smith", "SMITH, J") == pytest.approx(5 / 8)


def test_find_best_matches_respects_threshold_and_limit():
    m = NameMatcher()
    out = m.find_best_matches("smith", CATALOG, threshold=0.6, max_results=1)
    assert [x.name for x in out] == ["SMITH, J"]

    out = m.find_best_matches("s", CATALOG, threshold=0.0, max_results=2)
    assert len(out) == 2
    for x in m.find_best_matches("smyth", CATALOG, threshold=0.3, max_results=5):
        assert x.similarity >= 0.3


def test_ties_keep_candidate_order():
    out = NameMatcher().find_best_matches("aa", ["ab", "ac", "zz"], threshold=0.5, max_results=5)
    assert [x.name for x in out] == ["ab", "ac"]


def test_empty_inputs():
    m = NameMatcher()
    assert m.find_best_matches("smith", [], 0.6, 5) == []
    assert m.find_best_matches("", CATALOG, 0.6, 5) == []


def test_results_are_memoized_per_query(monkeypatch):
    calls = []
    real = matcher.similarity

    def counting(a, b):
        calls.append((a, b))
        return real(a, b)

    monkeypatch.setattr(matcher, "similarity", counting)
    m = NameMatcher()
    first = m.find_best_matches("Smith", CATALOG, 0.6, 1)
    assert len(calls) == len(CATALOG)
    second = m.find_best_matches("smith", CATALOG, 0.6, 1)
    assert len(calls) == len(CATALOG)
    assert first == second

    m.clear_cache()
    m.find_best_matches("smith", CATALOG, 0.6, 1)
    assert len(calls) == 2 * len(CATALOG)


def test_suggest_corrections():
    out = NameMatcher().suggest_corrections("smyth", CATALOG)
    assert out[0]["suggestion"] == "SMITH, J"
    assert out[0]["original"] == "smyth"
    assert 0.3 <= out[0]["confidence"] < 1.0


def test_memo_is_bounded():
    m = NameMatcher(max_entries=50)
    for i in range(500):
        m.find_best_matches(f"name{i}", CATALOG, 0.6, 5)
    assert len(m._cache) == 50


def test_memo_evicts_least_recently_used(monkeypatch):
    calls = []
    real = matcher.similarity
    monkeypatch.setattr(matcher, "similarity", lambda a, b: calls.append(a) or real(a, b))

    m = NameMatcher(max_entries=2)
    m.find_best_matches("smith", CATALOG)
    m.find_best_matches("chyn", CATALOG)
    m.find_best_matches("smith", CATALOG)
    m.find_best_matches("waxman", CATALOG)
    calls.clear()

    m.find_best_matches("smith", CATALOG)
    assert calls == []
    m.find_best_matches("chyn", CATALOG)
    assert len(calls) == len(CATALOG)
