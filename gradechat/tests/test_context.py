import pytest

from gradechat.chatbot.context import (
    AmbiguousFollowUp,
    InMemoryContextStore,
    NoEntityFound,
    commit,
    resolve,
)
from gradechat.chatbot.intent_schema import ConversationContext, CourseRef, Extraction, ResolvedQuery

CSCI212 = CourseRef(number="212", subject="CSCI")


def test_named_professor_wins():
    ctx = ConversationContext(last_professor="JOHNSON, A", last_course=CSCI212, last_semester="FA24")
    r = resolve(Extraction(professor_name="SMITH, J"), ctx, semester="SP24")
    assert r == ResolvedQuery(professor="SMITH, J", course=None, semester="SP24")


def test_follow_up_uses_last_professor():
    ctx = ConversationContext(last_professor="SMITH, J", last_course=CSCI212, last_semester="SP24")
    r = resolve(Extraction(is_follow_up=True), ctx)
    assert r.professor == "SMITH, J"
    assert r.course == CSCI212
    assert r.semester == "SP24"


def test_follow_up_without_context_is_ambiguous():
    with pytest.raises(AmbiguousFollowUp):
        resolve(Extraction(is_follow_up=True), ConversationContext())


def test_nothing_found():
    with pytest.raises(NoEntityFound):
        resolve(Extraction(), ConversationContext(last_professor="SMITH, J"))
    with pytest.raises(NoEntityFound):
        resolve(Extraction(course_info=CSCI212), ConversationContext())


def test_named_course_overrides_remembered_one():
    ctx = ConversationContext(last_professor="SMITH, J", last_course=CSCI212)
    r = resolve(Extraction(course_info=CourseRef(number="111", subject="CSCI")), ctx)
    assert r.professor == "SMITH, J"
    assert r.course == CourseRef(number="111", subject="CSCI")


def test_bare_number_borrows_remembered_subject():
    ctx = ConversationContext(last_professor="SMITH, J", last_course=CSCI212)
    r = resolve(Extraction(is_follow_up=True, course_info=CourseRef(number="212")), ctx)
    assert r.course == CSCI212


def test_explicit_semester_overrides_context():
    ctx = ConversationContext(last_professor="SMITH, J", last_semester="SP24")
    assert resolve(Extraction(is_follow_up=True), ctx, semester="FA24").semester == "FA24"


def test_commit_replaces_everything():
    resolved = ResolvedQuery(professor="SMITH, J", course=None, semester=None)
    assert commit(resolved) == ConversationContext(last_professor="SMITH, J")


def test_store_is_per_session():
    store = InMemoryContextStore()
    store.save_context("a", ConversationContext(last_professor="SMITH, J"))
    assert store.get_context("a").last_professor == "SMITH, J"
    assert store.get_context("b") == ConversationContext()


def test_store_returns_copies():
    store = InMemoryContextStore()
    store.save_context("a", ConversationContext(last_professor="SMITH, J"))
    ctx = store.get_context("a")
    ctx.last_professor = "JOHNSON, A"
    assert store.get_context("a").last_professor == "SMITH, J"


def test_store_reset():
    store = InMemoryContextStore()
    store.save_context("a", ConversationContext(last_professor="SMITH, J"))
    store.reset("a")
    store.reset("never-seen")
    assert store.get_context("a").last_professor is None
    assert len(store) == 0
