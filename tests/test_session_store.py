import threading

import pytest

from models import ChatEntry, EntryType, FinalSummary, SessionStatus
from utils.errors import InvalidTransition, NotFound


def test_create_prepends_and_becomes_current(store):
    first = store.create(name="Ada")
    second = store.create(name="Grace")
    assert [s.session_id for s in store.all()] == [second.session_id, first.session_id]
    assert store.current_id == second.session_id
    assert store.current() is second
    assert len(store) == 2
    assert first.status == SessionStatus.COLLECTING_INFO


def test_empty_strings_are_missing(store):
    session = store.create(name="", email="ada@example.com", phone=None)
    assert session.missing_fields() == ["name", "phone"]


def test_delete_current_clears_pointer(store):
    first = store.create(name="Ada")
    second = store.create(name="Grace")
    store.delete(second.session_id)
    assert store.current_id is None
    assert [s.session_id for s in store.all()] == [first.session_id]


def test_delete_other_keeps_pointer(store):
    first = store.create(name="Ada")
    second = store.create(name="Grace")
    store.delete(first.session_id)
    assert store.current_id == second.session_id


def test_unknown_session(store):
    with pytest.raises(NotFound):
        store.get("nope")
    with pytest.raises(NotFound):
        store.delete("nope")
    with pytest.raises(NotFound):
        store.set_current("nope")
    with pytest.raises(NotFound):
        store.append_chat("nope", ChatEntry.create(EntryType.BOT, "hi"))
    assert store.find("nope") is None


def test_set_current(store):
    first = store.create(name="Ada")
    store.create(name="Grace")
    store.set_current(first.session_id)
    assert store.current() is first
    store.set_current(None)
    assert store.current() is None


def test_update_fields(store):
    session = store.create()
    store.update_fields(session.session_id, name="Ada Lovelace")
    assert session.name == "Ada Lovelace"
    with pytest.raises(ValueError):
        store.update_fields(session.session_id, address="London")


def test_answer_and_score_once(store, questions):
    session = store.create(name="Ada", email="ada@example.com", phone="5551234567")
    sid = session.session_id
    store.start_interview(sid, questions)
    with pytest.raises(InvalidTransition):
        store.score_question(sid, 0, 10, "early")
    store.submit_answer(sid, 0, "A", 4)
    with pytest.raises(InvalidTransition):
        store.submit_answer(sid, 0, "B", 5)
    store.score_question(sid, 0, 10, "Correct!")
    with pytest.raises(InvalidTransition):
        store.score_question(sid, 0, 0, "again")
    assert session.questions[0].answer == "A"
    assert session.questions[0].time_spent == 4
    with pytest.raises(InvalidTransition):
        store.start_interview(sid, questions)


def test_remaining_time_is_consumed(store):
    session = store.create()
    store.update_remaining_time(session.session_id, 12)
    assert store.take_remaining_time(session.session_id) == 12
    assert session.remaining_time is None
    assert store.take_remaining_time(session.session_id) is None


def test_complete_is_terminal(store, questions):
    session = store.create(name="Ada", email="ada@example.com", phone="5551234567")
    sid = session.session_id
    store.start_interview(sid, questions)
    summary = FinalSummary(total_score=0, max_score=60, percentage=0.0, summary="done")
    store.complete(sid, 0, summary)
    assert session.status == SessionStatus.COMPLETED
    assert session.completed_at is not None
    assert session.current_question_index == len(questions)
    with pytest.raises(InvalidTransition):
        store.complete(sid, 0, summary)
    with pytest.raises(InvalidTransition):
        store.pause(sid, 5)


def test_reset(store):
    store.create()
    store.reset()
    assert len(store) == 0
    assert store.current_id is None


def test_listing_while_other_threads_create_and_delete(store):
    errors = []

    def churn():
        for _ in range(200):
            session = store.create(name="temp")
            store.delete(session.session_id)

    def listing():
        try:
            for _ in range(500):
                for session in store.all():
                    assert session.name == "temp"
                store.current()
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=churn) for _ in range(3)] + [threading.Thread(target=listing)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert errors == []
    assert len(store) == 0
