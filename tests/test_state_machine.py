import pytest

from interview import AdvanceResult, SessionStateMachine, can_transition
from interview.state_machine import PROFILE_COMPLETE_MESSAGE, WELCOME_MESSAGE
from models import EntryType, SessionStatus
from utils.config import AppConfig
from utils.errors import InvalidTransition, ValidationError
from agents.evaluator_agent import fallback_summary


def _started(store, machine, questions):
    session = store.create(name="Ada Lovelace", email="ada@example.com", phone="+44 20 7946 0958")
    machine.begin_interview(session.session_id, questions)
    return session


def _score(store, sid, idx, answer, score):
    store.submit_answer(sid, idx, answer, 3)
    store.score_question(sid, idx, score, "ok")


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (SessionStatus.COLLECTING_INFO, SessionStatus.IN_PROGRESS, True),
        (SessionStatus.COLLECTING_INFO, SessionStatus.PAUSED, False),
        (SessionStatus.IN_PROGRESS, SessionStatus.PAUSED, True),
        (SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED, True),
        (SessionStatus.PAUSED, SessionStatus.IN_PROGRESS, True),
        (SessionStatus.PAUSED, SessionStatus.COMPLETED, False),
        (SessionStatus.COMPLETED, SessionStatus.IN_PROGRESS, False),
    ],
)
def test_transitions(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_collects_missing_fields_in_order(store, machine):
    session = store.create()
    sid = session.session_id
    assert machine.begin_collection(sid) == "name"
    assert session.chat_history[0].type == EntryType.SYSTEM
    assert session.chat_history[0].content == WELCOME_MESSAGE
    assert session.chat_history[-1].content == "What is your full name?"

    assert machine.collect_field(sid, "  Ada Lovelace ") == "email"
    assert session.name == "Ada Lovelace"
    assert machine.collect_field(sid, "ada@example.com") == "phone"
    assert machine.collect_field(sid, "+1 (555) 123-4567") is None
    assert session.collecting_field is None
    assert session.chat_history[-1].content == PROFILE_COMPLETE_MESSAGE
    assert session.status == SessionStatus.COLLECTING_INFO


def test_only_missing_fields_are_asked(store, machine):
    session = store.create(name="Ada Lovelace", phone="5551234567")
    sid = session.session_id
    assert machine.begin_collection(sid) == "email"
    assert machine.collect_field(sid, "ada@example.com") is None
    prompts = [e.content for e in session.chat_history if e.type == EntryType.BOT]
    assert "What is your full name?" not in prompts
    assert "What is your phone number?" not in prompts


def test_nothing_to_collect(store, machine):
    session = store.create(name="Ada", email="ada@example.com", phone="5551234567")
    assert machine.begin_collection(session.session_id) is None
    assert session.chat_history == []


@pytest.mark.parametrize(
    "field,value,message",
    [
        ("name", "   ", "Please provide a valid response"),
        ("email", "ada@example", "Please enter a valid email address"),
        ("email", "ada example.com", "Please enter a valid email address"),
        ("phone", "12345", "Please enter a valid phone number"),
        ("phone", "call me maybe", "Please enter a valid phone number"),
    ],
)
def test_invalid_values(machine, field, value, message):
    with pytest.raises(ValidationError) as exc:
        machine.validate_field(field, value)
    assert str(exc.value) == message
    assert exc.value.field == field


def test_rejected_value_changes_nothing(store, machine):
    session = store.create(name="Ada")
    sid = session.session_id
    machine.begin_collection(sid)
    history = len(session.chat_history)
    with pytest.raises(ValidationError):
        machine.collect_field(sid, "not-an-email")
    assert session.email is None
    assert session.collecting_field == "email"
    assert len(session.chat_history) == history


def test_phone_pattern_is_configurable(store):
    machine = SessionStateMachine(store, AppConfig(phone_pattern=r"^\+?\d{10,15}$"))
    assert machine.validate_field("phone", "+15551234567") == "+15551234567"
    with pytest.raises(ValidationError):
        machine.validate_field("phone", "(555) 123-4567")


def test_interview_needs_complete_profile(store, machine, questions):
    session = store.create(name="Ada")
    with pytest.raises(InvalidTransition):
        machine.begin_interview(session.session_id, questions)


def test_interview_needs_six_questions(store, machine, questions):
    session = store.create(name="Ada", email="ada@example.com", phone="5551234567")
    with pytest.raises(ValueError):
        machine.begin_interview(session.session_id, questions[:5])
    assert session.status == SessionStatus.COLLECTING_INFO


def test_begin_interview(store, machine, questions):
    session = _started(store, machine, questions)
    assert session.status == SessionStatus.IN_PROGRESS
    assert session.current_question_index == 0
    assert session.started_at is not None
    assert [q.time_limit for q in session.questions] == [20, 20, 60, 60, 120, 120]


def test_advance_is_idempotent(store, machine, questions):
    session = _started(store, machine, questions)
    sid = session.session_id
    with pytest.raises(InvalidTransition):
        machine.advance(sid, 0)
    _score(store, sid, 0, "A", 10)
    assert machine.advance(sid, 0) == AdvanceResult.ADVANCED
    history = len(session.chat_history)
    assert machine.advance(sid, 0) == AdvanceResult.NOOP
    assert session.current_question_index == 1
    assert len(session.chat_history) == history


def test_advance_stops_at_last_question(store, machine, questions):
    session = _started(store, machine, questions)
    sid = session.session_id
    for idx in range(5):
        _score(store, sid, idx, "A", 0)
        assert machine.advance(sid, idx) == AdvanceResult.ADVANCED
    _score(store, sid, 5, "C", 10)
    assert machine.advance(sid, 5) == AdvanceResult.LAST_QUESTION
    assert session.current_question_index == 5


def test_pause_and_resume_keep_remaining_time(store, machine, questions):
    session = _started(store, machine, questions)
    sid = session.session_id
    machine.pause(sid, 13)
    assert session.status == SessionStatus.PAUSED
    assert session.remaining_time == 13
    assert session.paused_at is not None
    with pytest.raises(InvalidTransition):
        machine.pause(sid, 10)
    machine.resume(sid)
    assert session.status == SessionStatus.IN_PROGRESS
    assert session.remaining_time == 13
    with pytest.raises(InvalidTransition):
        machine.resume(sid)


def test_complete(store, machine, questions):
    session = _started(store, machine, questions)
    sid = session.session_id
    for idx, score in enumerate([10, 10, 0, 10, 0, 10]):
        _score(store, sid, idx, "A", score)
        if idx < 5:
            machine.advance(sid, idx)
    machine.complete(sid, fallback_summary(session.questions))
    assert session.status == SessionStatus.COMPLETED
    assert session.final_score == 40
    entry = session.chat_history[-1]
    assert entry.type == EntryType.COMPLETION
    assert entry.metadata == {"score": 40, "max_score": 60, "percentage": 66.7}


def test_complete_requires_every_score(store, machine, questions):
    session = _started(store, machine, questions)
    with pytest.raises(InvalidTransition):
        machine.complete(session.session_id, fallback_summary(session.questions))
    assert session.status == SessionStatus.IN_PROGRESS


def test_completed_session_cannot_be_paused(store, machine, questions):
    session = _started(store, machine, questions)
    sid = session.session_id
    for idx in range(6):
        _score(store, sid, idx, "A", 0)
        if idx < 5:
            machine.advance(sid, idx)
    machine.complete(sid, fallback_summary(session.questions))
    with pytest.raises(InvalidTransition):
        machine.pause(sid, 5)
