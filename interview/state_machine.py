from __future__ import annotations

import re
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional

from models import (
    ChatEntry,
    ContactField,
    EntryType,
    FinalSummary,
    Question,
    SessionStatus,
    validate_question_set,
)
from utils.config import AppConfig, load_config
from utils.errors import InvalidTransition, ValidationError
from utils.logging import get_logger, session_logger

if TYPE_CHECKING:
    from .store import SessionStore


logger = get_logger("interview.state_machine")

TRANSITIONS: Dict[str, FrozenSet[str]] = {
    SessionStatus.COLLECTING_INFO: frozenset({SessionStatus.COLLECTING_INFO, SessionStatus.IN_PROGRESS}),
    SessionStatus.IN_PROGRESS: frozenset({SessionStatus.IN_PROGRESS, SessionStatus.PAUSED, SessionStatus.COMPLETED}),
    SessionStatus.PAUSED: frozenset({SessionStatus.IN_PROGRESS}),
    SessionStatus.COMPLETED: frozenset(),
}

WELCOME_MESSAGE = "Welcome! I need a few more details before we begin the interview. Let's complete your profile."
PROFILE_COMPLETE_MESSAGE = (
    "Perfect! Your profile is complete. Let's start the interview. "
    "I'll generate 6 technical questions for you."
)


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, target: str, detail: str = "") -> None:
    if not can_transition(current, target):
        raise InvalidTransition(current, target, detail)


class AdvanceResult:
    ADVANCED = "advanced"
    LAST_QUESTION = "last_question"
    NOOP = "noop"


class SessionStateMachine:
    """Legal moves of a candidate session, applied through a SessionStore.

    The machine owns the rules (which status may follow which, which field
    is solicited next, when a question may be left); the store owns the data.
    """

    def __init__(self, store: "SessionStore", config: Optional[AppConfig] = None):
        self.store = store
        self.config = config or load_config()
        self._email_re = re.compile(self.config.email_pattern)
        self._phone_re = re.compile(self.config.phone_pattern)

    # -- field collection -------------------------------------------------

    def validate_field(self, field: str, value: str) -> str:
        cleaned = (value or "").strip()
        if not cleaned:
            raise ValidationError(field, "Please provide a valid response")
        if field == ContactField.EMAIL and not self._email_re.match(cleaned):
            raise ValidationError(field, "Please enter a valid email address")
        if field == ContactField.PHONE and not self._phone_re.match(cleaned):
            raise ValidationError(field, "Please enter a valid phone number")
        return cleaned

    def begin_collection(self, session_id: str) -> Optional[str]:
        """Start soliciting the first missing contact field, if any."""
        session = self.store.get(session_id)
        ensure_transition(session.status, SessionStatus.COLLECTING_INFO)
        missing = session.missing_fields()
        if not missing:
            return None
        first = missing[0]
        self.store.append_chat(session_id, ChatEntry.create(EntryType.SYSTEM, WELCOME_MESSAGE))
        self.store.set_collecting_field(session_id, first)
        self.store.append_chat(session_id, ChatEntry.create(EntryType.BOT, ContactField.PROMPTS[first]))
        return first

    def collect_field(self, session_id: str, value: str) -> Optional[str]:
        """Store one reply for the field being solicited.

        Returns the next field to ask for, or None once the profile is
        complete. Invalid input raises ValidationError and changes nothing.
        """
        session = self.store.get(session_id)
        ensure_transition(session.status, SessionStatus.COLLECTING_INFO)
        field = session.collecting_field
        if field is None:
            raise InvalidTransition(session.status, SessionStatus.COLLECTING_INFO, "no field is being collected")

        cleaned = self.validate_field(field, value)
        self.store.append_chat(session_id, ChatEntry.create(EntryType.USER, cleaned, field=field))
        self.store.update_fields(session_id, **{field: cleaned})

        missing = self.store.get(session_id).missing_fields()
        if missing:
            nxt = missing[0]
            self.store.set_collecting_field(session_id, nxt)
            self.store.append_chat(session_id, ChatEntry.create(EntryType.BOT, ContactField.PROMPTS[nxt]))
            return nxt

        self.store.set_collecting_field(session_id, None)
        self.store.append_chat(session_id, ChatEntry.create(EntryType.BOT, PROFILE_COMPLETE_MESSAGE))
        session_logger(logger, session_id).info("Profile complete")
        return None

    # -- interview ----------------------------------------------------------

    def begin_interview(self, session_id: str, questions: List[Question]) -> None:
        session = self.store.get(session_id)
        ensure_transition(session.status, SessionStatus.IN_PROGRESS)
        if session.status != SessionStatus.COLLECTING_INFO:
            raise InvalidTransition(session.status, SessionStatus.IN_PROGRESS, "interview already started")
        missing = session.missing_fields()
        if missing:
            raise InvalidTransition(
                session.status, SessionStatus.IN_PROGRESS, f"missing fields: {', '.join(missing)}"
            )
        validate_question_set(questions)
        self.store.start_interview(session_id, questions)
        session_logger(logger, session_id).info(f"Interview started with {len(questions)} questions")

    def advance(self, session_id: str, question_index: int) -> str:
        """Leave a scored question.

        Only acts when ``question_index`` is still the current question, so a
        repeated call for the same question is a no-op. On the last question
        nothing moves; the caller completes the session instead.
        """
        session = self.store.get(session_id)
        if session.status != SessionStatus.IN_PROGRESS or session.current_question_index != question_index:
            return AdvanceResult.NOOP
        question = session.current_question()
        if question is None or not question.scored:
            raise InvalidTransition(session.status, SessionStatus.IN_PROGRESS, "current question is not scored")
        if session.is_last_question():
            return AdvanceResult.LAST_QUESTION
        self.store.next_question(session_id)
        return AdvanceResult.ADVANCED

    def pause(self, session_id: str, remaining_time: Optional[int]) -> None:
        session = self.store.get(session_id)
        ensure_transition(session.status, SessionStatus.PAUSED)
        self.store.pause(session_id, remaining_time)
        session_logger(logger, session_id).info(f"Paused with {remaining_time}s remaining")

    def resume(self, session_id: str) -> None:
        session = self.store.get(session_id)
        if session.status != SessionStatus.PAUSED:
            raise InvalidTransition(session.status, SessionStatus.IN_PROGRESS, "session is not paused")
        self.store.resume(session_id)
        session_logger(logger, session_id).info("Resumed")

    def complete(self, session_id: str, summary: FinalSummary) -> None:
        session = self.store.get(session_id)
        ensure_transition(session.status, SessionStatus.COMPLETED)
        unscored = [i for i, q in enumerate(session.questions) if not q.scored]
        if unscored:
            raise InvalidTransition(
                session.status, SessionStatus.COMPLETED, f"unscored questions: {unscored}"
            )
        final_score = sum(q.score or 0 for q in session.questions)
        self.store.complete(session_id, final_score, summary)
        self.store.append_chat(
            session_id,
            ChatEntry.create(
                EntryType.COMPLETION,
                summary.summary,
                score=final_score,
                max_score=summary.max_score,
                percentage=summary.percentage,
            ),
        )
        session_logger(logger, session_id).info(
            f"Completed with {final_score}/{summary.max_score} ({summary.percentage}%)"
        )

    def remove(self, session_id: str) -> None:
        self.store.delete(session_id)
