from __future__ import annotations

import threading
import time
from typing import Any, Dict, List, Optional

from models import CandidateSession, ChatEntry, FinalSummary, Question, SessionStatus
from utils.errors import InvalidTransition, NotFound
from utils.logging import get_logger
from .state_machine import ensure_transition


logger = get_logger("interview.store")

CONTACT_FIELDS = ("name", "email", "phone")


class SessionStore:
    """Authoritative in-memory record of every candidate session.

    Sessions are owned by ``_sessions`` (id -> session); ``_order`` keeps
    newest-first ids and ``_current_id`` points at the session shown to the
    interviewee. The pointer is only ever an id, never a second reference.

    ``_lock`` covers those three structures only: inserts, deletes, the
    current pointer and the snapshot reads of them. Field-level mutations
    of a session are not locked; they run on the event loop that owns
    the session's timer.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._sessions: Dict[str, CandidateSession] = {}
            self._order: List[str] = []
            self._current_id: Optional[str] = None
        logger.info("Session store initialised")

    # -- reads ------------------------------------------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    @property
    def current_id(self) -> Optional[str]:
        return self._current_id

    def get(self, session_id: str) -> CandidateSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFound(session_id)
        return session

    def find(self, session_id: str) -> Optional[CandidateSession]:
        return self._sessions.get(session_id)

    def current(self) -> Optional[CandidateSession]:
        with self._lock:
            if self._current_id is None:
                return None
            return self._sessions.get(self._current_id)

    def all(self) -> List[CandidateSession]:
        with self._lock:
            return [self._sessions[sid] for sid in self._order]

    # -- lifecycle ----------------------------------------------------------

    def create(
        self,
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        resume_meta: Optional[Dict[str, Any]] = None,
    ) -> CandidateSession:
        session = CandidateSession.new(name=name, email=email, phone=phone, resume_meta=resume_meta)
        with self._lock:
            self._sessions[session.session_id] = session
            self._order.insert(0, session.session_id)
            self._current_id = session.session_id
        logger.info(f"Created session {session.session_id}")
        return session

    def add(self, session: CandidateSession) -> None:
        """Insert an already-built session (used when restoring an export)."""
        with self._lock:
            if session.session_id in self._sessions:
                raise ValueError(f"duplicate session id {session.session_id}")
            self._sessions[session.session_id] = session
            self._order.append(session.session_id)

    def set_current(self, session_id: Optional[str]) -> None:
        with self._lock:
            if session_id is not None and session_id not in self._sessions:
                raise NotFound(session_id)
            self._current_id = session_id

    def delete(self, session_id: str) -> None:
        with self._lock:
            if session_id not in self._sessions:
                raise NotFound(session_id)
            del self._sessions[session_id]
            self._order = [sid for sid in self._order if sid != session_id]
            if self._current_id == session_id:
                self._current_id = None
        logger.info(f"Deleted session {session_id}")

    # -- field collection -----------------------------------------------------

    def update_fields(self, session_id: str, **fields: Optional[str]) -> CandidateSession:
        session = self.get(session_id)
        unknown = set(fields) - set(CONTACT_FIELDS)
        if unknown:
            raise ValueError(f"unknown contact fields: {sorted(unknown)}")
        for key, value in fields.items():
            if value is not None:
                setattr(session, key, value)
        session.touch()
        return session

    def set_collecting_field(self, session_id: str, field: Optional[str]) -> None:
        session = self.get(session_id)
        if field is not None:
            if session.status != SessionStatus.COLLECTING_INFO:
                raise InvalidTransition(session.status, session.status, "fields are only collected before the interview")
            if field not in CONTACT_FIELDS:
                raise ValueError(f"unknown contact field: {field}")
        session.collecting_field = field
        session.touch()

    def append_chat(self, session_id: str, entry: ChatEntry) -> None:
        session = self.get(session_id)
        session.chat_history.append(entry)
        session.touch()

    # -- interview ------------------------------------------------------------

    def start_interview(self, session_id: str, questions: List[Question]) -> None:
        session = self.get(session_id)
        ensure_transition(session.status, SessionStatus.IN_PROGRESS)
        if session.questions:
            raise InvalidTransition(session.status, SessionStatus.IN_PROGRESS, "questions already assigned")
        now = time.time()
        session.status = SessionStatus.IN_PROGRESS
        session.collecting_field = None
        session.questions = list(questions)
        session.current_question_index = 0
        session.remaining_time = None
        session.started_at = now
        session.last_active_at = now

    def _question(self, session: CandidateSession, question_index: int) -> Question:
        if not 0 <= question_index < len(session.questions):
            raise IndexError(f"question index {question_index} out of range")
        return session.questions[question_index]

    def submit_answer(self, session_id: str, question_index: int, answer: str, time_spent: int) -> None:
        session = self.get(session_id)
        question = self._question(session, question_index)
        if question.submitted:
            raise InvalidTransition(session.status, session.status, f"question {question_index} already answered")
        question.answer = answer
        question.time_spent = time_spent
        session.touch()

    def score_question(self, session_id: str, question_index: int, score: int, feedback: str) -> None:
        session = self.get(session_id)
        question = self._question(session, question_index)
        if not question.submitted:
            raise InvalidTransition(session.status, session.status, f"question {question_index} has no answer")
        if question.scored:
            raise InvalidTransition(session.status, session.status, f"question {question_index} already scored")
        question.score = score
        question.feedback = feedback
        session.touch()

    def next_question(self, session_id: str) -> None:
        session = self.get(session_id)
        if session.current_question_index >= len(session.questions):
            raise IndexError("no question to advance past")
        session.current_question_index += 1
        session.remaining_time = None
        session.touch()

    def complete(self, session_id: str, final_score: int, summary: FinalSummary) -> None:
        session = self.get(session_id)
        ensure_transition(session.status, SessionStatus.COMPLETED)
        now = time.time()
        session.final_score = final_score
        session.final_summary = summary
        session.status = SessionStatus.COMPLETED
        session.current_question_index = len(session.questions)
        session.remaining_time = None
        session.completed_at = now
        session.last_active_at = now

    def pause(self, session_id: str, remaining_time: Optional[int]) -> None:
        session = self.get(session_id)
        ensure_transition(session.status, SessionStatus.PAUSED)
        session.status = SessionStatus.PAUSED
        session.paused_at = time.time()
        if remaining_time is not None:
            session.remaining_time = remaining_time
        session.touch()

    def resume(self, session_id: str) -> None:
        session = self.get(session_id)
        ensure_transition(session.status, SessionStatus.IN_PROGRESS)
        session.status = SessionStatus.IN_PROGRESS
        session.touch()

    def update_remaining_time(self, session_id: str, remaining_time: Optional[int]) -> None:
        session = self.get(session_id)
        session.remaining_time = remaining_time

    def take_remaining_time(self, session_id: str) -> Optional[int]:
        """Return the persisted countdown value and clear it."""
        session = self.get(session_id)
        value = session.remaining_time
        session.remaining_time = None
        return value
