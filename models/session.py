from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import time
import uuid

from .evaluation import FinalSummary
from .messages import ChatEntry
from .question import Question


class SessionStatus:
    COLLECTING_INFO = "collecting_info"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"

    ALL = (COLLECTING_INFO, IN_PROGRESS, PAUSED, COMPLETED)


class ContactField:
    NAME = "name"
    EMAIL = "email"
    PHONE = "phone"

    # Collection order.
    ORDER = (NAME, EMAIL, PHONE)

    PROMPTS = {
        NAME: "What is your full name?",
        EMAIL: "What is your email address?",
        PHONE: "What is your phone number?",
    }


@dataclass
class CandidateSession:
    session_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    resume_meta: Dict[str, Any] = field(default_factory=dict)
    status: str = SessionStatus.COLLECTING_INFO
    collecting_field: Optional[str] = None
    questions: List[Question] = field(default_factory=list)
    current_question_index: int = 0
    remaining_time: Optional[int] = None
    chat_history: List[ChatEntry] = field(default_factory=list)
    final_score: Optional[int] = None
    final_summary: Optional[FinalSummary] = None
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    paused_at: Optional[float] = None
    completed_at: Optional[float] = None
    last_active_at: float = field(default_factory=time.time)

    @staticmethod
    def new(
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        resume_meta: Optional[Dict[str, Any]] = None,
    ) -> "CandidateSession":
        return CandidateSession(
            session_id=uuid.uuid4().hex,
            name=name or None,
            email=email or None,
            phone=phone or None,
            resume_meta=dict(resume_meta or {}),
        )

    def missing_fields(self) -> List[str]:
        return [f for f in ContactField.ORDER if not getattr(self, f)]

    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    def is_last_question(self) -> bool:
        return bool(self.questions) and self.current_question_index == len(self.questions) - 1

    def answered_count(self) -> int:
        return sum(1 for q in self.questions if q.scored)

    def touch(self) -> None:
        self.last_active_at = time.time()
