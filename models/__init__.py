from .messages import ChatEntry, EntryType
from .question import (
    DIFFICULTY_ORDER,
    OPTION_LABELS,
    POINTS_PER_QUESTION,
    TIME_LIMITS,
    Difficulty,
    Question,
    time_limit_for,
    validate_question_set,
)
from .evaluation import Evaluation, FinalSummary
from .session import CandidateSession, ContactField, SessionStatus

__all__ = [
    "ChatEntry",
    "EntryType",
    "DIFFICULTY_ORDER",
    "OPTION_LABELS",
    "POINTS_PER_QUESTION",
    "TIME_LIMITS",
    "Difficulty",
    "Question",
    "time_limit_for",
    "validate_question_set",
    "Evaluation",
    "FinalSummary",
    "CandidateSession",
    "ContactField",
    "SessionStatus",
]
