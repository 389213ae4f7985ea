from .state_machine import (
    AdvanceResult,
    SessionStateMachine,
    TRANSITIONS,
    can_transition,
    ensure_transition,
)
from .store import SessionStore
from .timer import CountdownTimer, TimerRegistry
from .dashboard import SortKey, query_sessions, session_row

__all__ = [
    "AdvanceResult",
    "SessionStateMachine",
    "TRANSITIONS",
    "can_transition",
    "ensure_transition",
    "SessionStore",
    "CountdownTimer",
    "TimerRegistry",
    "SortKey",
    "query_sessions",
    "session_row",
]
