from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict
import time
import uuid


def _now_ts() -> float:
    return time.time()


def _new_id() -> str:
    return uuid.uuid4().hex


class EntryType:
    SYSTEM = "system"
    BOT = "bot"
    USER = "user"
    QUESTION = "question"
    ANSWER = "answer"
    FEEDBACK = "feedback"
    COMPLETION = "completion"

    ALL = (SYSTEM, BOT, USER, QUESTION, ANSWER, FEEDBACK, COMPLETION)


@dataclass
class ChatEntry:
    entry_id: str
    type: str
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=_now_ts)

    @staticmethod
    def create(type: str, content: str, **metadata: Any) -> "ChatEntry":
        if type not in EntryType.ALL:
            raise ValueError(f"unknown chat entry type: {type}")
        return ChatEntry(
            entry_id=_new_id(),
            type=type,
            content=content,
            metadata=dict(metadata),
        )
