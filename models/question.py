from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


class Difficulty:
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


TIME_LIMITS: Dict[str, int] = {
    Difficulty.EASY: 20,
    Difficulty.MEDIUM: 60,
    Difficulty.HARD: 120,
}

# Two of each, easiest first.
DIFFICULTY_ORDER: Tuple[str, ...] = (
    Difficulty.EASY,
    Difficulty.EASY,
    Difficulty.MEDIUM,
    Difficulty.MEDIUM,
    Difficulty.HARD,
    Difficulty.HARD,
)

OPTION_LABELS: Tuple[str, ...] = ("A", "B", "C", "D")

POINTS_PER_QUESTION = 10


def time_limit_for(difficulty: str) -> int:
    try:
        return TIME_LIMITS[difficulty]
    except KeyError:
        raise ValueError(f"unknown difficulty: {difficulty}") from None


@dataclass
class Question:
    difficulty: str
    question: str
    options: Dict[str, str]
    correct_answer: str
    time_limit: int = 0
    answer: Optional[str] = None
    time_spent: Optional[int] = None
    score: Optional[int] = None
    feedback: Optional[str] = None

    def __post_init__(self) -> None:
        # Time limit is a function of difficulty, never of the provider payload.
        self.time_limit = time_limit_for(self.difficulty)

    @property
    def submitted(self) -> bool:
        return self.answer is not None

    @property
    def scored(self) -> bool:
        return self.score is not None

    def option_text(self, label: str) -> Optional[str]:
        return self.options.get(label.strip().upper()) if label else None


def validate_question_set(questions: List[Question]) -> None:
    """Raise ValueError unless ``questions`` has the fixed interview shape."""
    difficulties = tuple(q.difficulty for q in questions)
    if difficulties != DIFFICULTY_ORDER:
        raise ValueError(
            f"expected difficulties {list(DIFFICULTY_ORDER)}, got {list(difficulties)}"
        )
    for idx, q in enumerate(questions):
        if not q.question.strip():
            raise ValueError(f"question {idx + 1} has no prompt")
        if tuple(sorted(q.options)) != OPTION_LABELS:
            raise ValueError(f"question {idx + 1} must have options {list(OPTION_LABELS)}")
        if q.correct_answer not in q.options:
            raise ValueError(f"question {idx + 1} has invalid correct answer {q.correct_answer!r}")
