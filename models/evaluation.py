from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Evaluation:
    score: int
    feedback: str


@dataclass
class FinalSummary:
    total_score: int
    max_score: int
    percentage: float
    summary: str
    narrative_available: bool = True
