from __future__ import annotations

from typing import List, Optional, Tuple

from models import Evaluation, FinalSummary, POINTS_PER_QUESTION, Question
from tools.llm_client import LLMError
from utils.errors import SummaryFailed
from .base_agent import BaseAgent


SUMMARY_SYSTEM = (
    "You are an expert technical interviewer providing a final evaluation summary. "
    "Based on the candidate's performance across all questions, provide: "
    "1. Overall assessment (2-3 sentences) 2. Key strengths 3. Areas for improvement. "
    "Keep it professional, constructive, and concise."
)

NO_ANSWER_FEEDBACK = "No answer provided (time expired)."


def score_answer(question: Question, submitted: Optional[str]) -> Evaluation:
    """Grade one multiple choice answer: 10 for the right label, else 0."""
    selected = (submitted or "").strip().upper()
    correct = question.correct_answer.strip().upper()
    if not selected:
        return Evaluation(score=0, feedback=NO_ANSWER_FEEDBACK)
    correct_text = question.options.get(correct, "")
    if selected == correct:
        return Evaluation(
            score=POINTS_PER_QUESTION,
            feedback=f"Correct! The answer is {correct}: {correct_text}",
        )
    selected_text = question.options.get(selected, "Invalid option")
    return Evaluation(
        score=0,
        feedback=(
            f"Incorrect. You selected {selected}: {selected_text}. "
            f"The correct answer is {correct}: {correct_text}"
        ),
    )


def compute_totals(questions: List[Question]) -> Tuple[int, int, float]:
    total = sum(q.score or 0 for q in questions)
    max_score = POINTS_PER_QUESTION * len(questions)
    percentage = round(total / max_score * 100, 1) if max_score else 0.0
    return total, max_score, percentage


def fallback_summary(questions: List[Question]) -> FinalSummary:
    total, max_score, percentage = compute_totals(questions)
    return FinalSummary(
        total_score=total,
        max_score=max_score,
        percentage=percentage,
        summary=(
            f"The candidate scored {total}/{max_score} ({percentage}%). "
            "A written evaluation could not be generated."
        ),
        narrative_available=False,
    )


def transcript_text(questions: List[Question]) -> str:
    blocks = []
    for i, q in enumerate(questions, start=1):
        blocks.append(
            f"Q{i} ({q.difficulty}): {q.question}\n"
            f"Answer: {q.answer or 'No answer'}\n"
            f"Score: {q.score}/{POINTS_PER_QUESTION}\n"
            f"Feedback: {q.feedback}"
        )
    return "\n\n".join(blocks)


class EvaluatorAgent(BaseAgent):
    async def evaluate(self, question: Question, submitted: Optional[str]) -> Evaluation:
        return score_answer(question, submitted)

    async def summarize(self, questions: List[Question]) -> FinalSummary:
        total, max_score, percentage = compute_totals(questions)
        user = (
            "Candidate Performance Summary:\n"
            f"Total Score: {total}/{max_score} ({percentage}%)\n\n"
            f"{transcript_text(questions)}\n\n"
            "Provide a final evaluation summary."
        )
        try:
            narrative = (await self.acomplete(SUMMARY_SYSTEM, user, temperature=0.7)).strip()
        except LLMError as e:
            raise SummaryFailed(str(e)) from e
        if not narrative:
            raise SummaryFailed("empty narrative")
        return FinalSummary(
            total_score=total,
            max_score=max_score,
            percentage=percentage,
            summary=narrative,
        )
