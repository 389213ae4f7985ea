from __future__ import annotations

import asyncio
import io
from typing import List, Optional

import pytest
from docx import Document

from agents.evaluator_agent import EvaluatorAgent
from agents.question_agent import SAMPLE_QUESTIONS, QuestionAgent, question_from_dict
from interview import SessionStateMachine, SessionStore
from models import Question
from tools.llm_client import LLMError
from utils.config import AppConfig
from utils.errors import GenerationFailed, ScoringFailed


CORRECT_ANSWERS = [q["correctAnswer"] for q in SAMPLE_QUESTIONS]


class FakeLLM:
    """Stands in for LLMClient: replays queued replies, raising exceptions as-is."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def acomplete(self, system_prompt, messages, temperature=0.2):
        self.calls.append((system_prompt, [m.content for m in messages]))
        if not self.replies:
            raise LLMError("no reply queued")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FlakyQuestionAgent(QuestionAgent):
    def __init__(self, failures: int, config: AppConfig):
        super().__init__("question_provider", "test", llm=FakeLLM(), config=config)
        self.failures = failures
        self.calls = 0

    async def generate_questions(self) -> List[Question]:
        self.calls += 1
        if self.calls <= self.failures:
            raise GenerationFailed("provider returned garbage")
        return sample_questions()


class ScriptedEvaluator(EvaluatorAgent):
    """Evaluator that can fail a number of times or hold scoring until released."""

    def __init__(self, config: AppConfig, failures: int = 0, gated: bool = False, summary_llm=None):
        super().__init__("evaluator", "test", llm=summary_llm or FakeLLM(), config=config)
        self.failures = failures
        self.calls = 0
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        if not gated:
            self.release.set()

    async def evaluate(self, question, submitted):
        self.calls += 1
        self.entered.set()
        await self.release.wait()
        if self.calls <= self.failures:
            raise ScoringFailed("scoring backend unavailable")
        return await super().evaluate(question, submitted)


def sample_questions() -> List[Question]:
    return [question_from_dict(item) for item in SAMPLE_QUESTIONS]


def make_docx(*lines: str) -> io.BytesIO:
    doc = Document()
    for line in lines:
        doc.add_paragraph(line)
    buf = io.BytesIO()
    doc.save(buf)
    buf.seek(0)
    return buf


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(question_source="sample", tick_seconds=1.0, retry_base_delay_seconds=0.0)


@pytest.fixture
def fast_config() -> AppConfig:
    return AppConfig(question_source="sample", tick_seconds=0.005, retry_base_delay_seconds=0.0)


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def machine(store: SessionStore, config: AppConfig) -> SessionStateMachine:
    return SessionStateMachine(store, config)


@pytest.fixture
def questions() -> List[Question]:
    return sample_questions()


@pytest.fixture
def full_resume() -> io.BytesIO:
    return make_docx("Jane Doe", "jane.doe@example.com", "+1 555 123 4567", "Full stack engineer")


def answers_for(scores: List[int]) -> List[Optional[str]]:
    """Labels that earn the given 10/0 scores on the sample set."""
    out = []
    for correct, score in zip(CORRECT_ANSWERS, scores):
        if score:
            out.append(correct)
        else:
            out.append("A" if correct != "A" else "B")
    return out
