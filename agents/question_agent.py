from __future__ import annotations

import json
from typing import Any, Dict, List

from models import Question, validate_question_set
from tools.llm_client import LLMError
from utils.errors import GenerationFailed
from .base_agent import BaseAgent


QUESTION_SYSTEM = (
    "You are an expert technical interviewer for a Full Stack Developer position (React/Node.js). "
    "You write precise multiple choice questions with exactly one correct option."
)

QUESTION_PROMPT = """Generate EXACTLY 6 Multiple Choice Questions (MCQ) in this specific order:
- 2 EASY questions (fundamental concepts)
- 2 MEDIUM questions (practical implementation)
- 2 HARD questions (advanced problem-solving)

Each question must have:
- a clear question
- 4 options labelled A, B, C, D
- one correct answer

Return ONLY a JSON array, no markdown and no commentary. Start with [ and end with ].

Format:
[
  {
    "difficulty": "easy",
    "question": "What is the virtual DOM in React?",
    "options": {"A": "...", "B": "...", "C": "...", "D": "..."},
    "correctAnswer": "A"
  }
]

Make questions specific, technical, and relevant to modern React and Node.js development."""


SAMPLE_QUESTIONS: List[Dict[str, Any]] = [
    {
        "difficulty": "easy",
        "question": "What is the virtual DOM in React?",
        "options": {
            "A": "A copy of the real DOM stored in memory",
            "B": "A database for storing component state",
            "C": "A CSS framework for styling",
            "D": "A testing library",
        },
        "correctAnswer": "A",
    },
    {
        "difficulty": "easy",
        "question": "Which hook is used for side effects in React?",
        "options": {"A": "useState", "B": "useEffect", "C": "useContext", "D": "useReducer"},
        "correctAnswer": "B",
    },
    {
        "difficulty": "medium",
        "question": "What HTTP status code indicates successful resource creation?",
        "options": {
            "A": "200 OK",
            "B": "201 Created",
            "C": "204 No Content",
            "D": "301 Moved Permanently",
        },
        "correctAnswer": "B",
    },
    {
        "difficulty": "medium",
        "question": "In Node.js, which module is used for file operations?",
        "options": {"A": "http", "B": "path", "C": "fs", "D": "url"},
        "correctAnswer": "C",
    },
    {
        "difficulty": "hard",
        "question": "What is the average time complexity of looking up a key in a hash table?",
        "options": {"A": "O(n)", "B": "O(log n)", "C": "O(1)", "D": "O(n^2)"},
        "correctAnswer": "C",
    },
    {
        "difficulty": "hard",
        "question": "Which pattern is best suited to managing complex shared state in React?",
        "options": {
            "A": "Singleton Pattern",
            "B": "Observer Pattern",
            "C": "Flux/Redux Pattern",
            "D": "Factory Pattern",
        },
        "correctAnswer": "C",
    },
]


def _strip_fences(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`\n ")
        if text.lower().startswith("json"):
            text = text[4:]
    return text


def question_from_dict(item: Dict[str, Any]) -> Question:
    options = item.get("options")
    if not isinstance(options, dict):
        raise ValueError("options must be an object")
    return Question(
        difficulty=str(item.get("difficulty", "")).strip().lower(),
        question=str(item.get("question", "")).strip(),
        options={str(k).strip().upper(): str(v) for k, v in options.items()},
        correct_answer=str(item.get("correctAnswer", item.get("correct_answer", ""))).strip().upper(),
    )


def parse_questions(raw: str) -> List[Question]:
    """Turn a provider reply into a validated six-question set."""
    text = _strip_fences(raw or "")
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end == -1:
        raise GenerationFailed("response is not a JSON array")
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise GenerationFailed(f"invalid JSON: {e}") from e
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise GenerationFailed("expected a list of question objects")
    try:
        questions = [question_from_dict(item) for item in data]
        validate_question_set(questions)
    except ValueError as e:
        raise GenerationFailed(str(e)) from e
    return questions


class QuestionAgent(BaseAgent):
    async def generate_questions(self) -> List[Question]:
        if self.config.question_source == "sample":
            self.logger.info("Serving the built-in sample question set")
            return [question_from_dict(item) for item in SAMPLE_QUESTIONS]
        try:
            raw = await self.acomplete(QUESTION_SYSTEM, QUESTION_PROMPT, temperature=0.7)
        except LLMError as e:
            raise GenerationFailed(str(e)) from e
        questions = parse_questions(raw)
        self.logger.info(f"Generated {len(questions)} questions")
        return questions
